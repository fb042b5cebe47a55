"""Envelope shapes returned to the caller and to the gateway."""

import json
from typing import Any, NamedTuple

from pydantic import BaseModel


SUCCESS_CODE = "BILLER-18-0000-S"
FAILURE_CODE = "BILLER-18-9999-F"


class CallbackAcknowledgement(BaseModel):
    """Acknowledgement the gateway expects for every pushed callback."""

    ResponseCode: str
    ResponseStatus: bool
    ResponseDescription: str
    ReferenceID: Any = None
    Error: Any = None

    @classmethod
    def success(cls, reference_id: Any) -> "CallbackAcknowledgement":
        return cls(
            ResponseCode=SUCCESS_CODE,
            ResponseStatus=True,
            ResponseDescription="Callback successful",
            ReferenceID=reference_id,
        )

    @classmethod
    def failure(cls, reference_id: Any, error: Any) -> "CallbackAcknowledgement":
        return cls(
            ResponseCode=FAILURE_CODE,
            ResponseStatus=False,
            ResponseDescription="Failed to process callback",
            ReferenceID=reference_id,
            Error=error,
        )

    def body(self) -> dict[str, Any]:
        # Absent fields stay absent on the wire rather than becoming null.
        return self.model_dump(exclude_none=True)


class RelayFailureEnvelope(BaseModel):
    """Body returned to the caller when a push could not be relayed."""

    ResponseStatus: bool = False
    ResponseCode: str = FAILURE_CODE
    ResponseDescription: str = "Failed to relay request"
    Error: Any


class RelayReply(NamedTuple):
    """Status, raw body and content type handed back to the push caller."""

    status_code: int
    content: bytes
    media_type: str | None

    def json(self) -> Any:
        return json.loads(self.content)
