"""Failure types raised inside the relay and converted to envelopes at the edge."""

from typing import Any

import httpx


class RelayError(Exception):
    """Base class for failures of an outbound relay call.

    `detail` is what ends up in the envelope's `Error` field: the upstream
    error body when there was one, otherwise the failure message.
    """

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = message if detail in (None, "") else detail


class CredentialFetchFailure(RelayError):
    """Token endpoint unreachable, timed out, or answered without a token."""


class ForwardFailure(RelayError):
    """Push endpoint or internal callback endpoint did not accept the forward."""


def decode_body(response: httpx.Response) -> Any:
    """Return the response body as JSON when it parses, else as text."""

    try:
        return response.json()
    except ValueError:
        return response.text


def transport_message(exc: Exception) -> str:
    # httpx timeouts often carry an empty message.
    return str(exc) or exc.__class__.__name__
