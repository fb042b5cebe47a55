"""JSON log lines tagged with the relay's correlation fields.

Each inbound request binds a trace id (the caller's `x-correlation-id` when
present); callbacks additionally bind the gateway `ReferenceID` and the
route's environment tag. Every record emitted while handling that request
carries those fields.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

from pythonjsonlogger.json import JsonFormatter

from billrelay.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
reference_id_ctx: ContextVar[str] = ContextVar("reference_id", default="")
environment_ctx: ContextVar[str] = ContextVar("environment", default="")

CONTEXT_FIELDS = {
    "trace_id": trace_id_ctx,
    "reference_id": reference_id_ctx,
    "environment": environment_ctx,
}


def bind_request_context(correlation_id: str | None) -> str:
    """Start a request: adopt the caller's correlation id or mint one."""

    trace_id = correlation_id or str(uuid4())
    trace_id_ctx.set(trace_id)
    reference_id_ctx.set("")
    environment_ctx.set("")
    return trace_id


def bind_callback_context(reference_id: Any, environment: str) -> None:
    reference_id_ctx.set("" if reference_id is None else str(reference_id))
    environment_ctx.set(environment)


class RelayContextFilter(logging.Filter):
    """Copy the bound correlation fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        for name, var in CONTEXT_FIELDS.items():
            setattr(record, name, var.get())
        return True


def configure_logging() -> None:
    """Route all logging to one stdout JSON handler; call once per process."""

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RelayContextFilter())
    fields = " ".join(f"%({name})s" for name in ["asctime", "levelname", "name", "service_name", *CONTEXT_FIELDS])
    handler.setFormatter(
        JsonFormatter(
            f"{fields} %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)


logger = logging.getLogger("billrelay")
