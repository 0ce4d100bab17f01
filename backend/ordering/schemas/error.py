from typing import Any

from pydantic import BaseModel

from ordering.core.logging_config import request_id_ctx_var


class ErrorResponse(BaseModel):
    """Envelope for every error the API returns.

    ``code`` is machine readable (``validation_error``, a blocking reason such
    as ``missing_zone``, or ``upstream_rejected``); ``request_id`` matches the
    ``X-Request-ID`` response header so support can find the log line.
    """

    detail: Any
    code: str | None = None
    request_id: str | None = None

    @classmethod
    def build(cls, detail: Any, code: str | None = None) -> "ErrorResponse":
        return cls(detail=detail, code=code, request_id=request_id_ctx_var.get())
