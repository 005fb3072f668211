"""
Per-request context carried in contextvars.

The request id is set by RequestContextMiddleware and the account id by the
auth guard once a caller is authenticated. Both are bound into structlog so
every log line of a request carries them, and the request id doubles as the
``correlationId`` of 500 error envelopes.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

import structlog

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_account_id: ContextVar[Optional[int]] = ContextVar("account_id", default=None)


def generate_request_id() -> str:
    """``req_`` followed by 16 hex characters."""
    return f"req_{uuid.uuid4().hex[:16]}"


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)
    structlog.contextvars.bind_contextvars(request_id=request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def set_user_id(account_id: int) -> None:
    _account_id.set(account_id)
    structlog.contextvars.bind_contextvars(account_id=account_id)


def get_user_id() -> Optional[int]:
    return _account_id.get()


def clear_context() -> None:
    _request_id.set(None)
    _account_id.set(None)
    structlog.contextvars.clear_contextvars()


def get_context_dict() -> dict:
    return {
        "request_id": get_request_id(),
        "account_id": get_user_id(),
    }
