"""Scoped log context for a single client call."""

import secrets
from typing import Dict, Optional

from core.logging.context import reset_log_context, set_log_context


def generate_request_id() -> str:
    """Short random id of the form r-1a2b3c4d."""
    return f"r-{secrets.token_hex(4)}"


class LogContext:
    """
    Sets correlation fields for the duration of a with-block.

    Fields left as None keep the surrounding value. On exit each changed
    field is reset to what it was on entry, including when the block raises.

    Usage:
        with LogContext(operation="get_album", request_id=generate_request_id()):
            await do_work()
    """

    def __init__(
        self,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        storefront: Optional[str] = None,
        client_name: Optional[str] = None,
    ):
        self.fields = dict(
            request_id=request_id,
            operation=operation,
            storefront=storefront,
            client_name=client_name,
        )
        self._tokens: Dict = {}

    def __enter__(self) -> "LogContext":
        self._tokens = set_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        reset_log_context(self._tokens)
        self._tokens = {}
        return False
