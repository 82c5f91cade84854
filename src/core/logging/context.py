"""Request correlation fields carried in context variables."""

from contextvars import ContextVar, Token
from typing import Dict, Optional

_FIELDS: Dict[str, ContextVar[str]] = {
    name: ContextVar(name, default="")
    for name in ("request_id", "operation", "storefront", "client_name")
}


def set_log_context(
    request_id: Optional[str] = None,
    operation: Optional[str] = None,
    storefront: Optional[str] = None,
    client_name: Optional[str] = None,
) -> Dict[str, Token]:
    """
    Set the given fields for the current task; None leaves a field as is.

    Returns the reset tokens of the fields that were changed.
    """
    values = {
        "request_id": request_id,
        "operation": operation,
        "storefront": storefront,
        "client_name": client_name,
    }
    return {
        name: _FIELDS[name].set(value)
        for name, value in values.items()
        if value is not None
    }


def reset_log_context(tokens: Dict[str, Token]) -> None:
    """Undo a set_log_context call using the tokens it returned."""
    for name, token in tokens.items():
        _FIELDS[name].reset(token)


def get_log_context() -> Dict[str, str]:
    return {name: var.get() for name, var in _FIELDS.items()}


def clear_log_context() -> None:
    for var in _FIELDS.values():
        var.set("")
