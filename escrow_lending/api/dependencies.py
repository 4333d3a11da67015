"""
Shared API dependencies: the lending system instance, caller identity and
error translation
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from ..errors import ErrorCode, Result
from ..system import LendingSystem


_lending_system: Optional[LendingSystem] = None


def get_lending_system() -> LendingSystem:
    """Return the process-wide lending system, building it on first use"""
    global _lending_system
    if _lending_system is None:
        _lending_system = LendingSystem.from_config()
    return _lending_system


def get_caller(x_caller: str = Header(..., min_length=1)) -> str:
    """Identity of the caller, supplied by the upstream gateway"""
    return x_caller


_STATUS_BY_ERROR = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
}


def raise_for_error(result: Result) -> None:
    """Translate a failed Result into an HTTPException"""
    if result.ok:
        return
    raise HTTPException(
        status_code=_STATUS_BY_ERROR.get(result.error, status.HTTP_400_BAD_REQUEST),
        detail={"error": result.error.name, "code": int(result.error)}
    )
