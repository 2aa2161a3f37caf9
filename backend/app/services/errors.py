from __future__ import annotations

from collections.abc import Iterable

from fastapi import HTTPException, status


class InsufficientDataError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidRangeError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnknownIdentifierError(HTTPException):
    """Raised for an unrecognised rule, report or insight identifier."""

    def __init__(self, kind: str, value: str, valid: Iterable[str]) -> None:
        self.valid_values = list(valid)
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {kind} '{value}'. Valid values: {', '.join(self.valid_values)}",
        )
