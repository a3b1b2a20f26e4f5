"""Caller identity collaborator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from starlette.requests import Request

from core import settings


@runtime_checkable
class AuthContext(Protocol):
    def current_user_id(self) -> int | None: ...


class HeaderAuthContext:
    """Reads the caller id forwarded by the authenticating gateway.

    Malformed or non-positive values are treated as anonymous.
    """

    def __init__(self, request: Request, header_name: str | None = None) -> None:
        self._request = request
        self._header_name = header_name or settings.auth_user_header

    def current_user_id(self) -> int | None:
        raw_value = self._request.headers.get(self._header_name)
        if raw_value is None:
            return None
        try:
            user_id = int(raw_value.strip())
        except ValueError:
            return None
        return user_id if user_id > 0 else None
