"""
API-key authentication.

Each configured key maps to one user id (DOCCHAT_API_KEYS="key:user,...").
current_user is the FastAPI dependency routes use to get the caller.
"""

from typing import Mapping, Optional

from fastapi import Request

from docchat.base.auth import BaseAuthProvider
from docchat.errors import AuthRequired


class ApiKeyAuthProvider(BaseAuthProvider):

    def __init__(self, api_keys: Mapping[str, str], header_name: str = "X-API-Key"):
        self.api_keys = dict(api_keys)
        self.header_name = header_name

    def authenticate(self, headers: Mapping[str, str]) -> Optional[str]:
        key = headers.get(self.header_name) or headers.get(self.header_name.lower())
        if not key:
            return None
        return self.api_keys.get(key)


def current_user(request: Request) -> str:
    """Resolve the caller or fail with 401."""
    user_id = request.app.state.services.auth.authenticate(request.headers)
    if not user_id:
        raise AuthRequired()
    return user_id
