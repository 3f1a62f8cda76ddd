"""
Abstract base class for request authentication.

The API layer only needs one thing from auth: who is calling. Anything
that can map request headers to a user id (session cookies, JWTs, API
keys) fits behind this.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional


class BaseAuthProvider(ABC):

    @abstractmethod
    def authenticate(self, headers: Mapping[str, str]) -> Optional[str]:
        """
        Resolve the caller.

        Returns:
            The user id, or None when the request is unauthenticated.
        """
        ...
