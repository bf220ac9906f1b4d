"""Authentication providers for Kluster SDK.

Token acquisition happens outside the SDK; providers only attach an already
issued token to each request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class AuthProvider(ABC):
    """Base authentication provider interface."""

    @abstractmethod
    def get_headers(self) -> dict[str, str]:
        """Return authentication headers for requests."""
        ...

    @property
    @abstractmethod
    def is_authenticated(self) -> bool:
        """Check if credentials are available."""
        ...


@dataclass
class TokenAuth(AuthProvider):
    """Keystone-style token authentication.

    Example:
        ```python
        auth = TokenAuth(token="gAAAAAB...")
        client = KlusterClient(auth=auth)
        ```
    """

    token: str = field(repr=False)  # Never log tokens
    header: str = "X-Auth-Token"

    def get_headers(self) -> dict[str, str]:
        """Return the token header, or nothing without a token."""
        if self.token:
            return {self.header: self.token}
        return {}

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)
