"""Bearer token models.

Tokens are issued to callers by Microsoft identity; this service never
refreshes or stores them. It only checks that one was supplied and, when
the caller says when it expires, that it is not about to.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field

# Tokens expiring within this window are rejected up front
EXPIRY_BUFFER_SECONDS = 300

SUFFIX_LENGTH = 8


class TokenStatus(str, Enum):
    """Outcome of checking a caller-supplied token."""

    VALID = "valid"
    EXPIRED = "expired"
    MISSING = "missing"
    INVALID = "invalid"


class AccessToken(BaseModel):
    """A caller-supplied Microsoft Graph access token.

    Attributes:
        access_token: The raw bearer token.
        expires_at: When the token expires, if the caller said so.
        token_type: Always "Bearer".
    """

    access_token: str = Field(..., description="Raw bearer token")
    expires_at: datetime | None = Field(default=None, description="Expiry, if known")
    token_type: str = Field(default="Bearer", description="OAuth token type")

    @classmethod
    def from_epoch_ms(cls, access_token: str, expires_at_ms: int | None) -> "AccessToken":
        """Build a token whose expiry is given in epoch milliseconds."""
        expires_at = None
        if expires_at_ms is not None:
            expires_at = datetime.fromtimestamp(expires_at_ms / 1000, tz=timezone.utc)
        return cls(access_token=access_token, expires_at=expires_at)

    def is_expired(self, buffer_seconds: int = EXPIRY_BUFFER_SECONDS) -> bool:
        """Check whether the token has expired or will within the buffer.

        Tokens without a known expiry are treated as valid.
        """
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_at - timedelta(seconds=buffer_seconds)

    @property
    def suffix(self) -> str:
        """Last eight characters, the only part of a token that is ever logged.

        Tokens shorter than twice that are masked entirely.
        """
        if len(self.access_token) < 2 * SUFFIX_LENGTH:
            return "***"
        return f"...{self.access_token[-SUFFIX_LENGTH:]}"
