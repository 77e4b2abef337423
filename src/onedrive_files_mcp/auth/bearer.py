"""Bearer token extraction and checks shared by both front-ends."""

import logging

from onedrive_files_mcp.auth.models import AccessToken, TokenStatus
from onedrive_files_mcp.errors import AuthenticationError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer"


def get_status(token: AccessToken | None) -> TokenStatus:
    """Classify a token without raising."""
    if token is None:
        return TokenStatus.MISSING
    if not token.access_token.strip():
        return TokenStatus.INVALID
    if token.is_expired():
        return TokenStatus.EXPIRED
    return TokenStatus.VALID


def authenticate(token: AccessToken | None) -> str:
    """Return the raw access token if it is usable.

    Args:
        token: Caller-supplied token, or None if none was given.

    Returns:
        The raw bearer token string.

    Raises:
        AuthenticationError: If the token is missing, blank, or expired.
    """
    if token is None:
        raise AuthenticationError("Unauthorized: No access token provided")

    status = get_status(token)

    if status == TokenStatus.INVALID:
        raise AuthenticationError("Unauthorized: Access token cannot be empty")

    if status == TokenStatus.EXPIRED:
        raise AuthenticationError(
            "Access token expired. Please obtain a new token and try again."
        )

    return token.access_token


def extract_bearer_token(authorization: str | None) -> AccessToken:
    """Parse an ``Authorization: Bearer <token>`` header.

    Args:
        authorization: Raw header value, or None if the header is absent.

    Returns:
        The parsed token.

    Raises:
        AuthenticationError: If the header is absent or not a bearer header.
    """
    if not authorization:
        raise AuthenticationError("Unauthorized: No access token provided")

    scheme, _, credentials = authorization.strip().partition(" ")
    credentials = credentials.strip()
    if scheme.lower() != BEARER_PREFIX or not credentials or " " in credentials:
        logger.warning("Rejected malformed Authorization header")
        raise AuthenticationError("Unauthorized: Malformed Authorization header")

    return AccessToken(access_token=credentials)
