"""
Caller Identity

Tokens are validated upstream (identity provider / API gateway). This
module only reads the claims of an already-validated bearer token and
picks the claim that identifies the caller. That value is the owner id
every record is stored under.
"""

import base64
import binascii
import json
from typing import Any, Optional

from pydantic import BaseModel


NAME_IDENTIFIER_CLAIM = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"

# First present claim wins
OWNER_CLAIMS = (NAME_IDENTIFIER_CLAIM, "sub", "oid")

ANONYMOUS_OWNER = "anonymous"


class AuthenticationError(Exception):
    """No usable caller identity on the request."""
    pass


class CallerIdentity(BaseModel):
    """The resolved caller."""

    owner_id: str
    email: Optional[str] = None
    is_anonymous: bool = False


def decode_token_claims(token: str) -> dict[str, Any]:
    """
    Read the claims of a JWT without checking its signature.

    Raises:
        AuthenticationError: If the token is not a well-formed JWT
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise AuthenticationError("Malformed bearer token")
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise AuthenticationError("Malformed bearer token") from e
    if not isinstance(claims, dict):
        raise AuthenticationError("Malformed bearer token")
    return claims


def owner_id_from_claims(claims: dict[str, Any]) -> Optional[str]:
    """Pick the caller id out of a claims set."""
    for claim in OWNER_CLAIMS:
        value = claims.get(claim)
        if value:
            return str(value)
    return None


def resolve_caller(
    authorization: Optional[str],
    auth_required: bool = False,
) -> CallerIdentity:
    """
    Resolve the caller from an Authorization header value.

    Without a token, the caller is anonymous unless `auth_required`.

    Raises:
        AuthenticationError: Token missing (when required), malformed,
            or carrying no identifying claim
    """
    if not authorization or not authorization.startswith("Bearer "):
        if auth_required:
            raise AuthenticationError("Missing bearer token")
        return CallerIdentity(owner_id=ANONYMOUS_OWNER, is_anonymous=True)

    claims = decode_token_claims(authorization[len("Bearer "):].strip())
    owner_id = owner_id_from_claims(claims)
    if owner_id is None:
        raise AuthenticationError("Token carries no caller identifier")

    email = next(
        (
            value for value in (claims.get("email"), claims.get("preferred_username"))
            if isinstance(value, str) and value
        ),
        None,
    )
    return CallerIdentity(owner_id=owner_id, email=email)
