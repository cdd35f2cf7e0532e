"""
Identity verification and token helpers.

Every authenticated request carries ``Authorization: Bearer <token>``.  The
token is verified by an :class:`IdentityVerifier` chosen from the settings and
turned into a :class:`VerifiedIdentity`; nothing downstream ever sees an
unverified subject id.
"""
import logging
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool

from cloudbox.core.config import Settings
from cloudbox.utils.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# URL-safe alphabet, same as nanoid's default
TOKEN_ALPHABET = string.ascii_letters + string.digits + "_-"
SHARE_TOKEN_LENGTH = 32


def random_token(length: int = 21) -> str:
    """Return a cryptographically random URL-safe token"""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "VerifiedIdentity":
        uid = claims.get("sub") or claims.get("user_id")
        if not uid:
            raise AuthenticationError("Token has no subject")
        return cls(
            uid=str(uid),
            email=claims.get("email"),
            name=claims.get("name"),
            picture=claims.get("picture"),
            claims=claims,
        )


class IdentityVerifier:
    """Turns a bearer token into a VerifiedIdentity or raises AuthenticationError"""

    async def verify(self, token: str) -> VerifiedIdentity:
        raise NotImplementedError


class FirebaseIdentityVerifier(IdentityVerifier):
    """Verifies Firebase ID tokens against Google's published signing keys"""

    def __init__(self, project_id: str):
        if not project_id:
            raise ValueError("FIREBASE_PROJECT_ID must be set for the firebase auth provider")
        self.project_id = project_id
        self._request = requests.Request()

    async def verify(self, token: str) -> VerifiedIdentity:
        try:
            claims = await run_in_threadpool(
                id_token.verify_firebase_token, token, self._request, self.project_id
            )
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.info(f"Rejected identity token: {e}")
            raise AuthenticationError("Invalid identity token")
        if not claims:
            raise AuthenticationError("Invalid identity token")
        return VerifiedIdentity.from_claims(claims)


class JWTIdentityVerifier(IdentityVerifier):
    """Verifies tokens signed with a shared secret (development and tests)"""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        if not secret_key:
            raise ValueError("JWT_SECRET_KEY must be set for the jwt auth provider")
        self.secret_key = secret_key
        self.algorithm = algorithm

    async def verify(self, token: str) -> VerifiedIdentity:
        claims = decode_token(token, self.secret_key, self.algorithm)
        if claims is None:
            raise AuthenticationError("Invalid identity token")
        return VerifiedIdentity.from_claims(claims)


def create_access_token(
    subject: str,
    secret_key: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=30)),
    }
    if email:
        payload["email"] = email
    if name:
        payload["name"] = name
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_token(token: str, secret_key: str, algorithm: str = "HS256") -> Optional[dict]:
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected identity token: {e}")
        return None


def build_identity_verifier(settings: Settings) -> IdentityVerifier:
    if settings.AUTH_PROVIDER == "jwt":
        return JWTIdentityVerifier(settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM)
    return FirebaseIdentityVerifier(settings.FIREBASE_PROJECT_ID)
