"""Bearer token authorization gate.

Every ledger-affecting call passes through authorize() first. The gate is
synchronous and does no network I/O; a rejected token never reaches the
RPC client or the signer.

Token verification rules:
- missing, blank or unparseable token      -> Unauthenticated
- bad signature, disallowed algorithm,
  missing sub/exp claims                   -> TokenInvalid
- now > exp + leeway                       -> TokenExpired
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from jose import JWTError, jwt

from solrelay.config import Settings
from solrelay.errors import TokenExpired, TokenInvalid, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Subject:
    """Authenticated caller identity."""
    user_id: str
    username: str


def extract_token(authorization: Optional[str], cookie: Optional[str] = None) -> Optional[str]:
    """Pick the bearer token from the Authorization header or session cookie."""
    if authorization:
        scheme, _, credentials = authorization.strip().partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return None

    if cookie and cookie.strip():
        return cookie.strip()

    return None


class AuthorizationGate:
    """Validates session tokens and extracts the caller's identity."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")

        self._secret = secret
        self.algorithm = algorithm
        self.leeway = leeway
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthorizationGate":
        """Create a gate from settings.

        Without JWT_SECRET a random per-process secret is used, so only
        tokens minted by this process are accepted.
        """
        secret = settings.jwt_secret
        if not secret:
            logger.warning("JWT_SECRET not set - using an ephemeral token secret")
            secret = secrets.token_urlsafe(32)

        return cls(
            secret,
            algorithm=settings.jwt_algorithm,
            leeway=settings.token_leeway_seconds,
        )

    def authorize(self, token: Optional[str]) -> Subject:
        """Verify a bearer token.

        Returns:
            Subject the token was issued to

        Raises:
            Unauthenticated: Token missing or garbled
            TokenInvalid: Signature or claims rejected
            TokenExpired: Token past its expiry
        """
        if not token or not token.strip():
            raise Unauthenticated("Access token required")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise Unauthenticated("Malformed access token")

        if header.get("alg") != self.algorithm:
            logger.warning(f"Rejected token signed with {header.get('alg')}")
            raise TokenInvalid("Token algorithm not allowed")

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            raise TokenInvalid("Token verification failed")

        subject = claims.get("sub")
        expires_at = claims.get("exp")
        if not subject or isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise TokenInvalid("Token is missing required claims")

        if self._clock() > expires_at + self.leeway:
            raise TokenExpired("Token has expired")

        return Subject(user_id=str(subject), username=str(claims.get("username") or subject))

    def issue_token(self, subject: Subject, ttl_seconds: int = 3600) -> str:
        """Mint a signed token for a subject.

        Credential checks belong to the session service; this only signs.
        """
        issued_at = int(self._clock())
        claims = {
            "sub": subject.user_id,
            "username": subject.username,
            "iat": issued_at,
            "exp": issued_at + ttl_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)
