"""
Mockup Token Service

Issues and verifies signed, time-limited session tokens (HS256 JWTs).

Verification failures are reported as distinct AuthError subclasses so the
reason can be logged, but callers are expected to treat them all the same
way: the request is unauthorized.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import jwt

logger = logging.getLogger("mockup.auth")

ALGORITHM = 'HS256'
DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)
REQUIRED_CLAIMS = ('username', 'full_name', 'role', 'exp')


class AuthError(Exception):
    """Base class for every reason a token is rejected (Unauthorized)."""

    reason = 'unauthorized'


class InvalidSignature(AuthError):
    reason = 'invalid_signature'


class TokenExpired(AuthError):
    reason = 'expired'


class MalformedToken(AuthError):
    reason = 'malformed'


Unauthorized = AuthError


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a session token."""

    username: str
    full_name: str
    role: str

    def to_dict(self) -> Dict[str, str]:
        return {'username': self.username, 'full_name': self.full_name, 'role': self.role}

    def to_public_dict(self) -> Dict[str, str]:
        """Shape returned by the auth status endpoint."""
        return {'username': self.username, 'fullName': self.full_name, 'role': self.role}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Stateless issuer/verifier of session tokens.

    Tokens are signed with the current secret. Verification also accepts
    tokens signed with any of the previous secrets, which allows the secret
    to be rotated without logging everyone out.

    Example:
        tokens = TokenService(secret='s3cret')
        token = tokens.issue(SessionClaims('user', 'Mock User', 'user'))
        claims = tokens.verify(token)
    """

    def __init__(
        self,
        secret: str,
        previous_secrets: Optional[Sequence[str]] = None,
        lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
        clock: Callable[[], datetime] = _utcnow
    ):
        """
        Initialize token service.

        Args:
            secret: Current signing secret
            previous_secrets: Rotated-out secrets still accepted by verify()
            lifetime: Token lifetime (default 24 hours)
            clock: Returns the current aware datetime, replaceable in tests
        """
        if not secret:
            raise ValueError("Token secret must not be empty")
        self.secret = secret
        self.previous_secrets: List[str] = list(previous_secrets or [])
        self.lifetime = lifetime
        self.clock = clock

    def issue(self, claims: SessionClaims) -> str:
        """
        Encode and sign claims with an expiration `lifetime` from now.

        Signing errors are not caught: a service that cannot sign cannot
        serve authenticated traffic.
        """
        now = self.clock()
        payload: Dict[str, Any] = {
            **claims.to_dict(),
            'iat': int(now.timestamp()),
            'exp': int((now + self.lifetime).timestamp()),
        }
        logger.debug(f"Issuing session token for {claims.username} (expires {payload['exp']})")
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """
        Check signature and expiration of a token.

        Args:
            token: Encoded token string

        Returns:
            SessionClaims carried by the token

        Raises:
            InvalidSignature: MAC does not match any accepted secret
            TokenExpired: Token is past its expiration
            MalformedToken: Token structure or claims cannot be parsed
        """
        if not token or not isinstance(token, str):
            raise MalformedToken("empty token")

        payload = None
        signature_error: Optional[Exception] = None
        for secret in [self.secret, *self.previous_secrets]:
            try:
                payload = jwt.decode(
                    token,
                    secret,
                    algorithms=[ALGORITHM],
                    options={'require': ['exp'], 'verify_exp': False, 'verify_iat': False},
                )
                break
            except jwt.InvalidSignatureError as e:
                signature_error = e
            except jwt.InvalidTokenError as e:
                raise MalformedToken(str(e)) from e

        if payload is None:
            raise InvalidSignature(str(signature_error))

        # Expiry is checked against the injected clock, not the wall clock
        exp = payload.get('exp')
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise MalformedToken("exp claim must be a number")
        if exp <= self.clock().timestamp():
            raise TokenExpired("token has expired")

        missing = [name for name in REQUIRED_CLAIMS if not isinstance(payload.get(name), (str, int, float))]
        if missing:
            raise MalformedToken(f"missing claims: {', '.join(missing)}")

        return SessionClaims(
            username=str(payload['username']),
            full_name=str(payload['full_name']),
            role=str(payload['role']),
        )


def extract_token(
    cookies: Dict[str, str],
    headers: Any,
    cookie_name: str
) -> Optional[str]:
    """
    Find the session token of a request.

    The session cookie takes precedence over an `Authorization: Bearer`
    header when both are present.

    Args:
        cookies: Request cookies
        headers: Request headers (case-insensitive mapping)
        cookie_name: Name of the session cookie

    Returns:
        Token string, or None if the request carries no credential
    """
    cookie_token = cookies.get(cookie_name)
    if cookie_token:
        return cookie_token

    auth_header = headers.get('authorization') or ''
    scheme, _, value = auth_header.partition(' ')
    if scheme.lower() == 'bearer' and value.strip():
        return value.strip()
    return None
