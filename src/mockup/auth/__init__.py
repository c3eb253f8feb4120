"""
Mockup Session Authentication

Signed, time-limited session tokens and credential extraction.
"""

from .tokens import (
    AuthError,
    InvalidSignature,
    MalformedToken,
    SessionClaims,
    TokenExpired,
    TokenService,
    Unauthorized,
    extract_token,
)

__all__ = [
    'AuthError',
    'InvalidSignature',
    'MalformedToken',
    'SessionClaims',
    'TokenExpired',
    'TokenService',
    'Unauthorized',
    'extract_token',
]
