"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access / refresh JWT creation and verification via PyJWT, each kind with its own secret
- Random identifiers for refresh tokens (jti) and password-reset links
"""
from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError

from flask import current_app

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures"""


class TokenExpired(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password against an Argon2 hash
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _sign(claims: Dict[str, Any], secret: str, lifetime, now: Optional[datetime]) -> str:
    issued = now or _now()
    payload = dict(claims)
    payload["iat"] = int(issued.timestamp())
    payload["exp"] = int((issued + lifetime).timestamp())
    return jwt.encode(payload, secret, algorithm=current_app.config["JWT_ALGORITHM"])


def sign_access(user_id: str, now: Optional[datetime] = None) -> str:
    """Short-lived access token; the same user, secret, TTL and clock give the same token."""
    return _sign(
        {"id": str(user_id), "type": ACCESS},
        current_app.config["JWT_SECRET"],
        current_app.config["ACCESS_TOKEN_EXPIRES"],
        now,
    )


def sign_refresh(user_id: str, now: Optional[datetime] = None) -> str:
    """Refresh token. The random jti makes every issuance a distinct string."""
    return _sign(
        {"id": str(user_id), "type": REFRESH, "jti": generate_jti()},
        current_app.config["JWT_REFRESH_SECRET"],
        current_app.config["REFRESH_TOKEN_EXPIRES"],
        now,
    )


def verify_token(token: str, secret: str, expected_type: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT against `secret`.
    Raises TokenExpired when past exp, InvalidSignature for anything else wrong
    (bad signature, malformed, wrong token type, missing id).
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token expired")
    except jwt.InvalidTokenError as exc:
        raise InvalidSignature(f"Invalid token: {exc}")

    if decoded.get("type") != expected_type:
        raise InvalidSignature("Wrong token type")
    if not decoded.get("id"):
        raise InvalidSignature("Token has no subject")
    return decoded


def verify_access(token: str) -> Dict[str, Any]:
    return verify_token(token, current_app.config["JWT_SECRET"], ACCESS)


def verify_refresh(token: str) -> Dict[str, Any]:
    return verify_token(token, current_app.config["JWT_REFRESH_SECRET"], REFRESH)


def peek_user_id(token: str) -> Optional[str]:
    """
    Read the id claim WITHOUT verifying signature or expiry.
    Only for best-effort revocation on logout; never for authorization.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError:
        return None
    user_id = claims.get("id")
    return str(user_id) if user_id else None


def digest_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """Return (raw token for the email link, digest to store)."""
    raw = secrets.token_hex(32)
    return raw, digest_reset_token(raw)
