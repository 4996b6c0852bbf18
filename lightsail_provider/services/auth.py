"""
Authentication service: credential validation + JWT creation/verification.

Flow
────
1. Client calls POST /auth/token with username + password (OAuth2 form).
2. Credentials are checked against the configured user store
   (``settings.demo_users``).
3. On success a signed JWT access token is returned.
4. Every resource route requires  Authorization: Bearer <token>; the
   `get_current_user` dependency decodes it and injects the username.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from lightsail_provider.config import settings

# Stored passwords may be bcrypt hashes instead of plain text
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ── Token helpers ─────────────────────────────────────────────────────────────

def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT whose 'sub' claim is *subject* (the operator's username)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    payload = {"sub": subject, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[str]:
    """Return the username in *token*, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
        return payload.get("sub")
    except JWTError:
        return None


# ── Credential validation ─────────────────────────────────────────────────────

def authenticate_user(username: str, password: str) -> bool:
    """Check *username* / *password* against the configured user store."""
    stored_password = settings.get_demo_users().get(username)
    if not stored_password:
        return False
    if stored_password.startswith("$2b$"):
        return pwd_context.verify(password, stored_password)
    return stored_password == password
