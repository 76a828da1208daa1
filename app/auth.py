"""
Authentication collaborators.
- Password hashing with bcrypt (passlib)
- Signed, time-limited tokens with itsdangerous: bearer tokens for users,
  a session cookie for the admin console
- FastAPI dependencies get_current_user_id() and get_current_admin()

Booking operations never read ambient session state; routes resolve the
caller here and pass the user id in explicitly.
"""
from fastapi import Cookie, Header
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext

from . import config
from .errors import Unauthenticated

# ----- Password hashing -----
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ----- Signed tokens -----
def _get_serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(config.SECRET_KEY, salt=salt)


def create_access_token(user_id: int) -> str:
    return _get_serializer("user-access").dumps({"userId": user_id})


def verify_access_token(token: str, max_age_seconds: int | None = None) -> int:
    """Return the user id for a valid token; raise otherwise."""
    payload = _get_serializer("user-access").loads(
        token, max_age=max_age_seconds or config.TOKEN_MAX_AGE_SECONDS
    )
    return int(payload["userId"])


def create_session_token(username: str) -> str:
    return _get_serializer("admin-session").dumps(username)


def verify_session_token(token: str, max_age_seconds: int = config.ADMIN_SESSION_MAX_AGE_SECONDS) -> str:
    """Return the admin username for a valid session token; raise otherwise."""
    return _get_serializer("admin-session").loads(token, max_age=max_age_seconds)


# ----- FastAPI dependencies -----
def get_current_user_id(authorization: str | None = Header(default=None)) -> int:
    """Resolve ``Authorization: Bearer <token>`` to a user id."""
    if not authorization:
        raise Unauthenticated("No authorization token provided")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("No authorization token provided")
    try:
        return verify_access_token(token.strip())
    except (BadSignature, SignatureExpired, KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token")


def get_current_admin(admin_session: str | None = Cookie(default=None)) -> str:
    """Resolve the admin session cookie to a username."""
    if not admin_session:
        raise Unauthenticated("Admin login required")
    try:
        return verify_session_token(admin_session)
    except (BadSignature, SignatureExpired):
        raise Unauthenticated("Admin session expired or invalid")
