"""Token handling and service-layer capability checks."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from quadvote.core.settings import settings
from quadvote.services.errors import AuthorizationError

ROLE_USER = "user"
ROLE_SERVICE = "service"
ROLES = (ROLE_USER, ROLE_SERVICE)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: an opaque user id and whether it is the service identity."""

    user_id: str
    is_service: bool = False


def create_access_token(subject: str, role: str = ROLE_USER) -> str:
    """Create a signed JWT for ``subject`` carrying its role."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode: dict[str, object] = {"sub": subject, "role": role, "exp": expire}
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> Principal:
    """Resolve a bearer token into a ``Principal``.

    Raises:
        AuthorizationError: The token is malformed, expired or carries no subject.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise AuthorizationError("Could not validate credentials") from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthorizationError("Could not validate credentials")
    role = payload.get("role", ROLE_USER)
    if role not in ROLES:
        raise AuthorizationError("Could not validate credentials")
    return Principal(user_id=subject, is_service=role == ROLE_SERVICE)


def ensure_can_read_ledger(principal: Principal, user_id: str) -> None:
    """Ledger rows are readable by their owner and by the service identity."""
    if principal.is_service or principal.user_id == user_id:
        return
    raise AuthorizationError("You may only read your own credit ledger")


def ensure_service(principal: Principal) -> None:
    """Privileged writes are reserved for the service identity."""
    if not principal.is_service:
        raise AuthorizationError("This operation requires the service identity")
