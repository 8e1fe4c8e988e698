"""
Security utilities: password hashing, session tokens and audit logging.

Session tokens are stateless HS256 JWTs. They carry the caller's identity
and the institution the session is acting as; nothing is stored
server-side, so a token stays valid until it expires even after the
caller switches institution and receives a new one.
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set

import bcrypt
import jwt

from core.config import Settings
from core.errors import ConfigError, ExpiredTokenError, InvalidTokenError

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("security.audit")


# ==================== Passwords ==================== #

def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ==================== Session tokens ==================== #

@dataclass(frozen=True)
class SessionClaims:
    """Identity and tenant context carried by a session token."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    active_institution_id: Optional[int] = None
    expires_at: Optional[datetime] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("expires_at")
        return payload


class TokenService:
    """
    Issues and verifies signed session tokens.

    Built once at startup from ``Settings``; a missing signing secret is a
    ``ConfigError`` raised here so the process refuses to start.
    """

    def __init__(self, secret_key: Optional[str], algorithm: str = "HS256", expire_minutes: int = 480):
        if not secret_key:
            raise ConfigError("JWT_SECRET_KEY is not configured")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expire_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.access_token_expire_minutes,
        )

    def issue(self, user: Any, active_institution_id: Optional[int]) -> str:
        """
        Sign a token for ``user`` acting as ``active_institution_id``.

        Args:
            user: Object exposing id, first_name, last_name and email
            active_institution_id: Institution the session acts as, or None

        Returns:
            Encoded JWT
        """
        now = datetime.now(timezone.utc)
        claims = SessionClaims(
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            active_institution_id=active_institution_id,
        )
        payload = {
            **claims.to_payload(),
            "iat": now,
            "exp": now + self.expires_delta,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaims:
        """
        Verify signature and expiry, returning the embedded claims.

        Raises:
            ExpiredTokenError: If the token has expired
            InvalidTokenError: On bad signature or malformed payload
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            logger.debug(f"Token rejected: {e}")
            raise InvalidTokenError()

        try:
            active = payload.get("active_institution_id")
            return SessionClaims(
                user_id=int(payload["user_id"]),
                first_name=payload.get("first_name", ""),
                last_name=payload.get("last_name", ""),
                email=payload["email"],
                active_institution_id=int(active) if active is not None else None,
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError("Token payload is malformed")


# ==================== Audit logging ==================== #

class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    SWITCH_TENANT = "SWITCH_TENANT"
    LOGIN = "LOGIN"


class ResourceType(str, Enum):
    APPLICATION = "APPLICATION"
    INSTITUTION = "INSTITUTION"
    SESSION = "SESSION"
    USER = "USER"


# Keys whose values identify a person
PII_FIELDS: Set[str] = {
    "email", "phone", "first_name", "last_name", "full_name", "name",
    "linkedin_url", "lattes_url",
}

# Lists are cut to this many items in audit details
AUDIT_LIST_LIMIT = 5


def _obscure(value: Any) -> str:
    if isinstance(value, str) and value:
        return f"{value[0]}***[{len(value)}]"
    return "[MASKED]"


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Hide personal values in audit details.

    Strings under a key from ``PII_FIELDS`` keep their first character and
    length only, e.g. ``b***[10]``. Recursion stops after ten levels.
    """
    if depth > 10:
        return "[MAX_DEPTH]"
    if isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:AUDIT_LIST_LIMIT]]
    if not isinstance(data, dict):
        return data
    return {
        key: _obscure(value) if key.lower() in PII_FIELDS else mask_pii(value, depth + 1)
        for key, value in data.items()
    }


def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[Any] = None,
    user_id: Optional[int] = None,
    institution_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    contains_pii: bool = False,
) -> Dict[str, Any]:
    """
    Write one JSON line to the ``security.audit`` logger and return it.

    Pass ``contains_pii=True`` when ``details`` holds personal data; it is
    masked with ``mask_pii`` before being written.
    """
    if details and contains_pii:
        details = mask_pii(details)

    record = dict(
        timestamp=datetime.now(timezone.utc).isoformat(),
        event_type="AUDIT",
        action=action.value,
        resource_type=resource_type.value,
        resource_id=None if resource_id is None else str(resource_id),
        user_id=user_id,
        institution_id=institution_id,
        contains_pii=contains_pii,
        details=details,
    )
    audit_logger.info(json.dumps(record, default=str))
    return record
