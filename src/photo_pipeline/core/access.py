"""Bearer token verification and role-based authorization."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import jwt

from .exceptions import InsufficientRole, InvalidCredential, MissingCredential
from .models import AuthContext
from .protocols import TokenVerifierProtocol

UPLOAD_ROLES = frozenset({"agent", "agent_manager", "agent_admin"})
PRESIGN_ROLES = UPLOAD_ROLES
DELETE_ROLES = frozenset({"agent*", "admin*"})


class JwtTokenVerifier:
    """Verifies HS256 access tokens against a shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_aud": False},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidCredential("Invalid or expired token") from exc
        except jwt.PyJWTError as exc:
            raise InvalidCredential("Invalid token") from exc


def role_allowed(role: str, allowed_roles: Iterable[str]) -> bool:
    """Exact match, or prefix match for entries ending in ``*``."""
    for allowed in allowed_roles:
        if allowed.endswith("*"):
            if role.startswith(allowed[:-1]):
                return True
        elif role == allowed:
            return True
    return False


def bearer_token(header: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization`` header value."""
    parts = (header or "").split()
    if not parts:
        return None
    if len(parts) == 1 and parts[0].lower() == "bearer":
        return None
    return parts[-1]


class AccessControl:
    """The sole gate in front of every pipeline."""

    def __init__(self, verifier: TokenVerifierProtocol):
        self._verifier = verifier

    def authenticate(self, credential: Optional[str]) -> AuthContext:
        if not credential:
            raise MissingCredential("Missing Authorization header")

        claims = self._verifier.verify(credential)
        if claims.get("type") != "access":
            raise InvalidCredential("Invalid or expired token")

        subject = claims.get("sub")
        role = claims.get("role")
        if not subject or not isinstance(role, str):
            raise InvalidCredential("Token is missing required claims")

        tenant = claims.get("agency_id")
        return AuthContext(
            subject_id=str(subject),
            tenant_id=str(tenant) if tenant not in (None, "") else None,
            role=role,
            token_kind="access",
        )

    def authorize(self, credential: Optional[str], allowed_roles: Iterable[str]) -> AuthContext:
        """
        Verify ``credential`` and require its role to be in ``allowed_roles``.

        Raises:
            MissingCredential: no credential was presented
            InvalidCredential: verification failed or token is not an access token
            InsufficientRole: the role is not in the allow-list
        """
        auth = self.authenticate(credential)
        if not role_allowed(auth.role, allowed_roles):
            raise InsufficientRole(f"Role '{auth.role}' is not permitted")
        return auth
