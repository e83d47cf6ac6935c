"""Storage key layout and tenant ownership checks."""

import uuid
from typing import Any, Optional

from .exceptions import OwnershipViolation, StoreError
from .models import AccessTier, AuthContext

FALLBACK_TENANT_SEGMENT = "undefined_agency"


def tenant_segment(tenant_id: Optional[str]) -> str:
    """Return the leading key segment for a tenant, or the fallback literal."""
    if tenant_id is None or str(tenant_id).strip() == "":
        return FALLBACK_TENANT_SEGMENT
    return f"agency_{tenant_id}"


def build_storage_key(
    tenant_id: Optional[str],
    entity_type: str,
    entity_id: str,
    tier: AccessTier,
    extension: str = "webp",
    unique_id: Optional[str] = None,
) -> str:
    """
    Build ``<tenant>/<entity_type>_<entity_id>/<tier>/<uuid>.<ext>``.

    Args:
        tenant_id: Caller's tenant; absent or empty falls back to "undefined_agency"
        entity_type: Owning entity type, e.g. "property"
        entity_id: Owning entity id
        tier: Access tier segment
        extension: File extension without the dot
        unique_id: Suffix override, a fresh uuid4 by default

    Returns:
        Object key
    """
    suffix = unique_id or str(uuid.uuid4())
    return (
        f"{tenant_segment(tenant_id)}/{entity_type}_{entity_id}/"
        f"{AccessTier(tier).value}/{suffix}.{extension}"
    )


def is_safe_segment(value: str) -> bool:
    """True when ``value`` can sit inside one key segment without changing the layout."""
    return bool(value) and "/" not in value and "\\" not in value and value not in (".", "..")


def validate_key(key: Any) -> str:
    """Reject keys that cannot address an object in the bucket."""
    if not isinstance(key, str) or not key.strip():
        raise StoreError("Invalid key: must be a non-empty string")
    if key.startswith("/") or ".." in key.split("/"):
        raise StoreError(f"Invalid key: {key}")
    return key


class KeyOwnershipGuard:
    """Prevents callers from touching keys outside their tenant namespace."""

    ADMIN_ROLE = "admin"

    def check(self, auth: AuthContext, key: str) -> None:
        """Raise OwnershipViolation unless ``key`` belongs to the caller's tenant."""
        if auth.role == self.ADMIN_ROLE:
            return
        if not auth.tenant_id:
            raise OwnershipViolation(f"Caller has no tenant; cannot own {key}")
        expected = tenant_segment(auth.tenant_id)
        if key.split("/", 1)[0] != expected:
            raise OwnershipViolation(f"Key {key} is outside {expected}")

    def owns(self, auth: AuthContext, key: str) -> bool:
        try:
            self.check(auth, key)
        except OwnershipViolation:
            return False
        return True
