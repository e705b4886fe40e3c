"""Principal value object representing an authenticated identity.

Pure domain object with no external dependencies. Immutable (frozen dataclass).
Built from verified JWT claims by the auth middleware.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    """Account role issued by the external auth layer."""

    TALENT = "TALENT"
    STUDIO = "STUDIO"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller performing a request.

    Attributes:
        subject: JWT 'sub' claim, the user id in the auth layer.
        role: Account role from the 'role' claim.
        tenant_type: 'talent' or 'studio' from the 'tenant_type' claim.
            None for accounts without an entity (administrators).
        entity_id: Profile or studio id owned by the caller, if any.
        email: Email from the 'email' claim. None if absent.
    """

    subject: str
    role: Role
    tenant_type: str | None = None
    entity_id: str | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        """Whether the principal may mutate the profile schema."""
        return self.role in ADMIN_ROLES

    def owns(self, tenant_type: str, entity_id: str) -> bool:
        """Check whether the principal is the given profile or studio.

        Args:
            tenant_type: Tenant type of the entity being accessed.
            entity_id: Identifier of the entity being accessed.

        Returns:
            True when both the tenant type and entity id match the claims.
        """
        return self.tenant_type == tenant_type and self.entity_id == entity_id
