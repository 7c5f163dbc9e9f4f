"""Request context carried by every caller-facing operation."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    """Identity of the principal invoking an operation.

    Attributes
    ----------
    uid:
        Unique identifier of the calling principal.
    is_admin:
        ``True`` when the principal holds the administrator role.
    attributes:
        Optional extra principal attributes (e.g. username, namespace) that
        are forwarded to the audit trail.
    """

    uid: str
    is_admin: bool = False
    attributes: dict[str, object] = field(default_factory=dict)

    def can_manage(self, owner_uid: str | None) -> bool:
        """Return ``True`` when the principal is an admin or the owner."""
        return self.is_admin or (owner_uid is not None and owner_uid == self.uid)
