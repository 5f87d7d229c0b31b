"""User roles and their privilege ordering.

Roles are persisted by name. Privilege comparisons go through ``rank`` so the
ordering never depends on how the enum values happen to sort.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    BANNED = "BANNED"
    PENDING = "PENDING"
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        """Privilege rank, higher means more privileged."""
        return _RANKS[self]

    def at_least(self, other: UserRole) -> bool:
        """True if this role is as privileged as ``other`` or more."""
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str | UserRole) -> UserRole:
        """Parse a role name case-insensitively.

        Raises:
            ValueError: If the name is not a known role.
        """
        if isinstance(value, UserRole):
            return value
        try:
            return cls[value.strip().upper()]
        except KeyError as e:
            msg = f"Unknown role: {value}"
            raise ValueError(msg) from e


_RANKS: dict[UserRole, int] = {
    UserRole.BANNED: 0,
    UserRole.PENDING: 1,
    UserRole.USER: 2,
    UserRole.MODERATOR: 3,
    UserRole.ADMIN: 4,
}

# Users at or above this role must be demoted before they can be deleted.
DELETION_PROTECTED_ROLE = UserRole.MODERATOR


def can_be_deleted(role: UserRole | str) -> bool:
    """Whether a user holding ``role`` may be deleted without a demotion first."""
    return not UserRole.parse(role).at_least(DELETION_PROTECTED_ROLE)
