"""Profile roles.

A profile always holds at least one role from ``VALID_ROLES``. ``RoleSet`` is
the only place role lists are mutated, so handlers never filter or append
role arrays themselves.
"""
from typing import Iterable, Iterator, List, Optional, Tuple

VALID_ROLES: Tuple[str, ...] = ('customer', 'seller', 'creator', 'admin')
DEFAULT_ROLE = 'customer'

# Roles allowed to list products
CREATOR_ROLES = frozenset({'creator', 'seller'})


class InvalidRoleError(ValueError):
    """Raised when a role outside VALID_ROLES is used."""
    def __init__(self, roles: Iterable[str]):
        self.roles = list(roles)
        label = 'role' if len(self.roles) == 1 else 'roles'
        super().__init__(f"Invalid {label}: {', '.join(self.roles)}")


def validate_role(role: str) -> str:
    """Return the role unchanged if it is valid."""
    if role not in VALID_ROLES:
        raise InvalidRoleError([role])
    return role


class RoleSet:
    """Immutable, ordered, never-empty set of profile roles."""

    __slots__ = ('_roles',)

    def __init__(self, roles: Optional[Iterable[str]] = None):
        roles = list(roles or [])
        invalid = [r for r in roles if r not in VALID_ROLES]
        if invalid:
            raise InvalidRoleError(invalid)

        unique: List[str] = []
        for role in roles:
            if role not in unique:
                unique.append(role)
        self._roles = tuple(unique) or (DEFAULT_ROLE,)

    @classmethod
    def from_list(cls, roles: Optional[Iterable[str]]) -> 'RoleSet':
        """Build from a stored roles column, which may be NULL."""
        return cls(roles)

    def add(self, role: str) -> 'RoleSet':
        """Return a set including ``role``; the same set if already present."""
        validate_role(role)
        if role in self._roles:
            return self
        return RoleSet(self._roles + (role,))

    def remove(self, role: str) -> 'RoleSet':
        """Return a set without ``role``, falling back to the default role."""
        return RoleSet(r for r in self._roles if r != role)

    def to_list(self) -> List[str]:
        return list(self._roles)

    def __contains__(self, role: object) -> bool:
        return role in self._roles

    def __iter__(self) -> Iterator[str]:
        return iter(self._roles)

    def __len__(self) -> int:
        return len(self._roles)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RoleSet):
            return set(self._roles) == set(other._roles)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._roles))

    def __repr__(self) -> str:
        return f"RoleSet({list(self._roles)!r})"


def has_role(profile: dict, *roles: str) -> bool:
    """Check whether a profile holds any of the given roles.

    Stored roles are read as-is; unknown values never match.
    """
    held = profile.get('roles') or [DEFAULT_ROLE]
    return any(role in held for role in roles)


def is_admin(profile: dict) -> bool:
    return has_role(profile, 'admin')


def is_creator(profile: dict) -> bool:
    return has_role(profile, *CREATOR_ROLES)


__all__ = [
    'VALID_ROLES',
    'DEFAULT_ROLE',
    'CREATOR_ROLES',
    'InvalidRoleError',
    'RoleSet',
    'validate_role',
    'has_role',
    'is_admin',
    'is_creator',
]
