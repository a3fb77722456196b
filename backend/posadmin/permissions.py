# Overview: Roles and the screen access map used for role gating.

"""
Role-based screen gating.

Principals carry exactly one role. Each screen of the back office declares the
set of roles that may open it; an empty set means any authenticated principal.
Everything here is pure: no database, no request context.
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable


class Role(str, Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    INVENTORY = "inventory"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the Role for a stored/role string, or None when unknown."""
        if isinstance(value, Role):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


ALL_ROLES = frozenset(Role)
ANY_AUTHENTICATED: frozenset[Role] = frozenset()


# Screen name -> (label, path, allowed roles)
SCREENS: dict[str, tuple[str, str, frozenset[Role]]] = {
    "dashboard": ("Dashboard", "/", ANY_AUTHENTICATED),
    "sales": ("Sales Terminal", "/sales", frozenset({Role.ADMIN, Role.CASHIER})),
    "inventory": ("Inventory", "/inventory", frozenset({Role.ADMIN, Role.INVENTORY})),
    "warehouse": ("Warehouses", "/warehouse", frozenset({Role.ADMIN, Role.INVENTORY})),
    "users": ("Users", "/users", frozenset({Role.ADMIN})),
    "settings": ("Settings", "/settings", frozenset({Role.ADMIN})),
}


def allowed(principal_role, required_roles: Iterable[Role]) -> bool:
    """
    True when the principal's role satisfies the required set.

    An empty required set admits any authenticated principal; a missing or
    unknown role is never admitted.
    """
    role = Role.parse(principal_role)
    if role is None:
        return False
    required = frozenset(required_roles)
    if not required:
        return True
    return role in required


def screen_roles(screen: str) -> frozenset[Role]:
    try:
        return SCREENS[screen][2]
    except KeyError:
        raise KeyError(f"Unknown screen: {screen}") from None


def can_access_screen(principal_role, screen: str) -> bool:
    return allowed(principal_role, screen_roles(screen))


def visible_screens(principal_role) -> list[dict]:
    """Navigation entries the principal may see, in menu order."""
    return [
        {"screen": name, "label": label, "path": path}
        for name, (label, path, roles) in SCREENS.items()
        if allowed(principal_role, roles)
    ]
