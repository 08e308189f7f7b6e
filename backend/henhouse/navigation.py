# Overview: Role-gated screens of the Hen House client.

"""
Screens exposed to signed-in staff. Admin-only screens resolve to the cash
register for employees; the same rule backs require_role() on the API.
"""

from .models.auth import ROLE_ADMIN

SCREEN_DASHBOARD = "dashboard"
SCREEN_CASH_REGISTER = "cash-register"
SCREEN_CLOCK = "clock"
SCREEN_PRODUCTS = "products"
SCREEN_STAFF = "staff"

# Menu order
SCREENS = (
    SCREEN_DASHBOARD,
    SCREEN_CASH_REGISTER,
    SCREEN_CLOCK,
    SCREEN_PRODUCTS,
    SCREEN_STAFF,
)
ADMIN_ONLY = frozenset({SCREEN_DASHBOARD, SCREEN_PRODUCTS, SCREEN_STAFF})

FALLBACK_SCREEN = SCREEN_CASH_REGISTER


def can_access(role: str | None, screen: str) -> bool:
    if screen not in SCREENS:
        return False
    return role == ROLE_ADMIN or screen not in ADMIN_ONLY


def menu_for(role: str | None) -> list[str]:
    return [screen for screen in SCREENS if can_access(role, screen)]


def default_screen(role: str | None) -> str:
    return SCREEN_DASHBOARD if role == ROLE_ADMIN else SCREEN_CASH_REGISTER


def resolve_screen(role: str | None, screen: str | None) -> str:
    """Screen actually shown for a requested one."""
    if screen and can_access(role, screen):
        return screen
    return FALLBACK_SCREEN
