"""
Role-based authorization predicate.

Every admin-only handler goes through ``authorize`` (usually via the
``require_role`` dependency in ``app.api.deps``) instead of comparing roles
inline.
"""
from dataclasses import dataclass
from typing import Optional

from app.models.account import Role


@dataclass(frozen=True)
class Authorization:
    allowed: bool
    reason: Optional[str] = None


def authorize(user, required_role: Role) -> Authorization:
    """
    Decide whether ``user`` may act with ``required_role``.

    ``user`` is anything with a ``role`` attribute (the guard's CurrentUser or
    an Account), or None for anonymous callers. The check is an exact match:
    ADMIN-only routes admit ADMIN and nobody else.
    """
    if user is None:
        return Authorization(allowed=False, reason="Authentication required")
    if Role(user.role) != required_role:
        return Authorization(allowed=False, reason="Insufficient privileges")
    return Authorization(allowed=True)
