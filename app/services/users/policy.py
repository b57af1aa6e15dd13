"""
Allow-list Role Policy

Grants the admin role to display names listed in ADMIN_NAMES.
Comparison is case-insensitive under the configured NAME_LOCALE.
"""

from typing import Iterable

from app.models import UserRole
from app.services.users.base import BaseRolePolicy, fold_name


class AllowListRolePolicy(BaseRolePolicy):
    """Admin if the folded name is in the configured set, user otherwise."""

    def __init__(self, admin_names: Iterable[str], locale: str = ""):
        self.locale = locale
        self._admins = frozenset(
            fold_name(name, locale) for name in admin_names if name.strip()
        )

    @property
    def provider_name(self) -> str:
        return "allow-list"

    def role_for(self, full_name: str) -> UserRole:
        if fold_name(full_name, self.locale) in self._admins:
            return UserRole.ADMIN
        return UserRole.USER

    def __repr__(self):
        return f"<AllowListRolePolicy {len(self._admins)} admin(s), locale={self.locale!r}>"
