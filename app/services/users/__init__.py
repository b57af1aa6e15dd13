"""
Role Policy Factory

Single entry point for the role policy used by the user registry.

Usage:
    from app.services.users import get_role_policy, UserRegistry

    registry = UserRegistry(session, get_role_policy())
    user = await registry.resolve("Ali Veli")
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.users.base import BaseRolePolicy, fold_name
from app.services.users.policy import AllowListRolePolicy
from app.services.users.registry import ResolvedUser, UserRegistry

logger = logging.getLogger(__name__)


@lru_cache()
def get_role_policy() -> BaseRolePolicy:
    """
    Get the configured role policy instance (cached).

    Returns:
        BaseRolePolicy: allow-list policy built from ADMIN_NAMES
    """
    settings = get_settings()
    policy = AllowListRolePolicy(settings.admin_names_list, locale=settings.name_locale)
    logger.info(f"Role Policy: {policy.provider_name} ({len(settings.admin_names_list)} admin name(s))")
    return policy


def reset_role_policy() -> None:
    """
    Clear the cached role policy.

    The next call to get_role_policy() rebuilds it from settings.
    """
    get_role_policy.cache_clear()
    logger.debug("Role policy cache cleared")


__all__ = [
    "get_role_policy",
    "reset_role_policy",
    "BaseRolePolicy",
    "AllowListRolePolicy",
    "ResolvedUser",
    "UserRegistry",
    "fold_name",
]
