"""
Role Policy Abstract Base Class

Decides which role a display name resolves to. The registry asks the
policy on every upsert, so a changed policy re-roles existing users the
next time they order.

Design Pattern: Strategy Pattern
    - Allow-list from configuration by default
    - Can be swapped for an external auth collaborator
"""

import unicodedata
from abc import ABC, abstractmethod

from app.models import UserRole

# Languages whose dotted/dotless I do not fold like English
_TURKIC_LOCALES = {"tr", "az"}


def fold_name(name: str, locale: str = "") -> str:
    """
    Normalize a display name for comparison.

    Trims, collapses inner whitespace, applies NFC and case folding.
    For Turkic locales "I" folds to "ı" and "İ" to "i".
    """
    folded = unicodedata.normalize("NFC", " ".join(name.split()))
    if locale in _TURKIC_LOCALES:
        folded = folded.replace("I", "ı").replace("İ", "i")
    return folded.casefold()


class BaseRolePolicy(ABC):
    """
    Abstract base class for role policies.

    Example:
        >>> policy = get_role_policy()
        >>> policy.role_for("Ali Veli")
        <UserRole.USER: 'user'>
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the policy (e.g. "allow-list")."""
        pass

    @abstractmethod
    def role_for(self, full_name: str) -> UserRole:
        """
        Compute the role for a trimmed, non-empty display name.

        Args:
            full_name: Display name as submitted

        Returns:
            UserRole: ADMIN or USER
        """
        pass
