"""
User Registry

Resolves a display name to a stable user id and role with a single
INSERT ... ON CONFLICT (full_name) DO UPDATE statement, so concurrent
first orders under the same name never race on the unique key.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import StoreError, ValidationError
from app.models import User, UserRole, utcnow
from app.services.users.base import BaseRolePolicy

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class ResolvedUser:
    """Identity returned by UserRegistry.resolve."""
    user_id: int
    full_name: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserRegistry:
    """
    Display name -> user identity.

    Runs inside the caller's transaction; it never commits on its own.
    """

    def __init__(self, session: AsyncSession, policy: BaseRolePolicy):
        self.session = session
        self.policy = policy

    async def resolve(self, full_name: Optional[str]) -> ResolvedUser:
        """
        Upsert the user row for `full_name` and return its identity.

        Raises:
            ValidationError: name missing or blank
        """
        name = (full_name or "").strip()
        if not name:
            raise ValidationError("userName is required")

        role = self.policy.role_for(name)
        insert = self._insert_for_dialect()

        stmt = insert(User).values(full_name=name, role=role, created_at=utcnow())
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.full_name],
            set_={"role": stmt.excluded.role, "updated_at": utcnow()},
        ).returning(User.id, User.role)

        row = (await self.session.execute(stmt)).one()
        logger.debug(f"Resolved user '{name}' -> #{row.id} ({row.role})")

        return ResolvedUser(user_id=row.id, full_name=name, role=UserRole(row.role))

    def _insert_for_dialect(self):
        dialect = self.session.get_bind().dialect.name
        try:
            return _UPSERT_DIALECTS[dialect]
        except KeyError:
            logger.error(f"No atomic upsert available for dialect '{dialect}'")
            raise StoreError(f"Unsupported database dialect '{dialect}'")
