from sqlalchemy import select
from sqlalchemy.engine import Engine

from medibook.auth.principal import Role
from medibook.database import create_session_factory
from medibook.models.user import User


class UserDirectory:
    """Read-only view of the principals known to the identity provider."""

    def __init__(self, engine: Engine):
        self._session_factory = create_session_factory(engine)

    def get_users(self, user_ids) -> dict[int, User]:
        """Return the known users among ``user_ids``, keyed by id."""
        ids = set(user_ids)
        if not ids:
            return {}

        db = self._session_factory()
        try:
            users = db.scalars(select(User).where(User.id.in_(ids))).all()
        finally:
            db.close()
        return {user.id: user for user in users}

    def resolve_principal(self, user_id: int, role: Role) -> bool:
        db = self._session_factory()
        try:
            found = db.scalar(
                select(User.id).where(User.id == user_id, User.role == Role(role).value)
            )
        finally:
            db.close()
        return found is not None
