"""
Single-slot refresh token store.

Each user row holds at most one refresh token: the one currently valid.
Writing a new one (login, rotation) implicitly invalidates the previous one.
Rotation goes through compare_and_set(), a single conditional UPDATE, so two
requests racing with the same old token cannot both win. The slot is only
ever read back through get_current_refresh_token(), never from a loaded User.
"""
from __future__ import annotations

import logging

from models.user import User

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, storage):
        self._storage = storage

    def get_current_refresh_token(self, user_id: str) -> str | None:
        session = self._storage.get_session()
        return (
            session.query(User.refresh_token)
            .filter(User.id == user_id)
            .scalar()
        )

    def set_current_refresh_token(self, user_id: str, token: str | None) -> bool:
        """Overwrite the slot. Returns False when the user does not exist."""
        session = self._storage.get_session()
        updated = (
            session.query(User)
            .filter(User.id == user_id)
            .update({User.refresh_token: token}, synchronize_session=False)
        )
        self._storage.save()
        return updated == 1

    def compare_and_set(self, user_id: str, expected: str, new: str | None) -> bool:
        """
        Replace the stored token with `new` only if it still equals `expected`.
        Returns True when this call performed the swap.
        """
        if not expected:
            return False
        session = self._storage.get_session()
        updated = (
            session.query(User)
            .filter(User.id == user_id, User.refresh_token == expected)
            .update({User.refresh_token: new}, synchronize_session=False)
        )
        self._storage.save()
        if updated != 1:
            logger.debug("refresh token compare-and-set lost for user %s", user_id)
        return updated == 1

    def clear(self, user_id: str) -> None:
        self.set_current_refresh_token(user_id, None)
