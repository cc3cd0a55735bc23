"""Explicit current-user context, passed to code that needs the signed-in user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from models import User


@dataclass
class SessionContext:
    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    def is_current(self, user_id: str) -> bool:
        return self.user is not None and self.user.id == user_id

    def refresh(self, updated: Optional[User]) -> bool:
        """Swap in a freshly stored copy of the session user, if it is one."""
        if updated is None or not self.is_current(updated.id):
            return False
        self.user = updated
        return True
