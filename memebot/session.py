"""Process-wide bot identity and administrator authorization."""

from __future__ import annotations

import enum
import logging
import secrets
import threading
from typing import FrozenSet, Optional, Set

logger = logging.getLogger("memebot.session")


class AuthOutcome(enum.Enum):
    AUTHORIZED = "authorized"
    ALREADY_AUTHORIZED = "already_authorized"
    REJECTED = "rejected"
    DISABLED = "disabled"


class Session:
    """Mutable state shared by every message handler.

    The bot id is learned once when the gateway is ready and never changes
    afterwards. Authorized administrators only ever get added. Every read and
    update goes through one lock so handlers running on executor threads see a
    consistent view.
    """

    def __init__(self, admin_password: Optional[str] = None):
        self._lock = threading.Lock()
        self._bot_id: Optional[int] = None
        self._admin_password = admin_password or None
        self._authorized: Set[int] = set()

    @property
    def bot_id(self) -> Optional[int]:
        with self._lock:
            return self._bot_id

    @property
    def is_identified(self) -> bool:
        return self.bot_id is not None

    @property
    def admin_enabled(self) -> bool:
        return self._admin_password is not None

    @property
    def authorized_ids(self) -> FrozenSet[int]:
        with self._lock:
            return frozenset(self._authorized)

    def identify(self, bot_id: int) -> bool:
        with self._lock:
            if self._bot_id is None:
                self._bot_id = bot_id
                logger.info("Session identified as bot user %s", bot_id)
                return True
            if self._bot_id != bot_id:
                logger.warning(
                    "Ignoring bot id %s; session is already identified as %s",
                    bot_id,
                    self._bot_id,
                )
            return False

    def authenticate(self, user_id: int, password: str) -> AuthOutcome:
        with self._lock:
            if user_id in self._authorized:
                return AuthOutcome.ALREADY_AUTHORIZED
            if self._admin_password is None:
                return AuthOutcome.DISABLED
            if not secrets.compare_digest(password.encode("utf-8"), self._admin_password.encode("utf-8")):
                return AuthOutcome.REJECTED
            self._authorized.add(user_id)
            return AuthOutcome.AUTHORIZED

    def is_authorized(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._authorized


__all__ = ["AuthOutcome", "Session"]
