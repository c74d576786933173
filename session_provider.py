# session_provider.py
import logging
from typing import Optional, Protocol

from starlette.requests import Request

logger = logging.getLogger(__name__)


class SessionProvider(Protocol):
    async def get_subject(self, request: Request) -> Optional[str]:
        """Return the authenticated end-user id, or None when nobody is logged in."""
        ...


class StarletteSessionProvider:
    """Reads ``user_id`` from the signed session cookie set by the login service."""

    session_key = "user_id"

    async def get_subject(self, request: Request) -> Optional[str]:
        if "session" not in request.scope:
            logger.error("SessionMiddleware is not installed; treating request as unauthenticated")
            return None
        user_id = request.session.get(self.session_key)
        if user_id is None or user_id == "":
            return None
        return str(user_id)
