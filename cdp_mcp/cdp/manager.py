"""
Holder for the process-wide active tab session.
"""

from __future__ import annotations

import logging
from typing import Optional

from cdp_mcp.cdp.errors import NotConnectedError
from cdp_mcp.cdp.session import TabSession

logger = logging.getLogger(__name__)

NOT_CONNECTED_MESSAGE = "Not connected. Use cdp_launch or cdp_connect first."


class ConnectionManager:
    """Owns at most one active TabSession.

    ``replace`` always tears the previous session down before installing the
    new one, so two sessions never share the slot.

    Example:
        manager = ConnectionManager()
        await manager.replace(TabSession(options))
        session = manager.require()
        await manager.close()
    """

    def __init__(self) -> None:
        self._current: Optional[TabSession] = None

    @property
    def current(self) -> Optional[TabSession]:
        return self._current

    @property
    def is_connected(self) -> bool:
        return self._current is not None and self._current.is_connected

    async def replace(self, session: TabSession) -> TabSession:
        """Disconnect the current session, then install ``session``."""
        previous = self._current
        self._current = None
        if previous is not None and previous is not session:
            logger.debug(f"Replacing session for {previous.host}:{previous.port}")
            await previous.disconnect()
        self._current = session
        return session

    def require(self) -> TabSession:
        """Return the installed session.

        Raises:
            NotConnectedError: If no session is installed.
        """
        if self._current is None:
            raise NotConnectedError(NOT_CONNECTED_MESSAGE)
        return self._current

    async def close(self) -> bool:
        """Disconnect and drop the current session.

        Returns:
            True if a session was installed.
        """
        session = self._current
        self._current = None
        if session is None:
            return False
        await session.disconnect()
        return True
