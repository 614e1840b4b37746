"""
Live admin dashboard.

The ``DashboardBroadcaster`` keeps connected sockets bucketed by role,
records recent activity in a bounded in-memory ring and pushes the
aggregated dashboard state to admin sockets whenever something changes and
on a fixed interval.
"""

import asyncio
from collections import deque
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from educentral.common.logger import app_logger
from educentral.database.base import utcnow
from educentral.database.init_db import session_scope
from educentral.realtime.manager import ConnectedUser, WebSocketManager, now_iso
from educentral.storage.repository import DatabaseStorage

logger = app_logger.getChild("realtime.dashboard")

ADMIN_GROUP = "admin"
STUDENT_GROUP = "student"

ACTIVITY_EVENT = "dashboard_activity"

StatsProvider = Callable[[], Awaitable[int]]


def start_of_today() -> datetime:
    return utcnow().replace(hour=0, minute=0, second=0, microsecond=0)


async def completed_today_from_database() -> int:
    """Tests and quizzes finished since midnight UTC."""
    async with session_scope() as session:
        return await DatabaseStorage(session).count_attempts_completed_since(start_of_today())


class DashboardBroadcaster:
    """
    Pushes live dashboard state to administrator sockets.

    Args:
        manager: Connection registry the dashboard sends through
        stats_provider: Coroutine returning today's completion count
        recent_activity_size: Number of activity entries kept in memory
        interval: Seconds between periodic broadcasts, 0 disables them
    """

    def __init__(
        self,
        manager: WebSocketManager,
        stats_provider: Optional[StatsProvider] = None,
        recent_activity_size: int = 20,
        interval: float = 30.0,
    ):
        self.manager = manager
        self.stats_provider = stats_provider
        self.recent_activity: Deque[Dict[str, Any]] = deque(maxlen=recent_activity_size)
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

        manager.register_listener(ACTIVITY_EVENT, self._on_remote_activity)

    async def register_user(self, connection_id: str, user: ConnectedUser) -> None:
        """Attach an identity to a socket and bucket it by role."""
        self.manager.set_identity(connection_id, user)
        group = ADMIN_GROUP if user.is_admin else STUDENT_GROUP
        await self.manager.add_to_group(connection_id, group)
        logger.info(f"User {user.name} authenticated on dashboard socket as {group}")

    def touch(self, connection_id: str) -> None:
        user = self.manager.get_identity(connection_id)
        if user is not None:
            user.last_activity = datetime.now(timezone.utc)

    async def handle_disconnect(self, connection_id: str) -> None:
        """Forget a socket, refreshing admins if it had authenticated."""
        user = await self.manager.disconnect(connection_id)
        if user is not None:
            logger.info(f"User {user.name} disconnected")
            await self.broadcast()

    def get_connected_users(self) -> List[ConnectedUser]:
        return list(self.manager.identities.values())

    async def broadcast_to_students(self, message: Dict[str, Any]) -> int:
        return await self.manager.broadcast_to_group(message, STUDENT_GROUP)

    async def record_activity(self, user: str, action: str) -> Dict[str, Any]:
        """
        Add an entry to recent activity, push it to admins and relay it to
        the other server processes.

        Returns:
            The recorded activity entry
        """
        activity = {"user": user, "action": action, "timestamp": now_iso()}
        self.recent_activity.appendleft(activity)
        await self.broadcast({"newActivity": activity})
        await self.manager.publish_event(ACTIVITY_EVENT, activity)
        return activity

    async def _on_remote_activity(self, event: Dict[str, Any]) -> None:
        if event.get("origin") == self.manager.server_id:
            return
        activity = event.get("data") or {}
        self.recent_activity.appendleft(activity)
        await self.broadcast({"newActivity": activity})

    async def _completed_today(self) -> int:
        if self.stats_provider is None:
            return 0
        try:
            return await self.stats_provider()
        except Exception as e:
            logger.error(f"Failed to load completed attempts for dashboard: {e}")
            return 0

    async def build_dashboard(self) -> Dict[str, Any]:
        live_users = self.get_connected_users()
        return {
            "liveUsers": [user.to_message() for user in live_users],
            "totalUsers": len(live_users),
            "activeTests": self.manager.group_size(STUDENT_GROUP),
            "completedToday": await self._completed_today(),
            "recentActivity": list(self.recent_activity),
        }

    async def broadcast(self, extra: Optional[Dict[str, Any]] = None) -> int:
        """
        Send a ``dashboard_update`` to every admin socket.

        Args:
            extra: Top-level keys merged into the message, e.g. ``newActivity``

        Returns:
            Number of admin sockets reached
        """
        if not self.manager.group_size(ADMIN_GROUP):
            return 0

        message = {
            "type": "dashboard_update",
            "data": await self.build_dashboard(),
            "timestamp": now_iso(),
        }
        if extra:
            message.update(extra)
        return await self.manager.broadcast_to_group(message, ADMIN_GROUP)

    async def start(self) -> None:
        if self.interval > 0 and self._task is None:
            self._task = asyncio.create_task(self._run())
            logger.info(f"Dashboard broadcasts every {self.interval}s")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.broadcast()
            except Exception as e:
                logger.error(f"Periodic dashboard broadcast failed: {e}")
