"""
WebSocket Manager Module

This module provides a WebSocketManager class for handling WebSocket connections
and broadcasting messages to connected clients. It supports connection management,
group-based messaging, connection identities and event relay between server
processes over Redis.
"""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from fastapi import WebSocket
from pydantic import BaseModel, ConfigDict, Field
from redis.asyncio import Redis
from redis.exceptions import RedisError

from educentral.common.logger import app_logger

logger = app_logger.getChild("realtime.manager")

EVENT_CHANNEL_PREFIX = "websocket_events"

Listener = Callable[[Dict[str, Any]], Awaitable[None]]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConnectedUser(BaseModel):
    """Identity attached to an authenticated socket."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="User id")
    name: str = Field(..., description="Display name")
    role: str = Field("student", description="admin or student")
    email: Optional[str] = Field(None, description="Email address")
    connected_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="connectedAt"
    )
    last_activity: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="lastActivity"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_message(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class WebSocketManager:
    """
    WebSocket connection manager for handling real-time communication.

    Attributes:
        active_connections: Dictionary of connection IDs to WebSocket instances
        connection_groups: Dictionary mapping group names to sets of connection IDs
        identities: Dictionary mapping connection IDs to authenticated users
        redis: Optional Redis client for pub/sub in multi-server deployments
        server_id: Tag added to published events so a process can skip its own
    """

    def __init__(self, redis_client: Optional[Redis] = None):
        """
        Initialize the WebSocketManager.

        Args:
            redis_client: Optional Redis client for pub/sub messaging across servers
        """
        self.active_connections: Dict[str, WebSocket] = {}
        self.connection_groups: Dict[str, Set[str]] = {}
        self.identities: Dict[str, ConnectedUser] = {}
        self.redis = redis_client
        self.server_id = str(uuid.uuid4())
        self.listeners: Dict[str, List[Listener]] = {}
        self._redis_task: Optional[asyncio.Task] = None

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a WebSocket connection and register it.

        Args:
            websocket: The WebSocket connection to manage

        Returns:
            Connection ID for the accepted connection
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        self.active_connections[connection_id] = websocket
        logger.debug(f"WebSocket connection {connection_id} established")
        return connection_id

    async def disconnect(self, connection_id: str) -> Optional[ConnectedUser]:
        """
        Remove a WebSocket connection from every group.

        Args:
            connection_id: ID of the connection to remove

        Returns:
            The identity the connection was authenticated as, if any
        """
        self.active_connections.pop(connection_id, None)

        for group in list(self.connection_groups.keys()):
            self.connection_groups[group].discard(connection_id)
            if not self.connection_groups[group]:
                del self.connection_groups[group]

        user = self.identities.pop(connection_id, None)
        logger.debug(f"WebSocket connection {connection_id} disconnected")
        return user

    def set_identity(self, connection_id: str, user: ConnectedUser) -> None:
        self.identities[connection_id] = user

    def get_identity(self, connection_id: str) -> Optional[ConnectedUser]:
        return self.identities.get(connection_id)

    async def add_to_group(self, connection_id: str, group: str) -> None:
        """
        Add a connection to a group.

        Args:
            connection_id: Connection ID to add to group
            group: Group name
        """
        if connection_id not in self.active_connections:
            logger.warning(f"Cannot add connection {connection_id} to group {group}: Connection not found")
            return

        self.connection_groups.setdefault(group, set()).add(connection_id)
        logger.debug(f"Added connection {connection_id} to group {group}")

    async def remove_from_group(self, connection_id: str, group: str) -> None:
        if group in self.connection_groups:
            self.connection_groups[group].discard(connection_id)
            if not self.connection_groups[group]:
                del self.connection_groups[group]

    def group_size(self, group: str) -> int:
        return len(self.connection_groups.get(group, ()))

    async def send_personal_message(self, message: Any, connection_id: str) -> bool:
        """
        Send a message to a specific connection.

        A failed send drops the connection.

        Args:
            message: Message to send (will be converted to JSON if not a string)
            connection_id: Connection ID to send message to

        Returns:
            True if sent successfully, False otherwise
        """
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            logger.warning(f"Cannot send message to connection {connection_id}: Connection not found")
            return False

        if not isinstance(message, str):
            message = json.dumps(message, default=str)

        try:
            await websocket.send_text(message)
            return True
        except Exception as e:
            logger.error(f"Error sending message to connection {connection_id}: {str(e)}")
            await self.disconnect(connection_id)
            return False

    async def broadcast_to_group(self, message: Any, group: str) -> int:
        """
        Broadcast a message to a specific group of connections.

        Args:
            message: Message to broadcast
            group: Group name to send to

        Returns:
            Number of connections message was sent to
        """
        sent_count = 0
        for connection_id in list(self.connection_groups.get(group, ())):
            if await self.send_personal_message(message, connection_id):
                sent_count += 1
        return sent_count

    def register_listener(self, event_type: str, callback: Listener) -> None:
        """
        Register a callback function for a specific event type.

        Args:
            event_type: Event type to listen for
            callback: Async callback function that accepts the event dict
        """
        self.listeners.setdefault(event_type, []).append(callback)
        logger.debug(f"Registered listener for event type {event_type}")

    async def _dispatch(self, event_type: str, event: Dict[str, Any]) -> None:
        for callback in self.listeners.get(event_type, []):
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"Error in event listener callback: {str(e)}")

    async def publish_event(self, event_type: str, event_data: Dict[str, Any]) -> None:
        """
        Publish an event to local listeners and, when Redis is configured,
        to the other server processes.

        Args:
            event_type: Event type
            event_data: Event data
        """
        event = {
            "type": event_type,
            "origin": self.server_id,
            "timestamp": now_iso(),
            "data": event_data
        }

        await self._dispatch(event_type, event)

        if self.redis is not None:
            try:
                await self.redis.publish(f"{EVENT_CHANNEL_PREFIX}:{event_type}", json.dumps(event, default=str))
            except RedisError as e:
                logger.error(f"Failed to publish {event_type} to Redis: {e}")

    async def start_redis_listener(self) -> None:
        """
        Start Redis pubsub listener for multi-server deployments.
        This should be called during application startup.
        """
        if self.redis is None:
            logger.warning("Cannot start Redis listener: No Redis client provided")
            return

        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(f"{EVENT_CHANNEL_PREFIX}:*")
        self._redis_task = asyncio.create_task(self._redis_listener_task(pubsub))
        logger.info("Started Redis pubsub listener for WebSocket events")

    async def stop_redis_listener(self) -> None:
        if self._redis_task is not None:
            self._redis_task.cancel()
            try:
                await self._redis_task
            except asyncio.CancelledError:
                pass
            self._redis_task = None

    async def _redis_listener_task(self, pubsub) -> None:
        """
        Background task to listen for Redis pubsub messages.

        Events this process published itself are skipped; their local
        listeners already ran.

        Args:
            pubsub: Redis pubsub instance
        """
        try:
            async for message in pubsub.listen():
                if message["type"] != "pmessage":
                    continue
                try:
                    channel = message["channel"]
                    if isinstance(channel, bytes):
                        channel = channel.decode("utf-8")
                    event_type = channel.split(":", 1)[1]
                    event = json.loads(message["data"])
                except (ValueError, IndexError, KeyError) as e:
                    logger.error(f"Error processing Redis pubsub message: {str(e)}")
                    continue

                if event.get("origin") == self.server_id:
                    continue
                await self._dispatch(event_type, event)
        except asyncio.CancelledError:
            await pubsub.punsubscribe()
            logger.info("Redis pubsub listener stopped")
            raise
        except RedisError as e:
            logger.error(f"Error in Redis pubsub listener: {str(e)}")
