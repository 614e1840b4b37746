"""
WebSocket Controllers Module

The ``/ws`` endpoint behind the live admin dashboard. Clients authenticate
over the socket and report test activity; admins receive dashboard updates.
"""

import json
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from educentral.auth.jwt import validate_token
from educentral.common.error_handling import AuthenticationError
from educentral.common.logger import LoggerAdapter, app_logger
from educentral.config import get_settings
from educentral.realtime.dashboard import DashboardBroadcaster
from educentral.realtime.manager import ConnectedUser, WebSocketManager, now_iso

logger = app_logger.getChild("realtime.controllers")

ws_router = APIRouter()


def get_websocket_manager(websocket: WebSocket) -> WebSocketManager:
    return websocket.app.state.components["websocket_manager"]


def get_dashboard(websocket: WebSocket) -> DashboardBroadcaster:
    return websocket.app.state.components["dashboard"]


def connected_user(**fields: Any) -> ConnectedUser:
    """Build the socket identity, refusing fields of the wrong type."""
    try:
        return ConnectedUser(**fields)
    except PydanticValidationError as e:
        raise AuthenticationError(
            "User identity is malformed",
            details={"fields": [".".join(str(part) for part in error["loc"]) for error in e.errors()]}
        ) from e


def identify(message: Dict[str, Any]) -> ConnectedUser:
    """
    Resolve the identity claimed by an ``auth`` message.

    A signed access token is always accepted. A plain ``user`` object is
    only accepted when the server is configured to trust client identities.

    Raises:
        AuthenticationError: If no acceptable identity is supplied
    """
    token = message.get("token")
    if token:
        claims = validate_token(token)
        return connected_user(
            id=str(claims["sub"]),
            name=claims.get("username") or str(claims["sub"]),
            role=claims.get("role") or "student",
            email=claims.get("email"),
        )

    user = message.get("user")
    if isinstance(user, dict) and get_settings().WS_TRUST_CLIENT_IDENTITY:
        if user.get("id") is None:
            raise AuthenticationError("User identity is missing an id")
        return connected_user(
            id=str(user["id"]),
            name=str(user.get("name") or user.get("username") or user["id"]),
            role=user.get("role") or "student",
            email=user.get("email"),
        )

    raise AuthenticationError("An access token is required")


async def handle_message(
    message: Dict[str, Any],
    connection_id: str,
    manager: WebSocketManager,
    dashboard: DashboardBroadcaster,
) -> None:
    message_type = message.get("type")

    if message_type == "auth":
        try:
            user = identify(message)
        except AuthenticationError as e:
            await manager.send_personal_message(
                {"type": "auth_error", "message": e.message, "timestamp": now_iso()},
                connection_id
            )
            return
        await dashboard.register_user(connection_id, user)
        await dashboard.broadcast()
        await manager.send_personal_message(
            {"type": "auth_success", "user": user.to_message(), "timestamp": now_iso()},
            connection_id
        )

    elif message_type in ("test_started", "test_completed"):
        user = manager.get_identity(connection_id)
        if user is None:
            return
        if message_type == "test_started":
            action = f"Started test: {message.get('testTitle')}"
        else:
            action = f"Completed test: {message.get('testTitle')} (Score: {message.get('score')}%)"
        await dashboard.record_activity(user.name, action)

    elif message_type == "activity":
        dashboard.touch(connection_id)

    elif message_type == "ping":
        await manager.send_personal_message({"type": "pong", "timestamp": now_iso()}, connection_id)


@ws_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Dashboard WebSocket endpoint.

    Invalid JSON and unknown message types are ignored.
    """
    manager = get_websocket_manager(websocket)
    dashboard = get_dashboard(websocket)

    connection_id = await manager.connect(websocket)
    connection_logger = LoggerAdapter(logger, {"connection_id": connection_id})
    await manager.send_personal_message(
        {"type": "connection_established", "timestamp": now_iso()},
        connection_id
    )

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError as e:
                connection_logger.warning(f"Invalid JSON message: {e}")
                continue

            if isinstance(message, dict):
                await handle_message(message, connection_id, manager, dashboard)

    except WebSocketDisconnect:
        connection_logger.debug("WebSocket disconnected")
    finally:
        await dashboard.handle_disconnect(connection_id)
