"""
EduCentral Real-time Updates Module

WebSocket connection registry and the live admin dashboard pushed over it.
"""

from educentral.realtime.manager import ConnectedUser, WebSocketManager
from educentral.realtime.dashboard import DashboardBroadcaster, completed_today_from_database
from educentral.realtime.controllers import ws_router

__all__ = [
    "ConnectedUser",
    "WebSocketManager",
    "DashboardBroadcaster",
    "completed_today_from_database",
    "ws_router",
]
