"""
Request dependencies that hand the application's stores to route handlers
"""

from typing import Optional

from fastapi import Request

from app.store import BroadcastLog, InstanceRegistry


def get_registry(request: Request) -> InstanceRegistry:
    """Instance registry owned by the running application."""
    return request.app.state.registry


def get_broadcast_log(request: Request) -> BroadcastLog:
    """Broadcast log owned by the running application."""
    return request.app.state.broadcasts


def get_source_address(request: Request) -> Optional[str]:
    """Address of the connecting client, as seen by the server."""
    return request.client.host if request.client else None
