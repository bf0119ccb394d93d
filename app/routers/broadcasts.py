"""
Broadcast routes - operator messages polled and acknowledged by bot instances
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_broadcast_log
from app.models import (
    Broadcast,
    BroadcastCreate,
    BroadcastCreateResponse,
    DeliveryAck,
    ErrorResponse,
    PendingBroadcasts,
    SuccessResponse,
)
from app.store import BroadcastLog

router = APIRouter(prefix="/api", tags=["Broadcasts"])
logger = logging.getLogger(__name__)


@router.post(
    "/broadcast",
    response_model=BroadcastCreateResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_broadcast(
    payload: BroadcastCreate,
    log: BroadcastLog = Depends(get_broadcast_log),
) -> BroadcastCreateResponse:
    """
    Create a broadcast.

    Requires the operator's owner key. Only the 50 most recent broadcasts
    are kept.
    """
    broadcast = log.create(payload.message, payload.owner_key)
    return BroadcastCreateResponse(broadcast_id=broadcast.id)


@router.get("/broadcasts", response_model=List[Broadcast])
async def list_broadcasts(
    log: BroadcastLog = Depends(get_broadcast_log),
) -> List[Broadcast]:
    """All retained broadcasts, newest first."""
    return log.list_all()


@router.get("/broadcasts/{instance_id}", response_model=PendingBroadcasts)
async def get_pending_broadcasts(
    instance_id: str,
    log: BroadcastLog = Depends(get_broadcast_log),
) -> PendingBroadcasts:
    """Broadcasts the instance has not acknowledged yet."""
    return PendingBroadcasts(broadcasts=log.list_pending(instance_id))


@router.post(
    "/broadcast-delivered",
    response_model=SuccessResponse,
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": DeliveryAck.model_json_schema()}
            }
        }
    },
)
async def mark_delivered(
    request: Request,
    log: BroadcastLog = Depends(get_broadcast_log),
) -> SuccessResponse:
    """
    Acknowledge delivery of a broadcast.

    Always succeeds, so instances can retry freely; unknown broadcasts and
    repeated acknowledgments are no-ops.

    The body is parsed by hand: malformed JSON or wrongly typed ids are
    ignored instead of answered with a 400.
    """
    try:
        ack = DeliveryAck.model_validate(await request.json())
    except ValueError:
        # json.JSONDecodeError and pydantic.ValidationError
        logger.debug("Ignoring malformed delivery acknowledgment")
        return SuccessResponse()

    log.acknowledge_delivery(ack.instance_id, ack.broadcast_id)
    return SuccessResponse()
