"""
Instance routes - bot processes reporting their identity and usage counters
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_registry, get_source_address
from app.models import (
    ErrorResponse,
    Instance,
    InstanceRegistration,
    RegisterResponse,
    Stats,
)
from app.store import InstanceRegistry

router = APIRouter(prefix="/api", tags=["Instances"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    responses={400: {"model": ErrorResponse}},
)
async def register_instance(
    registration: InstanceRegistration,
    registry: InstanceRegistry = Depends(get_registry),
    source_address: Optional[str] = Depends(get_source_address),
) -> RegisterResponse:
    """
    Register or refresh a bot instance.

    Bots call this periodically as a heartbeat. Every call also prunes
    instances that have not checked in for 24 hours.
    """
    instance = registry.register(
        registration.instance_id,
        owner=registration.owner,
        version=registration.version,
        user_count=registration.user_count,
        group_count=registration.group_count,
        source_address=source_address,
    )
    return RegisterResponse(instance_id=instance.instance_id)


@router.get("/stats", response_model=Stats)
async def get_stats(registry: InstanceRegistry = Depends(get_registry)) -> Stats:
    """
    Tracker statistics.

    ``activeInstances`` counts instances seen in the last 5 minutes; user and
    group totals cover every retained instance.
    """
    return registry.get_stats()


@router.get("/instances", response_model=List[Instance])
async def list_instances(
    registry: InstanceRegistry = Depends(get_registry),
) -> List[Instance]:
    """All retained instances, most recently seen first."""
    return registry.list_instances()
