"""
Bot Tracker - Pydantic models for stored records and API payloads

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Stored records
class Instance(CamelModel):
    """A registered bot process."""

    instance_id: str
    owner: str = "Unknown"
    version: str = "1.0.0"
    user_count: int = 0
    group_count: int = 0
    first_seen: int = Field(description="Epoch millis of the first registration")
    last_ping: int = Field(description="Epoch millis of the latest registration")
    status: str = "online"
    ip: Optional[str] = None


class Broadcast(CamelModel):
    """An operator message that instances poll for and acknowledge."""

    id: str
    message: str
    created: int = Field(description="Epoch millis of creation")
    status: str = "active"
    delivered_to: List[str] = Field(default_factory=list)


class Stats(CamelModel):
    total_instances: int
    active_instances: int
    total_users: int
    total_groups: int
    last_updated: str


# Request Models
class InstanceRegistration(CamelModel):
    # instance_id is optional here so a missing id reaches the registry and is
    # reported as a validation error with the service's error body.
    instance_id: Optional[str] = None
    owner: Optional[str] = None
    version: Optional[str] = None
    user_count: Optional[int] = Field(default=None, ge=0)
    group_count: Optional[int] = Field(default=None, ge=0)


class BroadcastCreate(CamelModel):
    # Untyped; BroadcastLog.create checks the key before the message.
    message: Optional[Any] = None
    owner_key: Optional[Any] = None


class DeliveryAck(CamelModel):
    instance_id: Optional[str] = None
    broadcast_id: Optional[str] = None


# Response Models
class RegisterResponse(CamelModel):
    success: bool = True
    message: str = "Instance registered"
    instance_id: str


class BroadcastCreateResponse(CamelModel):
    success: bool = True
    broadcast_id: str
    message: str = "Broadcast created successfully"


class PendingBroadcasts(CamelModel):
    broadcasts: List[Broadcast]


class SuccessResponse(CamelModel):
    success: bool = True


class HealthResponse(CamelModel):
    status: str = "ok"
    timestamp: str


class ServiceDescriptor(CamelModel):
    status: str
    version: str
    endpoints: List[str]


class ErrorResponse(CamelModel):
    error: str
