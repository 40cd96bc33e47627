"""Inbound WebSocket frames. Keys are camelCase on the wire."""
import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClientFrame(BaseModel):
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)


class AuthFrame(BaseModel):
    token: str = Field(..., min_length=1)


class StatusUpdateFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: uuid.UUID = Field(..., alias="orderId")
    status: str
    note: Optional[str] = None


class LocationUpdateFrame(BaseModel):
    latitude: float
    longitude: float


class LocationRequestFrame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: uuid.UUID = Field(..., alias="orderId")
