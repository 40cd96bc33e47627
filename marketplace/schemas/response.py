from pydantic import BaseModel, Field
from typing import Any, Optional
import uuid


def new_request_id() -> str:
    return uuid.uuid4().hex


class SuccessResponse(BaseModel):
    """Envelope for every successful HTTP response: success flag, request_id and data"""
    success: Optional[bool] = Field(default=True)
    request_id: str = Field(default_factory=new_request_id)
    data: Optional[Any] = None


class ErrorDetail(BaseModel):
    code: str
    message: Any
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Envelope rendered by the exception handlers"""
    success: bool = False
    error: ErrorDetail
    request_id: str = Field(default_factory=new_request_id)
