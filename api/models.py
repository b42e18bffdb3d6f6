"""
Pydantic models for the host-facing API.
"""
from typing import Any, Optional
from pydantic import BaseModel


class SuccessResponse(BaseModel):
    """Envelope of every successful host API response"""
    message: str
    data: Optional[Any] = None
