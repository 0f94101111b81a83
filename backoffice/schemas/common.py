"""
Pydantic schemas shared by all routers.
"""

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every failed request."""
    success: bool = False
    error: str
    details: Optional[str] = None


# OpenAPI description of the failure body, shared by every router
ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 409, 500)
}


class SecondaryFailureResponse(BaseModel):
    """A secondary write that failed without failing the request."""
    effect: str
    error: str
    reference: Optional[str] = None

    class Config:
        from_attributes = True
