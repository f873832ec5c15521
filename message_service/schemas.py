"""
Pydantic schemas for request/response validation.
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Pydantic Request Models
# =============================================================================

class MessageCreate(BaseModel):
    """
    Body of POST /.

    id is optional; when omitted the store assigns a random one.
    text is required, a missing value is rejected with 422.
    """
    id: Optional[str] = Field(
        None,
        description="Message identifier, generated when omitted"
    )
    text: str = Field(..., description="Message text content")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"id": "abc", "text": "hello"},
                {"text": "hello"},
            ]
        }
    }


# =============================================================================
# Pydantic Response Models
# =============================================================================

class MessageResponse(BaseModel):
    """A stored message."""
    id: str = Field(..., description="Message identifier")
    text: str = Field(..., description="Message text content")

    model_config = {
        "from_attributes": True,  # ORM entities and SQL result rows
    }


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    detail: str = Field(..., description="Error description")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
