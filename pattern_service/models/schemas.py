"""
Pydantic schemas for API requests and responses.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Common/Utility Schemas
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class HealthResponse(BaseModel):
    """Liveness response including the database readiness state."""
    status: str = Field(..., description="Health status message, e.g., 'ok'")
    timestamp: int = Field(..., description="Server time in epoch milliseconds")
    database: str = Field(..., description="Database state: starting, ready or degraded")


# PUBLIC_INTERFACE
class DBHealthResponse(BaseModel):
    """Health response schema for the database connectivity check."""
    status: str = Field(..., description="Health status message, e.g., 'ok'")


# PUBLIC_INTERFACE
class SuccessResponse(BaseModel):
    success: bool = Field(default=True)


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Shape of every error body returned by the API."""
    error: str = Field(..., description="Human-readable error message")


# ---------------------------------------------------------------------------
# Pattern Schemas
# ---------------------------------------------------------------------------

# PUBLIC_INTERFACE
class PatternIn(BaseModel):
    """Payload for creating a pattern.

    Fields are only checked for presence; column types are enforced by the database.
    """
    params: Optional[Any] = Field(default=None, description="Arbitrary JSON parameters.")
    timestamp: Optional[Any] = Field(default=None, description="Client-defined epoch timestamp.")

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={"example": {"params": {"a": 1}, "timestamp": 1000}},
    )


# PUBLIC_INTERFACE
class PatternOut(BaseModel):
    """A stored pattern as returned by the API."""
    id: str = Field(..., description="Pattern identifier (UUID string).")
    params: Any = Field(..., description="Arbitrary JSON parameters.")
    timestamp: int = Field(..., description="Client-defined epoch timestamp.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "f3b803f2-8c9e-4f5b-9b64-8cd3f1a5b7e1",
                "params": {"a": 1},
                "timestamp": 1000,
            }
        },
    )
