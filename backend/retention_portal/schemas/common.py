"""
Common Pydantic schemas shared across the application.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# =============================================================================
# Health Check Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """
    Health check response schema.

    Used by monitoring systems to verify service health.
    """

    status: str = Field(
        ...,
        description="Overall health status (healthy, degraded)"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    timestamp: datetime = Field(
        ...,
        description="Current server timestamp"
    )
    vicidial: str = Field(
        ...,
        description="VICIdial configuration status (configured, not_configured)"
    )
    vicidial_db: str = Field(
        ...,
        description="VICIdial database lookups (configured, not_configured)"
    )
    environment: str = Field(
        ...,
        description="Runtime environment (development, production)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "timestamp": "2024-01-15T10:30:00Z",
                "vicidial": "configured",
                "vicidial_db": "not_configured",
                "environment": "development"
            }
        }
    }
