"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID
from models.base import RunStatus


# ============================================================================
# Run Schemas
# ============================================================================

class RunSummary(BaseModel):
    """One XML reader run"""
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    run_id: UUID
    reference_name: str
    table_name: Optional[str] = None
    status: RunStatus
    logical_start_time: Optional[datetime] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    files_discovered: int = 0
    files_excluded: int = 0
    files_processed: int = 0
    files_failed: int = 0
    files_committed: int = 0
    records_emitted: int = 0
    error_message: Optional[str] = None


class RunListResponse(BaseModel):
    runs: List[RunSummary]
    total: int


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    latest_runs: List[RunSummary] = Field(default_factory=list)
    total_sources: int = 0
    failed_sources: int = 0

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif self.total_sources == 0 or self.failed_sources == 0:
            self.status = "healthy"
        elif self.failed_sources < self.total_sources:
            self.status = "degraded"
        else:
            self.status = "unhealthy"
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "total_sources": 1,
                "failed_sources": 0,
                "latest_runs": [
                    {
                        "run_id": "550e8400-e29b-41d4-a716-446655440000",
                        "reference_name": "books",
                        "table_name": "books_tracker",
                        "status": "committed",
                        "started_at": "2024-01-15T10:00:00Z",
                        "files_discovered": 3,
                        "files_committed": 3,
                        "records_emitted": 120
                    }
                ]
            }
        }
    )


# ============================================================================
# Tracker Schemas
# ============================================================================

class TrackedFileResponse(BaseModel):
    filename: str
    processed_at: datetime


class TrackerResponse(BaseModel):
    """Contents of one processed-file tracker table"""
    table_name: str
    total_files: int
    files: List[TrackedFileResponse]


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Resource not found",
                "detail": "File is not tracked",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
    )
