"""
Progress event schema.

Dependencies: pydantic
System role: Payload pushed to progress observers and returned by status queries
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ProgressEvent(BaseModel):
    """Point-in-time progress of one job."""

    type: str = Field(default="progress", description="Event type discriminator")
    job_id: str = Field(serialization_alias="jobId")
    percentage: int = Field(ge=0, le=100, description="Integer percentage complete")
    message: str
    status: str
    timestamp: datetime

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dictionary with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
