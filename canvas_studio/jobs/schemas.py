from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Handle lifecycle: submitted -> polling -> completed | failed.
# "cancelled" only marks handles cancelled before they reached a terminal state.
JobStatus = Literal["submitted", "polling", "completed", "failed", "cancelled"]

# What the generation collaborator reports for a job.
RemoteJobStatus = Literal["processing", "completed", "failed"]


class GenerationRequest(BaseModel):
    """Payload for POST /ai/generate."""
    prompt: str
    width: int = Field(default=512, gt=0)
    height: int = Field(default=512, gt=0)
    batch: int = Field(default=1, ge=1, le=10)
    model: Optional[str] = None
    negative: Optional[str] = None
    cfg: Optional[float] = None
    steps: Optional[int] = None
    seed: Optional[int] = None

    @field_validator("prompt")
    @classmethod
    def _prompt_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt is required")
        return v

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class GeneratedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class GenerationModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    default_params: Dict[str, Any] = Field(default_factory=dict, alias="defaultParams")


class JobStatusReply(BaseModel):
    """Reply of GET /ai/job/{id}."""
    status: RemoteJobStatus
    result: Optional[List[GeneratedImage]] = None
    reason: Optional[str] = None
