from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, List
from datetime import datetime

class CanvasSizeDoc(BaseModel):
    width: int = 1920
    height: int = 1080

class ProjectRecord(BaseModel):
    """Stored shape of a project document. `layers` holds LayerDTO dicts."""
    id: str = Field(alias="_id")
    owner: str
    title: str
    description: str = ""
    canvas_size: CanvasSizeDoc = Field(default_factory=CanvasSizeDoc)
    layers: List[Dict[str, Any]] = Field(default_factory=list)
    version: int = 1
    created_at: datetime
    updated_at: datetime
