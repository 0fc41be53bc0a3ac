"""Collaborator contracts consumed by the canvas core.

The core only depends on these Protocols; HTTP, MongoDB and in-process
simulations all satisfy them structurally. Every method may raise
TransportError (or a subclass) on collaborator failure.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence

from pydantic import BaseModel

from canvas_studio.canvas.schemas import Asset, AssetCategory, ProjectDoc
from canvas_studio.jobs.schemas import GenerationModel, GenerationRequest, JobStatusReply


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"] = "assistant"
    content: str = ""


class ProjectGateway(Protocol):
    async def get_project(self, project_id: str) -> ProjectDoc: ...
    async def put_layers(self, project_id: str, layers: List[Dict[str, Any]]) -> ProjectDoc: ...


class AssetGateway(Protocol):
    async def list_assets(self) -> List[Asset]: ...
    async def upload_asset(
        self,
        filename: str,
        content: bytes,
        *,
        tags: Optional[Sequence[str]] = None,
        category: Optional[AssetCategory] = None,
    ) -> Asset: ...


class GenerationGateway(Protocol):
    async def list_models(self) -> List[GenerationModel]: ...
    async def submit(self, request: GenerationRequest) -> str: ...
    async def get_job(self, job_id: str) -> JobStatusReply: ...


class ChatGateway(Protocol):
    async def get_messages(self) -> List[ChatMessage]: ...
    async def send(self, message: str) -> str: ...
