from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from canvas_studio.app.errors import ProjectNotFoundError, TransportError
from canvas_studio.canvas.schemas import CanvasSize, ProjectDoc
from canvas_studio.clients.protocols import ChatMessage
from canvas_studio.core.ids import new_project_id
from canvas_studio.jobs.schemas import (
    GeneratedImage,
    GenerationModel,
    GenerationRequest,
    JobStatusReply,
)

DEFAULT_MODELS = [
    GenerationModel(
        id="star3",
        name="Star-3",
        default_params={"width": 1024, "height": 1024, "steps": 25, "cfg": 4.5},
    ),
    GenerationModel(
        id="sdxl",
        name="SDXL",
        default_params={"width": 1024, "height": 1024, "steps": 30, "cfg": 7.5},
    ),
]


@dataclass
class _SimJob:
    request: GenerationRequest
    ready_at: float
    status: str = "processing"
    result: Optional[List[GeneratedImage]] = None
    reason: Optional[str] = None


class SimulatedGenerationBackend:
    """
    Single-process stand-in for the generation service.
    Jobs live in a dict keyed by an incrementing integer; a job reports
    `processing` until `complete_after_s` has elapsed, then completes with
    placeholder image URLs (or fails with `failure_reason` if set).
    Not durable: a real deployment would put job state on a queue.
    """

    def __init__(
        self,
        *,
        complete_after_s: float = 1.0,
        failure_reason: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        models: Optional[List[GenerationModel]] = None,
    ):
        self.complete_after_s = complete_after_s
        self.failure_reason = failure_reason
        self.clock = clock
        self.models = list(models or DEFAULT_MODELS)
        self.jobs: Dict[str, _SimJob] = {}
        self._next_job_id = 1

    async def list_models(self) -> List[GenerationModel]:
        return list(self.models)

    async def submit(self, request: GenerationRequest) -> str:
        if not request.prompt.strip():
            raise TransportError("Prompt is required", status_code=400)
        job_id = str(self._next_job_id)
        self._next_job_id += 1
        self.jobs[job_id] = _SimJob(request=request, ready_at=self.clock() + self.complete_after_s)
        return job_id

    async def get_job(self, job_id: str) -> JobStatusReply:
        job = self.jobs.get(str(job_id))
        if job is None:
            raise TransportError(f"Job not found: {job_id}", status_code=404)
        if job.status == "processing" and self.clock() >= job.ready_at:
            self._finish(job)
        return JobStatusReply(status=job.status, result=job.result, reason=job.reason)

    def _finish(self, job: _SimJob) -> None:
        if self.failure_reason:
            job.status = "failed"
            job.reason = self.failure_reason
            return
        req = job.request
        job.result = [
            GeneratedImage(url=f"https://picsum.photos/{req.width}/{req.height}?random={random.random()}")
            for _ in range(req.batch)
        ]
        job.status = "completed"


class SimulatedChatBackend:
    """Placeholder assistant: fixed greeting, echoes user messages."""

    GREETING = "Hi, I'm your AI designer. Let's start creating!"

    async def get_messages(self) -> List[ChatMessage]:
        return [ChatMessage(role="assistant", content=self.GREETING)]

    async def send(self, message: str) -> str:
        if not message.strip():
            raise TransportError("Message is required", status_code=400)
        return f'You said: "{message}"'


@dataclass
class InMemoryProjectGateway:
    """Project collaborator kept in a dict; `writes` records every PUT payload."""
    projects: Dict[str, ProjectDoc] = field(default_factory=dict)
    writes: List[Dict[str, Any]] = field(default_factory=list)

    def create_project(
        self,
        *,
        title: str = "Untitled",
        canvas_size: Optional[CanvasSize] = None,
        layers: Optional[List[Dict[str, Any]]] = None,
        project_id: Optional[str] = None,
    ) -> ProjectDoc:
        doc = ProjectDoc(
            id=project_id or new_project_id(),
            title=title,
            canvas_size=canvas_size or CanvasSize(),
            layers=list(layers or []),
        )
        self.projects[doc.id] = doc
        return doc

    async def get_project(self, project_id: str) -> ProjectDoc:
        doc = self.projects.get(project_id)
        if doc is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}", status_code=404)
        return doc.model_copy(deep=True)

    async def put_layers(self, project_id: str, layers: List[Dict[str, Any]]) -> ProjectDoc:
        doc = self.projects.get(project_id)
        if doc is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}", status_code=404)
        self.writes.append({"project_id": project_id, "layers": layers})
        doc = doc.model_copy(update={"layers": list(layers)}, deep=True)
        self.projects[project_id] = doc
        return doc.model_copy(deep=True)
