from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from canvas_studio.app.errors import ProjectNotFoundError, TransportError
from canvas_studio.canvas.schemas import Asset, AssetCategory, ProjectDoc
from canvas_studio.clients.protocols import ChatMessage
from canvas_studio.jobs.schemas import GenerationModel, GenerationRequest, JobStatusReply

logger = logging.getLogger(__name__)


class ApiClient:
    """
    Thin wrapper around httpx.AsyncClient for the editor's REST collaborators.
    The bearer token comes from the external auth context; this class only
    forwards it. Every failure surfaces as TransportError.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
            logger.debug("%s %s -> %s", method, path, resp.status_code)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            raise TransportError(f"{method} {path} failed with HTTP {code}", status_code=code) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{method} {path} returned non-JSON body") from e


def _parse(model_cls, data: Any, what: str):
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise TransportError(f"Malformed {what} reply: {e.error_count()} error(s)") from e


# -----------------------------
# Gateways
# -----------------------------

class ProjectHttpGateway:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_project(self, project_id: str) -> ProjectDoc:
        try:
            data = await self.api.request("GET", f"/projects/{project_id}")
        except TransportError as e:
            if e.status_code == 404:
                raise ProjectNotFoundError(f"Project not found: {project_id}", status_code=404) from e
            raise
        return _parse(ProjectDoc, data, "project")

    async def put_layers(self, project_id: str, layers: List[Dict[str, Any]]) -> ProjectDoc:
        try:
            data = await self.api.request("PUT", f"/projects/{project_id}", json={"layers": layers})
        except TransportError as e:
            if e.status_code == 404:
                raise ProjectNotFoundError(f"Project not found: {project_id}", status_code=404) from e
            raise
        return _parse(ProjectDoc, data, "project")


class AssetHttpGateway:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_assets(self) -> List[Asset]:
        data = await self.api.request("GET", "/assets")
        if not isinstance(data, list):
            raise TransportError("Malformed asset list reply")
        return [_parse(Asset, a, "asset") for a in data]

    async def upload_asset(
        self,
        filename: str,
        content: bytes,
        *,
        tags: Optional[Sequence[str]] = None,
        category: Optional[AssetCategory] = None,
        content_type: str = "application/octet-stream",
    ) -> Asset:
        form: Dict[str, str] = {}
        if tags:
            form["tags"] = ",".join(tags)
        if category:
            form["category"] = category
        data = await self.api.request(
            "POST",
            "/assets/upload",
            files={"file": (filename, content, content_type)},
            data=form,
        )
        return _parse(Asset, data, "asset")


class GenerationHttpGateway:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_models(self) -> List[GenerationModel]:
        data = await self.api.request("GET", "/ai/models")
        if not isinstance(data, list):
            raise TransportError("Malformed model list reply")
        return [_parse(GenerationModel, m, "model") for m in data]

    async def submit(self, request: GenerationRequest) -> str:
        data = await self.api.request("POST", "/ai/generate", json=request.to_payload())
        job_id = data.get("jobId") if isinstance(data, dict) else None
        if job_id is None:
            raise TransportError("Generate reply did not include a jobId")
        return str(job_id)

    async def get_job(self, job_id: str) -> JobStatusReply:
        data = await self.api.request("GET", f"/ai/job/{job_id}")
        return _parse(JobStatusReply, data, "job status")


class ChatHttpGateway:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_messages(self) -> List[ChatMessage]:
        data = await self.api.request("GET", "/ai/chat")
        messages = data.get("messages") if isinstance(data, dict) else None
        return [_parse(ChatMessage, m, "chat message") for m in (messages or [])]

    async def send(self, message: str) -> str:
        data = await self.api.request("POST", "/ai/chat", json={"message": message})
        if not isinstance(data, dict):
            raise TransportError("Malformed chat reply")
        return str(data.get("reply") or "")
