from __future__ import annotations
import asyncio
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from canvas_studio.app.errors import DatabaseError, ProjectNotFoundError
from canvas_studio.canvas.schemas import ProjectDoc
from canvas_studio.core.ids import new_project_id
from canvas_studio.db.schemas import ProjectRecord

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class ProjectRepo:
    def __init__(self, projects: Collection):
        self.projects = projects

    def create_project(
        self,
        *,
        owner: str,
        title: str,
        description: str = "",
        canvas_size: Optional[Dict[str, int]] = None,
        layers: Optional[List[Dict[str, Any]]] = None,
        project_id: Optional[str] = None,
    ) -> str:
        now = _utcnow()
        record = ProjectRecord.model_validate({
            "_id": project_id or new_project_id(),
            "owner": owner,
            "title": title,
            "description": description,
            "canvas_size": canvas_size or {"width": 1920, "height": 1080},
            "layers": layers or [],
            "version": 1,
            "created_at": now,
            "updated_at": now,
        })
        doc = record.model_dump(by_alias=True)
        self.projects.insert_one(doc)
        return doc["_id"]

    def get_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        return self.projects.find_one({"_id": project_id})

    def replace_layers(self, project_id: str, layers: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Full replace of `layers`; returns the updated doc or None if missing."""
        return self.projects.find_one_and_update(
            {"_id": project_id},
            {"$set": {"layers": layers, "updated_at": _utcnow()}, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
        )

class MongoProjectGateway:
    """
    ProjectGateway over ProjectRepo. pymongo is blocking, so each call runs
    in a worker thread to keep the event loop free.
    """

    def __init__(self, repo: ProjectRepo):
        self.repo = repo

    async def get_project(self, project_id: str) -> ProjectDoc:
        try:
            doc = await asyncio.to_thread(self.repo.get_project, project_id)
        except PyMongoError as e:
            raise DatabaseError(str(e)) from e
        if not doc:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        return ProjectDoc.model_validate(doc)

    async def put_layers(self, project_id: str, layers: List[Dict[str, Any]]) -> ProjectDoc:
        try:
            doc = await asyncio.to_thread(self.repo.replace_layers, project_id, layers)
        except PyMongoError as e:
            raise DatabaseError(str(e)) from e
        if not doc:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        return ProjectDoc.model_validate(doc)
