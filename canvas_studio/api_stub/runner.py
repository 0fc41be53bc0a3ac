from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
from dotenv import load_dotenv

load_dotenv()  # Load .env file

from canvas_studio.app.settings import Settings, load_settings
from canvas_studio.app.logging import setup_logging
from canvas_studio.canvas.controller import CanvasController
from canvas_studio.canvas.schemas import Asset, CanvasSize, Position
from canvas_studio.clients.http import ApiClient, GenerationHttpGateway, ProjectHttpGateway
from canvas_studio.clients.protocols import GenerationGateway, ProjectGateway
from canvas_studio.clients.simulated import InMemoryProjectGateway, SimulatedGenerationBackend
from canvas_studio.db.mongo import MongoHandles, close_mongo, connect_mongo
from canvas_studio.db.repositories import MongoProjectGateway, ProjectRepo
from canvas_studio.jobs.schemas import GenerationRequest
from canvas_studio.jobs.tracker import JobTracker


@asynccontextmanager
async def open_editor(
    project_id: str,
    *,
    settings: Optional[Settings] = None,
    projects: Optional[ProjectGateway] = None,
    generation: Optional[GenerationGateway] = None,
) -> AsyncIterator[CanvasController]:
    """
    Open one editor view on a project:
    - project collaborator: given, else Mongo if MONGO_URI is set, else HTTP
    - generation collaborator: given, else HTTP
    - load the project, yield the controller
    - on exit (normal or error) tear down every poll, close HTTP and Mongo clients
    """
    s = settings or load_settings()
    setup_logging(s.log_level)

    api: Optional[ApiClient] = None
    mongo: Optional[MongoHandles] = None
    if projects is None:
        if s.mongo_uri:
            mongo = connect_mongo(s.mongo_uri, s.mongo_db)
            projects = MongoProjectGateway(ProjectRepo(mongo["projects"]))
        else:
            api = ApiClient(s.api_base_url, token=s.api_token, timeout_s=s.http_timeout_s)
            projects = ProjectHttpGateway(api)
    if generation is None:
        api = api or ApiClient(s.api_base_url, token=s.api_token, timeout_s=s.http_timeout_s)
        generation = GenerationHttpGateway(api)

    tracker = JobTracker(generation, poll_interval_s=s.poll_interval_s, max_polls=s.max_polls)
    controller = CanvasController(
        project_id,
        projects=projects,
        tracker=tracker,
        default_position=Position(x=s.default_insert_x, y=s.default_insert_y),
    )
    try:
        await controller.load()
        yield controller
    finally:
        await controller.close()
        if api is not None:
            await api.aclose()
        if mongo is not None:
            close_mongo(mongo)


async def run_demo(
    *,
    prompt: str = "A poster of a lighthouse at dusk",
    batch: int = 2,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Offline walkthrough against the in-process collaborators:
    create project -> insert an asset -> generate -> insert results -> reorder -> save.
    """
    projects = InMemoryProjectGateway()
    project = projects.create_project(title="Demo", canvas_size=CanvasSize(width=1024, height=768))
    backend = SimulatedGenerationBackend(complete_after_s=0.0)

    async with open_editor(project.id, settings=settings, projects=projects, generation=backend) as editor:
        editor.insert_from_asset(Asset(id="ast_demo", url="/uploads/background.png", original_name="background.png"))
        handle = await editor.generate(GenerationRequest(prompt=prompt, batch=batch))
        await handle.wait()
        inserted = editor.insert_from_generation_result(editor.result_dock)
        if inserted:
            editor.move_layer_down(inserted[-1].id)
        saved = await editor.save()

    return {
        "project_id": project.id,
        "job_id": handle.job_id,
        "job_status": handle.status,
        "layers": [layer.id for layer in editor.store.ordered_view()],
        "saved": saved.ok,
        "writes": len(projects.writes),
    }
