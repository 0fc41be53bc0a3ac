from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Union

from canvas_studio.app.errors import LayerNotFoundError, ProjectNotFoundError, TransportError
from canvas_studio.canvas.codec import layer_to_dto, layers_from_dtos
from canvas_studio.canvas.layer_store import LayerStore
from canvas_studio.canvas.render import build_render_plan
from canvas_studio.canvas.schemas import (
    Asset,
    CanvasSize,
    ImageKind,
    Layer,
    Position,
    RenderPlan,
    SaveError,
    SaveResult,
)
from canvas_studio.core.utils import ensure_list
from canvas_studio.jobs.schemas import GeneratedImage, GenerationRequest

if TYPE_CHECKING:
    from canvas_studio.clients.protocols import ProjectGateway
    from canvas_studio.jobs.tracker import JobHandle, JobTracker

logger = logging.getLogger(__name__)

# Used when no pointer location is available (click-to-add).
DEFAULT_INSERT_POSITION = Position(x=50, y=50)


class CanvasController:
    """
    Bridges user and generation intents to LayerStore mutations and to the
    project save boundary. All mutations are synchronous and run to
    completion; only load/save/generate await I/O.
    """

    def __init__(
        self,
        project_id: str,
        *,
        projects: "ProjectGateway",
        tracker: Optional["JobTracker"] = None,
        store: Optional[LayerStore] = None,
        canvas_size: Optional[CanvasSize] = None,
        default_position: Optional[Position] = None,
    ):
        self.project_id = project_id
        self.projects = projects
        self.tracker = tracker
        self.store = store or LayerStore()
        self.canvas_size = canvas_size or CanvasSize()
        self.default_position = default_position or DEFAULT_INSERT_POSITION

        # Latest delivered generation results, waiting for the user to pick them.
        self.result_dock: List[GeneratedImage] = []
        self.last_job_failure: Optional[str] = None

    # ---------- Load / save ----------
    async def load(self) -> List[str]:
        """Fetch the project and replace the layer set. Returns repair notes."""
        doc = await self.projects.get_project(self.project_id)
        self.canvas_size = doc.canvas_size
        layers, notes = layers_from_dtos(doc.layers)
        notes.extend(self.store.replace_all(layers))
        for note in notes:
            logger.warning("project load repair: %s", note, extra={"project_id": self.project_id})
        logger.info("project loaded (%d layers)", len(self.store), extra={"project_id": self.project_id})
        return notes

    async def save(self) -> SaveResult:
        """
        One full-replace write of the layer set, in paint order so repeated
        saves of an unchanged canvas send identical payloads. No retries.
        """
        payload = [layer_to_dto(layer) for layer in self.store.ordered_view()]
        try:
            await self.projects.put_layers(self.project_id, payload)
        except ProjectNotFoundError as e:
            logger.warning("save failed: %s", e, extra={"project_id": self.project_id})
            return SaveResult(ok=False, error=SaveError(code="not_found", message=str(e)))
        except TransportError as e:
            logger.warning("save failed: %s", e, extra={"project_id": self.project_id})
            return SaveResult(ok=False, error=SaveError(code="transport", message=str(e)))
        logger.info("project saved (%d layers)", len(payload), extra={"project_id": self.project_id})
        return SaveResult(ok=True, layer_count=len(payload))

    # ---------- Inserts ----------
    def insert_from_asset(self, asset: Asset, position: Optional[Position] = None) -> Layer:
        return self.store.add_layer(ImageKind(source_url=asset.url), position or self.default_position)

    def insert_from_drop(self, asset: Asset, screen_point: Position, stage_origin: Position) -> Optional[Layer]:
        """
        Drag-to-drop insert. Drops outside [0,width] x [0,height] are rejected
        (returns None, store untouched) rather than clamped.
        """
        point = Position(x=screen_point.x - stage_origin.x, y=screen_point.y - stage_origin.y)
        if not self.canvas_size.contains(point):
            logger.info(
                "drop at (%s, %s) outside canvas %sx%s rejected",
                point.x, point.y, self.canvas_size.width, self.canvas_size.height,
                extra={"project_id": self.project_id},
            )
            return None
        return self.insert_from_asset(asset, point)

    def insert_from_generation_result(
        self,
        results: Union[GeneratedImage, Sequence[Any]],
        position: Optional[Position] = None,
    ) -> List[Layer]:
        """One new layer per generated image, in result order, each above the last."""
        images = [GeneratedImage.model_validate(r) for r in ensure_list(results)]
        pos = position or self.default_position
        return [self.store.add_layer(ImageKind(source_url=img.url), pos) for img in images]

    # ---------- Edits ----------
    def handle_drag_end(self, layer_id: str, new_position: Position) -> bool:
        try:
            self.store.update_position(layer_id, new_position)
        except LayerNotFoundError as e:
            logger.warning("drag end ignored: %s", e, extra={"layer_id": layer_id})
            return False
        return True

    def move_layer_up(self, layer_id: str) -> bool:
        try:
            return self.store.move_up(layer_id)
        except LayerNotFoundError as e:
            logger.warning("move up ignored: %s", e, extra={"layer_id": layer_id})
            return False

    def move_layer_down(self, layer_id: str) -> bool:
        try:
            return self.store.move_down(layer_id)
        except LayerNotFoundError as e:
            logger.warning("move down ignored: %s", e, extra={"layer_id": layer_id})
            return False

    def render_plan(self) -> RenderPlan:
        return build_render_plan(self.store.ordered_view(), self.canvas_size)

    # ---------- Generation ----------
    async def generate(self, request: GenerationRequest) -> "JobHandle":
        """Submit a generation job; delivered results land in result_dock."""
        if self.tracker is None:
            raise RuntimeError("CanvasController has no JobTracker")
        self.last_job_failure = None
        return await self.tracker.submit(request, on_done=self._on_generation_done)

    def _on_generation_done(self, handle: "JobHandle") -> None:
        if handle.status == "completed":
            self.result_dock = list(handle.results)
        else:
            self.last_job_failure = handle.reason or "failed"

    async def close(self) -> None:
        """View teardown: stop every outstanding poll."""
        if self.tracker is not None:
            await self.tracker.aclose()
