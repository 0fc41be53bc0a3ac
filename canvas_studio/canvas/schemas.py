from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# -----------------------------
# Geometry
# -----------------------------

class Position(BaseModel):
    """Canvas coordinates of a layer's top-left corner."""
    x: float = 0.0
    y: float = 0.0

class CanvasSize(BaseModel):
    width: int = Field(default=1920, ge=0)
    height: int = Field(default=1080, ge=0)

    def contains(self, point: Position) -> bool:
        """Inclusive bounds check: [0,width] x [0,height]."""
        return 0 <= point.x <= self.width and 0 <= point.y <= self.height

# -----------------------------
# Layer kinds
# -----------------------------

class ImageKind(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    source_url: str

class TextKind(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str = ""
    font_size: float = 24
    color: str = "black"

class OpaqueKind(BaseModel):
    """A kind the core does not interpret (shape, component, future types).
    Kept so it survives a load/save round trip; renders as a no-op."""
    model_config = ConfigDict(frozen=True)

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

LayerKind = Union[ImageKind, TextKind, OpaqueKind]

# -----------------------------
# Layer
# -----------------------------

class Layer(BaseModel):
    id: str
    kind: LayerKind = Field(union_mode="left_to_right")
    position: Position = Field(default_factory=Position)
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    blend_mode: str = "normal"
    z_index: int

# -----------------------------
# Collaborator records
# -----------------------------

AssetCategory = Literal["personal", "team", "system"]

class Asset(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    url: str
    original_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("original_name", "originalName")
    )
    tags: List[str] = Field(default_factory=list)
    category: AssetCategory = "personal"

class ProjectDoc(BaseModel):
    """What the core sees of a persisted project. `layers` stays raw (LayerDTO
    dicts); decoding and repair happen in canvas.codec."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: Optional[str] = None
    canvas_size: CanvasSize = Field(
        default_factory=CanvasSize, validation_alias=AliasChoices("canvas_size", "canvasSize")
    )
    layers: Any = Field(default_factory=list)

# -----------------------------
# Save boundary
# -----------------------------

class SaveError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: Literal["transport", "not_found"]
    message: str

class SaveResult(BaseModel):
    """Outcome of CanvasController.save(); failures are values, not exceptions."""
    model_config = ConfigDict(frozen=True)

    ok: bool
    layer_count: int = 0
    error: Optional[SaveError] = None

# -----------------------------
# Render plan
# -----------------------------

class RenderPlan(BaseModel):
    """Draw instructions in paint order (first entry paints furthest back)."""
    width: int
    height: int
    ops: List[Dict[str, Any]] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
