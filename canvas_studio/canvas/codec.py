from __future__ import annotations

import math
from typing import Any, Dict, List, Tuple

from canvas_studio.canvas.schemas import ImageKind, Layer, OpaqueKind, Position, TextKind
from canvas_studio.core.ids import new_layer_id
from canvas_studio.core.utils import clamp

# LayerDTO keys owned by the envelope; everything else belongs to the kind.
_ENVELOPE_KEYS = {"id", "type", "position", "opacity", "blendMode", "zIndex"}

# Layer types the project collaborator accepts; anything else is written as a shape.
WIRE_TYPES = ("image", "text", "shape", "component")
_FALLBACK_TYPE = "shape"


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


# -----------------------------
# Layer -> LayerDTO
# -----------------------------

def layer_to_dto(layer: Layer) -> Dict[str, Any]:
    """
    Wire shape used by the project collaborator:
      {"id","type","file"?,"text"?,"fontSize"?,"color"?,
       "position":{"x","y"},"opacity","blendMode","zIndex"}
    """
    kind = layer.kind
    dto: Dict[str, Any] = {"id": layer.id, "type": kind.type}
    if isinstance(kind, ImageKind):
        dto["file"] = kind.source_url
    elif isinstance(kind, TextKind):
        dto["text"] = kind.text
        dto["fontSize"] = kind.font_size
        dto["color"] = kind.color
    else:
        for k, v in kind.data.items():
            if k not in _ENVELOPE_KEYS:
                dto[k] = v
    dto["position"] = {"x": layer.position.x, "y": layer.position.y}
    dto["opacity"] = layer.opacity
    dto["blendMode"] = layer.blend_mode
    dto["zIndex"] = layer.z_index
    return dto


# -----------------------------
# LayerDTO -> Layer (tolerant)
# -----------------------------

def _kind_from_dto(dto: Dict[str, Any], notes: List[str], ref: str):
    kind_type = dto.get("type")
    if kind_type == "image":
        url = dto.get("file")
        if isinstance(url, str) and url:
            return ImageKind(source_url=url)
        notes.append(f"{ref}: image layer without file kept as opaque")
    elif kind_type == "text":
        size = _as_float(dto.get("fontSize"))
        return TextKind(
            text=str(dto.get("text") or ""),
            font_size=size if size is not None and size > 0 else 24,
            color=str(dto.get("color") or "black"),
        )
    extra = {k: v for k, v in dto.items() if k not in _ENVELOPE_KEYS}
    if not isinstance(kind_type, str) or not kind_type:
        notes.append(f"{ref}: missing layer type, kept as {_FALLBACK_TYPE!r}")
        kind_type = _FALLBACK_TYPE
    elif kind_type not in WIRE_TYPES:
        notes.append(f"{ref}: unsupported layer type {kind_type!r}, kept as {_FALLBACK_TYPE!r}")
        kind_type = _FALLBACK_TYPE
    return OpaqueKind(type=kind_type, data=extra)


def layer_from_dto(dto: Dict[str, Any], *, index: int = 0) -> Tuple[Layer, List[str]]:
    """
    Decode one LayerDTO, repairing instead of rejecting:
    - missing id -> fresh id
    - missing/garbled position -> (0, 0)
    - opacity clamped into [0, 1]; non-numeric -> 1
    - missing blendMode -> "normal"
    - missing/garbled zIndex -> 0 (LayerStore.replace_all resolves conflicts)
    - missing type, or one the collaborator does not accept -> OpaqueKind("shape")
    """
    notes: List[str] = []
    raw_id = dto.get("id")
    ref = f"layer[{index}]"

    if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) and str(raw_id):
        layer_id = str(raw_id)
    else:
        layer_id = new_layer_id()
        notes.append(f"{ref}: missing id, assigned {layer_id!r}")

    pos = dto.get("position")
    x = _as_float(pos.get("x")) if isinstance(pos, dict) else None
    y = _as_float(pos.get("y")) if isinstance(pos, dict) else None
    if x is None or y is None:
        notes.append(f"{ref}: invalid position {pos!r}, defaulted missing axes to 0")
    position = Position(x=x or 0.0, y=y or 0.0)

    opacity = _as_float(dto.get("opacity", 1))
    if opacity is None:
        notes.append(f"{ref}: invalid opacity {dto.get('opacity')!r}, using 1")
        opacity = 1.0
    elif not 0.0 <= opacity <= 1.0:
        notes.append(f"{ref}: opacity {opacity} clamped")
        opacity = clamp(opacity, 0.0, 1.0)

    blend = dto.get("blendMode")
    if not isinstance(blend, str) or not blend:
        blend = "normal"

    z = _as_float(dto.get("zIndex"))
    if z is None:
        notes.append(f"{ref}: invalid zIndex {dto.get('zIndex')!r}, using 0")
        z = 0

    layer = Layer(
        id=layer_id,
        kind=_kind_from_dto(dto, notes, ref),
        position=position,
        opacity=opacity,
        blend_mode=blend,
        z_index=int(z),
    )
    return layer, notes


def layers_from_dtos(dtos: Any) -> Tuple[List[Layer], List[str]]:
    """Decode a project's `layers` field. None means an empty project; any
    other non-list is dropped with a note."""
    if dtos is None:
        return [], []
    if not isinstance(dtos, list):
        return [], [f"layers is {type(dtos).__name__}, not a list; loaded as empty"]

    layers: List[Layer] = []
    notes: List[str] = []
    for i, dto in enumerate(dtos):
        if not isinstance(dto, dict):
            notes.append(f"layer[{i}]: not an object, skipped")
            continue
        layer, layer_notes = layer_from_dto(dto, index=i)
        layers.append(layer)
        notes.extend(layer_notes)
    return layers, notes
