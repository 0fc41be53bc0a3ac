from __future__ import annotations

from typing import Any, Dict, Iterable, List

from canvas_studio.canvas.schemas import CanvasSize, ImageKind, Layer, RenderPlan, TextKind


def build_render_plan(layers: Iterable[Layer], canvas_size: CanvasSize) -> RenderPlan:
    """
    Converts layers -> renderer-friendly draw ops.
    No pixels are produced; the frontend (Konva/canvas/etc.) consumes the ops.
    Kinds the renderer does not know are skipped with a note, never raised.
    """
    ops: List[Dict[str, Any]] = []
    notes: List[str] = []

    # stable sort by z for deterministic paint order
    for layer in sorted(layers, key=lambda l: l.z_index):
        base = {
            "id": layer.id,
            "x": layer.position.x,
            "y": layer.position.y,
            "opacity": layer.opacity,
            "blend_mode": layer.blend_mode,
            "z": layer.z_index,
        }
        kind = layer.kind
        if isinstance(kind, ImageKind):
            ops.append({"op": "image", "url": kind.source_url, **base})
        elif isinstance(kind, TextKind):
            ops.append({
                "op": "text",
                "text": kind.text,
                "font_size": kind.font_size,
                "fill": kind.color,
                **base,
            })
        else:
            notes.append(f"skipped layer {layer.id}: no renderer for kind {kind.type!r}")

    return RenderPlan(width=canvas_size.width, height=canvas_size.height, ops=ops, notes=notes)
