from __future__ import annotations

"""
Canvas layer model:
- schemas (Layer, kinds, collaborator records)
- layer_store (z-ordered LayerStore)
- codec (LayerDTO <-> Layer)
- render (draw ops)
- controller (CanvasController)

Submodules are imported directly (canvas_studio.canvas.layer_store etc.).
"""
