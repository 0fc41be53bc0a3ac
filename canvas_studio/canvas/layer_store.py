from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from canvas_studio.app.errors import LayerNotFoundError
from canvas_studio.canvas.schemas import Layer, LayerKind, Position
from canvas_studio.core.ids import new_layer_id

logger = logging.getLogger(__name__)


class OrderedView:
    """
    Lazy, restartable paint-order view over a LayerStore.
    Every iteration sorts the store's current contents by ascending z_index and
    yields copies, so the view never goes stale and callers cannot mutate
    store-owned records through it.
    """

    def __init__(self, store: "LayerStore"):
        self._store = store

    def __iter__(self) -> Iterator[Layer]:
        for layer in sorted(self._store._layers.values(), key=lambda l: l.z_index):
            yield layer.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._store)

    def ids(self) -> List[str]:
        return [layer.id for layer in self]


class LayerStore:
    """
    Ordered collection of layers for one open project.

    Invariant: z_index values are unique at all times. add_layer always paints
    on top, move_up/move_down swap z with the rank neighbour (the set of z
    values is only ever permuted), and replace_all renumbers on conflict.
    """

    def __init__(self, id_factory: Callable[[], str] = new_layer_id):
        self._layers: Dict[str, Layer] = {}
        self._id_factory = id_factory

    # ---------- Queries ----------
    def __len__(self) -> int:
        return len(self._layers)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def get(self, layer_id: str) -> Layer:
        return self._require(layer_id).model_copy(deep=True)

    def z_indexes(self) -> List[int]:
        return sorted(l.z_index for l in self._layers.values())

    def next_z(self) -> int:
        if not self._layers:
            return 1
        return max(l.z_index for l in self._layers.values()) + 1

    def ordered_view(self) -> OrderedView:
        return OrderedView(self)

    # ---------- Mutations ----------
    def add_layer(
        self,
        kind: LayerKind,
        position: Position,
        *,
        z_index: Optional[int] = None,
        opacity: float = 1.0,
        blend_mode: str = "normal",
    ) -> Layer:
        if z_index is None:
            z_index = self.next_z()
        elif any(l.z_index == z_index for l in self._layers.values()):
            raise ValueError(f"z_index {z_index} already in use")

        layer = Layer(
            id=self._fresh_id(),
            kind=kind,
            position=position.model_copy(),
            opacity=opacity,
            blend_mode=blend_mode,
            z_index=z_index,
        )
        self._layers[layer.id] = layer
        logger.debug("layer added", extra={"layer_id": layer.id})
        return layer.model_copy(deep=True)

    def update_position(self, layer_id: str, position: Position) -> None:
        layer = self._require(layer_id)
        layer.position = position.model_copy()

    def move_up(self, layer_id: str) -> bool:
        """Swap with the next-higher layer by z rank. False at the top."""
        return self._swap_with_neighbour(layer_id, step=1)

    def move_down(self, layer_id: str) -> bool:
        """Swap with the next-lower layer by z rank. False at the bottom."""
        return self._swap_with_neighbour(layer_id, step=-1)

    def replace_all(self, layers: Iterable[Layer]) -> List[str]:
        """
        Load path: replace the whole store.
        - duplicate ids: later duplicates get a fresh id
        - duplicate z values: every layer is renumbered in input order from 1
        Returns repair notes (empty if the input was already consistent).
        """
        incoming = [l.model_copy(deep=True) for l in layers]
        notes: List[str] = []

        seen_ids = set()
        for layer in incoming:
            if layer.id in seen_ids:
                old = layer.id
                layer.id = self._fresh_id(taken=seen_ids)
                notes.append(f"duplicate layer id {old!r} reassigned to {layer.id!r}")
            seen_ids.add(layer.id)

        z_values = [l.z_index for l in incoming]
        if len(set(z_values)) != len(z_values):
            for i, layer in enumerate(incoming, start=1):
                layer.z_index = i
            notes.append(f"duplicate z_index values {z_values} renumbered 1..{len(incoming)} in input order")

        self._layers = {l.id: l for l in incoming}
        for note in notes:
            logger.warning("layer set repaired: %s", note)
        return notes

    # -------------------------
    # internal helpers
    # -------------------------
    def _require(self, layer_id: str) -> Layer:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise LayerNotFoundError(layer_id)
        return layer

    def _fresh_id(self, taken: Optional[set] = None) -> str:
        while True:
            candidate = self._id_factory()
            if candidate not in self._layers and (taken is None or candidate not in taken):
                return candidate

    def _swap_with_neighbour(self, layer_id: str, *, step: int) -> bool:
        layer = self._require(layer_id)
        ranked = sorted(self._layers.values(), key=lambda l: l.z_index)
        rank = next(i for i, l in enumerate(ranked) if l.id == layer_id)
        neighbour_rank = rank + step
        if neighbour_rank < 0 or neighbour_rank >= len(ranked):
            return False
        neighbour = ranked[neighbour_rank]
        layer.z_index, neighbour.z_index = neighbour.z_index, layer.z_index
        return True
