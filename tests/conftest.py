"""Root conftest: shared test configuration."""

import pytest

from canvas_studio.canvas.controller import CanvasController
from canvas_studio.canvas.layer_store import LayerStore
from canvas_studio.canvas.schemas import Asset, CanvasSize, ImageKind, Position
from canvas_studio.clients.simulated import InMemoryProjectGateway


@pytest.fixture
def store():
    return LayerStore()


@pytest.fixture
def three_layers(store):
    """Store holding id1/id2/id3 at z 1/2/3."""
    ids = []
    for name in ("a.png", "b.png", "c.png"):
        ids.append(store.add_layer(ImageKind(source_url=name), Position(x=0, y=0)).id)
    return store, ids


@pytest.fixture
def asset():
    return Asset(id="ast_1", url="/uploads/cat.png", original_name="cat.png")


@pytest.fixture
def projects():
    gw = InMemoryProjectGateway()
    gw.create_project(project_id="prj_1", title="Test", canvas_size=CanvasSize(width=800, height=600))
    return gw


@pytest.fixture
def controller(projects):
    return CanvasController("prj_1", projects=projects, canvas_size=CanvasSize(width=800, height=600))
