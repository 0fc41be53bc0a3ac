"""Mongo repositories and the async project gateway over them.

Design Decisions:
    - FakeCollection covers the slice of pymongo the repos use, so no server
      is needed; asyncio.to_thread still runs for real
"""

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from canvas_studio.app.errors import DatabaseError, ProjectNotFoundError
from canvas_studio.db.mongo import close_mongo
from canvas_studio.db.repositories import MongoProjectGateway, ProjectRepo

from tests.fakes import FakeCollection, FakeMongoClient


# -- Helpers -------------------------------------------------------------------

LAYER = {"id": "l1", "type": "image", "file": "a.png", "position": {"x": 0, "y": 0},
         "opacity": 1, "blendMode": "normal", "zIndex": 1}


@pytest.fixture
def repo():
    return ProjectRepo(FakeCollection())


class BrokenRepo:
    def get_project(self, project_id):
        raise ServerSelectionTimeoutError("no primary")

    def replace_layers(self, project_id, layers):
        raise ServerSelectionTimeoutError("no primary")


# ==============================================================================
# ProjectRepo
# ==============================================================================


def test_create_and_get_project(repo):
    pid = repo.create_project(owner="u1", title="Poster", project_id="prj_1", layers=[LAYER])
    doc = repo.get_project(pid)
    assert pid == "prj_1"
    assert doc["owner"] == "u1"
    assert doc["canvas_size"] == {"width": 1920, "height": 1080}
    assert doc["layers"] == [LAYER]
    assert doc["version"] == 1


def test_generated_project_id(repo):
    assert repo.create_project(owner="u1", title="A").startswith("prj_")


def test_duplicate_project_id_is_rejected(repo):
    repo.create_project(owner="u1", title="A", project_id="prj_1")
    with pytest.raises(DuplicateKeyError):
        repo.create_project(owner="u1", title="B", project_id="prj_1")


def test_replace_layers_bumps_version(repo):
    repo.create_project(owner="u1", title="A", project_id="prj_1")
    before = repo.get_project("prj_1")["updated_at"]

    doc = repo.replace_layers("prj_1", [LAYER])

    assert doc["layers"] == [LAYER]
    assert doc["version"] == 2
    assert doc["updated_at"] >= before


def test_replace_layers_on_missing_project(repo):
    assert repo.replace_layers("nope", []) is None


def test_close_mongo_closes_client():
    client = FakeMongoClient()
    close_mongo({"client": client, "db": None, "projects": FakeCollection()})
    assert client.closed is True


# ==============================================================================
# MongoProjectGateway
# ==============================================================================


async def test_gateway_reads_project(repo):
    repo.create_project(owner="u1", title="A", project_id="prj_1",
                        canvas_size={"width": 640, "height": 480}, layers=[LAYER])
    doc = await MongoProjectGateway(repo).get_project("prj_1")
    assert doc.id == "prj_1"
    assert doc.canvas_size.width == 640
    assert doc.layers == [LAYER]


async def test_gateway_put_replaces_layers(repo):
    repo.create_project(owner="u1", title="A", project_id="prj_1", layers=[LAYER])
    doc = await MongoProjectGateway(repo).put_layers("prj_1", [])
    assert doc.layers == []
    assert repo.get_project("prj_1")["version"] == 2


async def test_gateway_missing_project(repo):
    gw = MongoProjectGateway(repo)
    with pytest.raises(ProjectNotFoundError):
        await gw.get_project("nope")
    with pytest.raises(ProjectNotFoundError):
        await gw.put_layers("nope", [])


async def test_gateway_maps_driver_errors():
    gw = MongoProjectGateway(BrokenRepo())
    with pytest.raises(DatabaseError):
        await gw.get_project("prj_1")
    with pytest.raises(DatabaseError):
        await gw.put_layers("prj_1", [])
