"""
API endpoint tests
"""

import pytest
import uuid
from fastapi.testclient import TestClient
from api.main import app
from api.dependencies import get_db
from ingestion.tracking.key_value import SQLKeyValueStore
from ingestion.tracking.tracker import ProcessedFileTracker
from models.base import RunStatus
from models.xml_run import XMLReaderRun
from datetime import datetime, timezone


@pytest.fixture
def client(session_maker):
    """Create test client with database override"""

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_run(reference_name, status, started_at):
    return XMLReaderRun(
        run_id=uuid.uuid4(),
        reference_name=reference_name,
        table_name=f"{reference_name}_tracker",
        status=status,
        logical_start_time=started_at,
        started_at=started_at,
        files_discovered=3,
        files_committed=3 if status == RunStatus.COMMITTED else 0,
    )


@pytest.mark.asyncio
async def test_root_describes_record_schema(client):
    response = client.get("/")

    assert response.status_code == 200
    schema = response.json()["record_schema"]
    assert [f["name"] for f in schema["fields"]] == ["offset", "filename", "record"]


@pytest.mark.asyncio
async def test_health_endpoint_without_runs(client):
    """Test health endpoint returns database status"""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["database_connected"] is True
    assert data["latest_runs"] == []
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_health_endpoint_degraded(client, db_session):
    db_session.add_all([
        make_run("books", RunStatus.FAILED, datetime(2024, 1, 15, 9, 0)),
        make_run("books", RunStatus.COMMITTED, datetime(2024, 1, 15, 10, 0)),
        make_run("orders", RunStatus.FAILED, datetime(2024, 1, 15, 10, 0)),
    ])
    await db_session.commit()

    response = client.get("/health")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["total_sources"] == 2
    assert data["failed_sources"] == 1
    assert {r["reference_name"]: r["status"] for r in data["latest_runs"]} == {
        "books": "committed",
        "orders": "failed",
    }


@pytest.mark.asyncio
async def test_runs_endpoint_filters(client, db_session):
    db_session.add_all([
        make_run("books", RunStatus.COMMITTED, datetime(2024, 1, 15, 9, 0)),
        make_run("books", RunStatus.FAILED, datetime(2024, 1, 15, 10, 0)),
        make_run("orders", RunStatus.COMMITTED, datetime(2024, 1, 15, 10, 0)),
    ])
    await db_session.commit()

    response = client.get("/runs", params={"reference_name": "books"})

    data = response.json()
    assert data["total"] == 2
    assert [r["status"] for r in data["runs"]] == ["failed", "committed"]

    response = client.get("/runs", params={"status": "failed"})
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_tracker_endpoint_lists_files(client, db_session):
    processed_at = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    tracker = ProcessedFileTracker(SQLKeyValueStore(db_session, "books_tracker"))
    await tracker.commit({"/data/in/a.xml", "/data/in/b.xml"}, processed_at)

    response = client.get("/tracker/books_tracker")

    assert response.status_code == 200
    data = response.json()
    assert data["total_files"] == 2
    assert [f["filename"] for f in data["files"]] == ["/data/in/a.xml", "/data/in/b.xml"]


@pytest.mark.asyncio
async def test_tracker_endpoint_unknown_table_is_empty(client):
    response = client.get("/tracker/unknown")

    assert response.status_code == 200
    assert response.json()["total_files"] == 0


@pytest.mark.asyncio
async def test_forget_tracked_file(client, db_session):
    store = SQLKeyValueStore(db_session, "books_tracker")
    await ProcessedFileTracker(store).commit({"/data/in/a.xml"})

    # Absolute paths keep their leading slash after the table name
    response = client.delete("/tracker/books_tracker//data/in/a.xml")
    assert response.status_code == 204

    assert await SQLKeyValueStore(db_session, "books_tracker").count() == 0


@pytest.mark.asyncio
async def test_forget_untracked_file(client):
    response = client.delete("/tracker/books_tracker/missing.xml")

    assert response.status_code == 404
