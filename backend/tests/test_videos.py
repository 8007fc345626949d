"""
Integration tests for the Videos API.

Uploads go through the real multipart endpoint and land in the test
UPLOAD_DIR, so these also check what is (and is not) left on disk.
"""

from pathlib import Path

import pytest
from httpx import AsyncClient

from conftest import VIDEO_BYTES, unique, upload, upload_dir_files
from streamvault.config import settings
from streamvault.crud import VideoCRUD
from streamvault.database import AsyncSessionLocal
from streamvault.exceptions import DuplicateCustomIdError
from streamvault.main import app
from streamvault.services.rate_limit import UPLOAD_MESSAGE, RateLimits


@pytest.mark.asyncio
async def test_upload_video(auth_client: AsyncClient):
    """Upload returns the stored record and writes the bytes to disk."""
    custom_id = unique("lecture")
    response = await upload(
        auth_client, custom_id, title="Week 1", description="Intro session"
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["customId"] == custom_id
    assert data["title"] == "Week 1"
    assert data["originalName"] == "clip.mp4"
    assert data["mimeType"] == "video/mp4"
    assert data["size"] == len(VIDEO_BYTES)
    assert data["views"] == 0
    assert data["folderId"] is None
    assert data["duration"] is None
    assert data["metadata"] == {"description": "Intro session"}
    assert data["filename"].endswith(".mp4")

    stored = Path(settings.UPLOAD_DIR) / data["filename"]
    assert stored.read_bytes() == VIDEO_BYTES


@pytest.mark.asyncio
async def test_get_video(auth_client: AsyncClient, test_video):
    response = await auth_client.get(f"/api/videos/{test_video['id']}")

    assert response.status_code == 200
    data = response.json()
    assert data["customId"] == test_video["customId"]
    assert data["title"] == test_video["title"]
    assert data["size"] == 1000
    assert data["mimeType"] == "video/mp4"


@pytest.mark.asyncio
async def test_get_video_not_found(auth_client: AsyncClient):
    response = await auth_client.get("/api/videos/987654")

    assert response.status_code == 404
    assert response.json() == {"message": "Video not found"}


@pytest.mark.asyncio
async def test_upload_rejects_non_video(auth_client: AsyncClient):
    """Non-video MIME types are refused before anything is written."""
    before = upload_dir_files()

    response = await upload(
        auth_client,
        unique("notes"),
        content=b"just text",
        mime_type="text/plain",
        filename="notes.txt",
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Only video files are allowed!"
    assert upload_dir_files() == before


@pytest.mark.asyncio
async def test_upload_without_file(auth_client: AsyncClient):
    response = await auth_client.post(
        "/api/videos/upload",
        data={"customId": unique("nofile"), "title": "Nothing"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "No video file provided"


@pytest.mark.asyncio
@pytest.mark.parametrize("custom_id,title", [("", "Has title"), ("has-id", ""), ("  ", "  ")])
async def test_upload_missing_fields_removes_file(auth_client: AsyncClient, custom_id, title):
    """A rejected upload does not leave its file behind."""
    before = upload_dir_files()

    response = await upload(auth_client, custom_id, title=title)

    assert response.status_code == 400
    assert response.json()["message"] == "Custom ID and title are required"
    assert upload_dir_files() == before


@pytest.mark.asyncio
async def test_upload_duplicate_custom_id(auth_client: AsyncClient, test_video):
    """Second upload with the same customId fails and its file is removed."""
    before = upload_dir_files()

    response = await upload(auth_client, test_video["customId"], title="Other")

    assert response.status_code == 400
    assert response.json()["message"] == "Custom ID already exists"
    assert upload_dir_files() == before

    all_videos = (await auth_client.get("/api/videos/all")).json()
    matching = [v for v in all_videos if v["customId"] == test_video["customId"]]
    assert len(matching) == 1
    assert matching[0]["title"] == test_video["title"]


@pytest.mark.asyncio
async def test_upload_into_missing_folder(auth_client: AsyncClient):
    before = upload_dir_files()

    response = await upload(auth_client, unique("lost"), folderId=987654)

    assert response.status_code == 400
    assert response.json()["message"] == "Folder does not exist"
    assert upload_dir_files() == before


@pytest.mark.asyncio
async def test_upload_invalid_folder_id(auth_client: AsyncClient):
    before = upload_dir_files()

    response = await upload(auth_client, unique("lost"), folderId="abc")

    assert response.status_code == 400
    assert upload_dir_files() == before


@pytest.mark.asyncio
async def test_upload_too_large(auth_client: AsyncClient, monkeypatch):
    before = upload_dir_files()
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 500)

    response = await upload(auth_client, unique("huge"))

    assert response.status_code == 413
    assert upload_dir_files() == before


@pytest.mark.asyncio
async def test_list_videos_by_folder(auth_client: AsyncClient, test_folder):
    in_folder = (await upload(auth_client, unique("in"), folderId=test_folder.id)).json()
    at_root = (await upload(auth_client, unique("root"))).json()

    response = await auth_client.get(f"/api/videos?folderId={test_folder.id}")
    assert response.status_code == 200
    ids = [v["id"] for v in response.json()]
    assert ids == [in_folder["id"]]

    response = await auth_client.get("/api/videos")
    root_ids = [v["id"] for v in response.json()]
    assert at_root["id"] in root_ids
    assert in_folder["id"] not in root_ids


@pytest.mark.asyncio
async def test_list_videos_newest_first(auth_client: AsyncClient, test_folder):
    first = (await upload(auth_client, unique("a"), folderId=test_folder.id)).json()
    second = (await upload(auth_client, unique("b"), folderId=test_folder.id)).json()

    response = await auth_client.get(f"/api/videos?folderId={test_folder.id}")

    assert [v["id"] for v in response.json()] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_list_all_videos(auth_client: AsyncClient, test_video, test_folder):
    nested = (await upload(auth_client, unique("nested"), folderId=test_folder.id)).json()

    response = await auth_client.get("/api/videos/all")

    ids = [v["id"] for v in response.json()]
    assert test_video["id"] in ids
    assert nested["id"] in ids


@pytest.mark.asyncio
async def test_move_and_rename_video(auth_client: AsyncClient, test_video, test_folder):
    response = await auth_client.patch(
        f"/api/videos/{test_video['id']}",
        json={"title": "Renamed", "folderId": test_folder.id},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    assert data["folderId"] == test_folder.id
    assert data["customId"] == test_video["customId"]

    response = await auth_client.patch(
        f"/api/videos/{test_video['id']}", json={"folderId": None}
    )
    assert response.json()["folderId"] is None
    assert response.json()["title"] == "Renamed"


@pytest.mark.asyncio
async def test_move_video_to_missing_folder(auth_client: AsyncClient, test_video):
    response = await auth_client.patch(
        f"/api/videos/{test_video['id']}", json={"folderId": 987654}
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_video(auth_client: AsyncClient, test_video):
    """Delete removes the row and the stored file; the video can't be streamed."""
    stored = Path(settings.UPLOAD_DIR) / test_video["filename"]
    assert stored.exists()

    response = await auth_client.delete(f"/api/videos/{test_video['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Video deleted successfully"}
    assert not stored.exists()

    assert (await auth_client.get(f"/api/videos/{test_video['id']}")).status_code == 404
    stream = await auth_client.get(f"/api/stream/{test_video['customId']}")
    assert stream.status_code == 404


@pytest.mark.asyncio
async def test_delete_video_not_found(auth_client: AsyncClient):
    response = await auth_client.delete("/api/videos/987654")

    assert response.status_code == 404


async def insert_video_row(custom_id: str):
    """Create a row straight through the CRUD layer, bypassing the upload route."""
    async with AsyncSessionLocal() as session:
        return await VideoCRUD(session).create(
            custom_id=custom_id,
            title="Direct",
            filename=unique("direct") + ".mp4",
            original_name="direct.mp4",
            mime_type="video/mp4",
            size=10,
        )


@pytest.mark.asyncio
async def test_create_duplicate_custom_id_hits_unique_constraint(setup_db):
    """Two inserts with the same customId: the second fails on the constraint."""
    custom_id = unique("race")
    first = await insert_video_row(custom_id)
    assert first.custom_id == custom_id

    with pytest.raises(DuplicateCustomIdError) as exc_info:
        await insert_video_row(custom_id)

    assert exc_info.value.custom_id == custom_id
    async with AsyncSessionLocal() as session:
        assert (await VideoCRUD(session).get_by_custom_id(custom_id)).id == first.id


@pytest.mark.asyncio
async def test_upload_duplicate_past_lookup_removes_file(auth_client: AsyncClient, test_video, monkeypatch):
    """A duplicate that slips past the lookup is still rejected and cleaned up."""
    async def not_found(self, custom_id):
        return None

    monkeypatch.setattr(VideoCRUD, "get_by_custom_id", not_found)
    before = upload_dir_files()

    response = await upload(auth_client, test_video["customId"], title="Racer")

    assert response.status_code == 400
    assert response.json()["message"] == "Custom ID already exists"
    assert upload_dir_files() == before

    monkeypatch.undo()
    all_videos = (await auth_client.get("/api/videos/all")).json()
    matching = [v for v in all_videos if v["customId"] == test_video["customId"]]
    assert [v["title"] for v in matching] == [test_video["title"]]


@pytest.mark.asyncio
async def test_upload_rate_limit(auth_client: AsyncClient):
    original = app.state.rate_limits
    app.state.rate_limits = RateLimits(
        login="100 per minute", stream="100 per minute", upload="2 per minute"
    )
    try:
        for _ in range(2):
            assert (await upload(auth_client, unique("quota"))).status_code == 201
        before = upload_dir_files()

        response = await upload(auth_client, unique("quota"))

        assert response.status_code == 429
        assert response.json() == {"message": UPLOAD_MESSAGE}
        assert response.headers["RateLimit-Limit"] == "2"
        assert upload_dir_files() == before
    finally:
        app.state.rate_limits = original
