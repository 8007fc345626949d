"""
Test fixtures shared across all integration tests.

Architecture:
- The environment is pointed at a throwaway directory BEFORE the app is
  imported: a SQLite database file and an upload dir live there. Settings
  is a module-level singleton, so this has to happen at conftest import.
- pyproject sets the asyncio loop scope to "session" so all tests share ONE
  event loop; the async engine binds its connections to the loop that
  created them.
- The HTTP test client uses the real FastAPI app through httpx's
  ASGITransport. ASGITransport does not run lifespan events, so tables
  are created by the setup_db fixture.
- The database is shared by the whole session. Each test uses unique
  customIds/folder names to avoid collisions.
"""

import os
import shutil
import tempfile
import uuid
from pathlib import Path

_TEST_DIR = tempfile.mkdtemp(prefix="streamvault-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["ACCESS_KEY"] = "test-secret-key"
os.environ["API_BEARER_TOKEN"] = "test-bearer-token"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["STREAM_CHUNK_SIZE"] = "256"
os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from streamvault.config import settings  # noqa: E402
from streamvault.database import AsyncSessionLocal, Base, engine  # noqa: E402
from streamvault.main import app  # noqa: E402
from streamvault.models import Folder  # noqa: E402

ACCESS_KEY = "test-secret-key"
BEARER_TOKEN = "test-bearer-token"

# 1000 bytes with a recognisable pattern, so byte ranges can be checked exactly
VIDEO_BYTES = bytes(i % 251 for i in range(1000))


def unique(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def upload_dir_files() -> set[str]:
    return {p.name for p in Path(settings.UPLOAD_DIR).iterdir() if p.is_file()}


@pytest_asyncio.fixture(scope="session")
async def setup_db():
    """Create all tables once before the test session."""
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()
    shutil.rmtree(_TEST_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_runtime_state():
    """Every test starts with no tracked streams and fresh rate-limit windows."""
    app.state.streams.reset()
    app.state.rate_limits.reset()
    yield
    app.state.streams.reset()


@pytest_asyncio.fixture
async def client(setup_db):
    """Unauthenticated async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def auth_client(setup_db):
    """HTTP client holding a logged-in session cookie."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/login", json={"secretKey": ACCESS_KEY})
        assert response.status_code == 200
        yield ac


async def upload(
    client: AsyncClient,
    custom_id: str,
    title: str = "Test Clip",
    content: bytes = VIDEO_BYTES,
    mime_type: str = "video/mp4",
    filename: str = "clip.mp4",
    **fields,
):
    data = {"customId": custom_id, "title": title}
    data.update({k: str(v) for k, v in fields.items()})
    return await client.post(
        "/api/videos/upload",
        data=data,
        files={"video": (filename, content, mime_type)},
    )


# --- Seed data fixtures ---

@pytest_asyncio.fixture
async def test_video(auth_client):
    """A video uploaded through the API (real file on disk)."""
    response = await upload(auth_client, unique("clip"))
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def test_folder(setup_db):
    """A root-level folder committed directly through a session."""
    folder = Folder(name=unique("Folder"))
    async with AsyncSessionLocal() as session:
        session.add(folder)
        await session.commit()
        await session.refresh(folder)
    return folder
