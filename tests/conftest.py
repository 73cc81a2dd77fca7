"""Shared pytest fixtures for backend tests."""

from typing import AsyncGenerator, Optional
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from draftline.database import Base, get_db
from draftline.dependencies import get_restore_broadcaster, get_snapshot_service
from draftline.main import app
from draftline.models import Document, Project
from draftline.services.minio_service import get_minio_service
from draftline.services.pagination_service import count_words
from draftline.services.snapshot_service import SnapshotService
from draftline.websocket.handlers import DocumentRestoreBroadcaster

# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingNotifier:
    """Collects restore notifications instead of broadcasting them."""

    def __init__(self):
        self.calls: list[tuple[UUID, UUID]] = []

    async def document_restored(self, project_id: UUID, document_id: UUID) -> None:
        self.calls.append((project_id, document_id))


class FakePreviewRenderer:
    """Remembers what it was asked to render and returns a fixed path."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rendered: list[tuple[UUID, UUID]] = []

    def save_preview(self, snapshot_id: UUID, document) -> Optional[str]:
        if self.fail:
            raise RuntimeError("renderer unavailable")
        self.rendered.append((snapshot_id, document.id))
        return f"snapshots/{snapshot_id}/preview.svg"


def one_page_per_document(document) -> int:
    return 1


@pytest_asyncio.fixture
async def engine():
    """Create a test database engine with SQLite."""
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def preview_renderer() -> FakePreviewRenderer:
    return FakePreviewRenderer()


@pytest.fixture
def preview_storage() -> MagicMock:
    """MinIO stand-in that signs URLs without a server."""
    storage = MagicMock()
    storage.get_presigned_download_url.side_effect = lambda name: f"https://previews.test/{name}?signed=1"
    return storage


@pytest.fixture
def snapshot_service(db_session, notifier, preview_renderer) -> SnapshotService:
    """Snapshot service with in-memory collaborators."""
    return SnapshotService(
        db_session,
        page_estimator=one_page_per_document,
        preview_renderer=preview_renderer,
        notifier=notifier,
    )


@pytest_asyncio.fixture
async def project(db_session) -> Project:
    """Create a test project."""
    project = Project(id=uuid4(), name="Novel", description="A test project")
    db_session.add(project)
    await db_session.flush()
    return project


async def add_document(
    db_session: AsyncSession,
    project: Optional[Project],
    title: str,
    text: str = "",
    sort_order: int = 0,
    **layout,
) -> Document:
    """Create a live document with plain-text content."""
    document = Document(
        id=uuid4(),
        project_id=project.id if project else None,
        title=title,
        content_plain=text,
        word_count=count_words(text),
        sort_order=sort_order,
        **layout,
    )
    db_session.add(document)
    await db_session.flush()
    return document


@pytest_asyncio.fixture
async def client(db_session, preview_storage) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test session and mocked MinIO."""
    broadcaster = DocumentRestoreBroadcaster(deferred=True)

    async def override_get_db():
        yield db_session

    def override_get_restore_broadcaster():
        return broadcaster

    def override_get_snapshot_service():
        return SnapshotService(
            db_session,
            page_estimator=one_page_per_document,
            preview_renderer=FakePreviewRenderer(),
            notifier=broadcaster,
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_restore_broadcaster] = override_get_restore_broadcaster
    app.dependency_overrides[get_snapshot_service] = override_get_snapshot_service
    app.dependency_overrides[get_minio_service] = lambda: preview_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_document(db_session):
    """Factory for live documents bound to the test session."""

    async def _make(project: Optional[Project], title: str, text: str = "", **kwargs) -> Document:
        return await add_document(db_session, project, title, text, **kwargs)

    return _make


@pytest.fixture
def failing_snapshot_service(db_session, notifier) -> SnapshotService:
    """Snapshot service whose preview renderer always raises."""
    return SnapshotService(
        db_session,
        page_estimator=one_page_per_document,
        preview_renderer=FakePreviewRenderer(fail=True),
        notifier=notifier,
    )
