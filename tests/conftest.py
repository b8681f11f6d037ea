import os

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.api.routes.properties import get_media_manager
from app.database import build_engine, get_db
from app.db.base import Base
from app.main import app as fastapi_app
from app.models.icon import Icon
from app.models.user import User
from app.services.media_lifecycle import MediaLifecycleManager
from app.services.property_service import PropertyService
from app.services.view_counter import InMemoryViewDedupCache, get_view_cache

TEST_DATABASE_URL = "sqlite://"

TEMP_PREFIX = "/images/properties/temp"


@pytest.fixture
def engine():
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    session.add(User(id=1, name="Somchai Owner", email="owner@example.com", phone="0812345678", line_id="somchai"))
    session.add(User(id=2, name="Anong Agent", email="agent@example.com", role="agent"))
    session.add(Icon(
        id=1, key="pool", category="amenity", icon_path="/icons/pool.svg",
        name="Swimming pool", name_th="สระว่ายน้ำ", name_ch="游泳池", name_ru="Бассейн",
    ))
    session.add(Icon(id=2, key="gym", category="amenity", icon_path="/icons/gym.svg", name="Gym"))
    session.commit()
    yield session
    session.close()


@pytest.fixture
def media_root(tmp_path):
    return str(tmp_path / "public")


@pytest.fixture
def media(db, media_root):
    return MediaLifecycleManager(db, media_root=media_root, delete_files=True)


@pytest.fixture
def service(db, media):
    return PropertyService(db, media=media)


@pytest.fixture
def make_upload(media_root):
    """Write a file under the temp folder and return its URL."""

    def _make(name, subdir="", content=b"fake-image-bytes"):
        url = f"{TEMP_PREFIX}/{subdir}/{name}" if subdir else f"{TEMP_PREFIX}/{name}"
        path = os.path.join(media_root, url.lstrip("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        return url

    return _make


@pytest.fixture
def url_path(media_root):
    """Filesystem path behind a media URL."""
    return lambda url: os.path.join(media_root, url.lstrip("/"))


@pytest.fixture
def client(db, session_factory, media_root):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    view_cache = InMemoryViewDedupCache(window_seconds=3600)

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_view_cache] = lambda: view_cache
    fastapi_app.dependency_overrides[get_media_manager] = _media_override(media_root)

    yield TestClient(fastapi_app)

    fastapi_app.dependency_overrides.clear()


def _media_override(media_root):
    def override(session=Depends(get_db)):
        return MediaLifecycleManager(session, media_root=media_root, delete_files=True)

    return override
