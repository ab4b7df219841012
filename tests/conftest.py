"""Pytest configuration and fixtures for ZimEstimate MCP tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from catalog import StaticCatalog, get_catalog
from config import AppConfig, EditorConfig, PriceFeedConfig, PricingConfig, SecretsConfig
from floorplan.session import EditorSession
from models.room import RoomInstance
from persistence import StateStore


def make_room(
    room_id: str = "room-1",
    x: float = 0.0,
    y: float = 0.0,
    width: float = 4.0,
    length: float = 3.0,
    type: str = "bedrooms",
    **kwargs,
) -> RoomInstance:
    """Build a room with sensible defaults."""
    return RoomInstance(
        id=room_id,
        type=type,
        label=kwargs.pop("label", room_id),
        width=width,
        length=length,
        x=x,
        y=y,
        **kwargs,
    )


@pytest.fixture
def sample_config() -> AppConfig:
    """Create a sample configuration for testing."""
    return AppConfig(
        owner_id="owner-1",
        tier="free",
        pricing=PricingConfig(
            zwg_rate=30.0,
            feeds=[
                PriceFeedConfig(
                    id="halsteds",
                    name="Halsteds",
                    url="https://feeds.example.com/halsteds.json",
                    location="Harare",
                ),
            ],
        ),
    )


@pytest.fixture
def sample_secrets() -> SecretsConfig:
    """Create a sample secrets configuration for testing."""
    return SecretsConfig(feeds={"halsteds": {"token": "test-token"}})


@pytest.fixture
def catalog() -> StaticCatalog:
    return get_catalog()


@pytest.fixture
def session() -> EditorSession:
    """Editor session with snapping on a 0.5m grid."""
    return EditorSession("test", EditorConfig(grid_snap_size=0.5))


@pytest.fixture
async def store(tmp_path: Path) -> StateStore:
    """Create a test state store."""
    store = StateStore(tmp_path / "test_state.db")
    await store.initialize()
    yield store
    await store.close()
