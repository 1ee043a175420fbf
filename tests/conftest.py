"""
Shared fixtures for catalog engine tests.
Provides catalogs over both stores and small factories for items.
"""
import pytest

from datcatalog.config import CatalogConfig
from datcatalog.core.catalog import ItemCatalog
from datcatalog.core.models import Disk, ItemStatus, Machine, Media, Rom, Source
from datcatalog.store import MemoryStore, SqliteStore


def make_rom(name="foo.rom", machine="game", source=0, size=1024, crc="deadbeef",
             sha1="a" * 40, **kwargs) -> Rom:
    """Rom with sensible defaults; pass None to leave a field empty."""
    return Rom(name=name, machine=Machine(name=machine), source=Source(index=source),
               size=size, crc=crc, sha1=sha1, **kwargs)


def make_disk(name="disk.chd", machine="game", source=0, sha1="b" * 40, **kwargs) -> Disk:
    return Disk(name=name, machine=Machine(name=machine), source=Source(index=source),
                sha1=sha1, **kwargs)


def make_media(name="media.aaru", machine="game", source=0, sha1="c" * 40, **kwargs) -> Media:
    return Media(name=name, machine=Machine(name=machine), source=Source(index=source),
                 sha1=sha1, **kwargs)


def make_nodump(name="missing.rom", machine="game", source=0) -> Rom:
    return Rom(name=name, machine=Machine(name=machine), source=Source(index=source),
               size=None, status=ItemStatus.NODUMP)


@pytest.fixture
def config():
    """Small pool and lock table so tests exercise sharing and contention."""
    return CatalogConfig(max_workers=4, lock_shards=8)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each catalog test runs once per persistence collaborator."""
    if request.param == "memory":
        store = MemoryStore()
    else:
        store = SqliteStore(str(tmp_path / "catalog.db"))
    yield store
    store.close()


@pytest.fixture
def catalog(store, config):
    return ItemCatalog(store=store, config=config)


@pytest.fixture
def memory_catalog(config):
    """Catalog over the in-memory store, for tests that depend on object identity."""
    return ItemCatalog(store=MemoryStore(), config=config)


@pytest.fixture
def rom_factory():
    return make_rom


@pytest.fixture
def disk_factory():
    return make_disk


@pytest.fixture
def media_factory():
    return make_media


@pytest.fixture
def nodump_factory():
    return make_nodump
