"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
import fsspec
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from models.base import Base
# Register every table with Base.metadata
from models.key_value import KeyValueEntry
from models.xml_run import XMLReaderRun
from models.xml_record import XMLRecordRow
from typing import AsyncGenerator


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine (file-backed SQLite per test)"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fs():
    """Local fsspec filesystem"""
    return fsspec.filesystem("file")


@pytest.fixture
def catalog_xml():
    """Catalog document with two book nodes"""
    return (
        b'<?xml version="1.0" encoding="UTF-8"?>\n'
        b"<catalog>\n"
        b'  <book id="bk101"><title>XML Developer\'s Guide</title></book>\n'
        b'  <book id="bk102"><title>Midnight Rain</title></book>\n'
        b"</catalog>\n"
    )


@pytest.fixture
def input_dir(tmp_path, catalog_xml):
    """Directory with three catalog files"""
    directory = tmp_path / "incoming"
    directory.mkdir()
    for name in ("a.xml", "b.xml", "c.xml"):
        (directory / name).write_bytes(catalog_xml)
    return directory


@pytest.fixture
def staging_root(tmp_path):
    directory = tmp_path / "staging"
    directory.mkdir()
    return directory
