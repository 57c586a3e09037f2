"""Shared fixtures: a throwaway SQLite database per test."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from llmobs.database import Base
from llmobs.models import EvalResult, LoggedCall
from llmobs.storage.repositories import create_call


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(
            Base.metadata.create_all, tables=[LoggedCall.__table__, EvalResult.__table__]
        )
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def make_calls(session_factory):
    """Insert calls from keyword dicts and return them."""

    async def _make(*specs):
        async with session_factory() as db:
            calls = []
            for fields in specs:
                fields = {"model": "demo-1", "prompt": "hello", "response": "hi", **fields}
                calls.append(await create_call(db, **fields))
            await db.commit()
            return calls

    return _make
