"""Database engine, session factory and FastAPI dependencies."""

import ssl
from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from llmobs.config import settings

_SSL_REQUIRED = {"require", "true", "1"}
_SSL_VERIFIED = {"verify-ca", "verify-full"}


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def split_ssl_params(url: str) -> tuple[str, dict]:
    """
    Move sslmode/ssl out of the URL (asyncpg rejects them) and express them
    as an SSL context in connect_args instead.
    """
    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    mode = query.pop("sslmode", [None])[0] or query.pop("ssl", [None])[0]
    query.pop("ssl", None)
    if mode is None:
        return url, {}

    url = urlunparse(parsed._replace(query=urlencode(query, doseq=True)))
    if mode in _SSL_VERIFIED:
        return url, {"ssl": ssl.create_default_context()}
    if mode in _SSL_REQUIRED:
        ctx = ssl.create_default_context()
        if not settings.database_ssl_verify:
            # pooled hosted Postgres often presents a chain the local store can't verify
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return url, {"ssl": ctx}
    return url, {}


def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Async engine for ``url`` (defaults to settings.database_url)."""
    url, connect_args = split_ssl_params(url or settings.database_url)
    return create_async_engine(
        url,
        echo=settings.log_level == "DEBUG",
        connect_args=connect_args,
        **kwargs,
    )


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine()
async_session_maker = make_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for request-scoped sessions; commits on success."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency for components that open one session per unit of work."""
    return async_session_maker
