# (c) Copyright Datacraft, 2026
"""Async engine and session factory."""
import logging
import ssl

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from docvault.core.config import Settings, get_settings
from docvault.core.db.base import Base

logger = logging.getLogger(__name__)


def create_engine(settings: Settings | None = None) -> AsyncEngine:
	"""Create the async engine for the configured database."""
	settings = settings or get_settings()

	connect_args = {}
	if settings.db_ssl:
		# asyncpg requires an SSL context, not sslmode
		ssl_context = ssl.create_default_context()
		ssl_context.check_hostname = False
		ssl_context.verify_mode = ssl.CERT_NONE
		connect_args["ssl"] = ssl_context

	return create_async_engine(
		settings.async_db_url,
		poolclass=NullPool,
		connect_args=connect_args,
	)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
	return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
	"""Create all repository tables."""
	# Import models so they register on the metadata
	from docvault.core import orm  # noqa: F401

	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)
	logger.info("Document repository tables created")
