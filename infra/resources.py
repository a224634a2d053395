"""Infrastructure resources: database engine and session factory.

This module is part of the infra layer and must not import from application features.
"""
import ssl as ssl_lib

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker


def _unverified_ssl_context() -> ssl_lib.SSLContext:
    # Hosted Postgres (e.g. Render) presents certificates we do not pin
    context = ssl_lib.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl_lib.CERT_NONE
    return context


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(self, database_url: str, ssl: bool = False):
        self.database_url = database_url
        self.ssl = ssl
        self.engine = None
        self.session_factory = None

    async def init(self):
        """Initialize database connection pool."""
        if self.engine is not None:
            return self
        connect_args = {"ssl": _unverified_ssl_context()} if self.ssl else {}
        self.engine = create_async_engine(
            self.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args=connect_args,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Shutdown database connection."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
