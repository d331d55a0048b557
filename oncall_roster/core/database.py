# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine singleton and per-request connection scope."""
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from oncall_roster.core.config import settings


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # Single shared connection so an in-memory database survives across sessions.
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )


engine = build_engine(settings.DATABASE_URL)


def connection_scope() -> Iterator[Connection]:
    """One connection per request / worker pass; closed (and rolled back) on exit."""
    with engine.connect() as conn:
        yield conn


class SingleTenant:
    """Tenant provider for a deployment where the engine already points at one tenant's schema.

    Workers iterate ``tenants()`` and open ``connect(tenant)`` per pass; a
    multi-tenant deployment supplies a provider that scopes each connection
    (e.g. by ``search_path``) before handing it out.
    """

    def __init__(self, engine: Engine, name: str = "default") -> None:
        self._engine = engine
        self._name = name

    def tenants(self) -> list[str]:
        return [self._name]

    def connect(self, tenant: str) -> Connection:
        if tenant != self._name:
            raise KeyError(f"unknown tenant {tenant!r}")
        return self._engine.connect()
