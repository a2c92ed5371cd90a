"""
Database models and session management for port53
Uses SQLAlchemy with async support for backends, zones, records and audit logs

The Database handle is constructed and opened by the application lifespan and
handed to every service that needs storage.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional
from fastapi import Request
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Index, ForeignKey, Table, event, text
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
)
from sqlalchemy.orm import declarative_base
from ulid import ULID


logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()

# Partial index predicate, names are unique among live rows only
LIVE_ROWS = text("deleted_at IS NULL")


def new_identifier() -> str:
    """Generate a lexicographically sortable identifier"""
    return str(ULID())


def parse_identifier(value: str) -> str:
    """
    Validate a client supplied identifier
    Returns the canonical form, raises ValueError if it is not a ULID
    """
    return str(ULID.from_str(value))


# =============================================================================
# Resource Tables
# =============================================================================

backend_zones = Table(
    "backend_zones",
    Base.metadata,
    Column("backend_id", String(26), ForeignKey("backends.id"), primary_key=True),
    Column("zone_id", String(26), ForeignKey("zones.id"), primary_key=True),
    Column("created_at", DateTime, default=datetime.utcnow),
)


class Backend(Base):
    """DNS backend serving a set of zones"""
    __tablename__ = "backends"

    resource_type = "backends"
    label = "Backend"
    attributes = ("name",)

    id = Column(String(26), primary_key=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "ix_backends_name_live", "name", unique=True,
            sqlite_where=LIVE_ROWS, postgresql_where=LIVE_ROWS,
        ),
    )


class Zone(Base):
    """DNS zone with its SOA parameters"""
    __tablename__ = "zones"

    resource_type = "zones"
    label = "Zone"
    attributes = (
        "name", "ttl", "mname", "rname", "serial",
        "refresh", "retry", "expire", "minimum",
    )

    id = Column(String(26), primary_key=True)
    name = Column(String(255), nullable=False)
    ttl = Column(Integer, nullable=False, default=3600)
    mname = Column(String(255), nullable=False, default="@")
    rname = Column(String(255), nullable=False, default="admin")
    serial = Column(Integer, nullable=False, default=1)
    refresh = Column(Integer, nullable=False, default=3600)
    retry = Column(Integer, nullable=False, default=600)
    expire = Column(Integer, nullable=False, default=604800)
    minimum = Column(Integer, nullable=False, default=3600)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index(
            "ix_zones_name_live", "name", unique=True,
            sqlite_where=LIVE_ROWS, postgresql_where=LIVE_ROWS,
        ),
    )


class Record(Base):
    """DNS resource record, owned by at most one zone"""
    __tablename__ = "records"

    resource_type = "records"
    label = "Record"
    attributes = ("name", "ttl", "type", "content")

    id = Column(String(26), primary_key=True)
    name = Column(String(255), nullable=False)
    ttl = Column(Integer, nullable=False, default=3600)
    type = Column(String(16), nullable=False)
    content = Column(Text, nullable=False, default="")
    zone_id = Column(String(26), ForeignKey("zones.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)


class AuditLog(Base):
    """Audit log for tracking all API operations"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    action = Column(String(50), nullable=False, index=True)  # CREATE, UPDATE, DELETE, LINK, ...
    resource_type = Column(String(50), nullable=False)  # backends, zones, records
    resource_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    status = Column(String(20), default="success")  # success, failed
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_audit_timestamp_action', 'timestamp', 'action'),
        Index('idx_audit_resource', 'resource_type', 'resource_id'),
    )


# =============================================================================
# Storage Handle
# =============================================================================

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and hands out sessions and transactions"""

    def __init__(
        self,
        url: str,
        echo: bool = False,
        audit_enabled: bool = True,
        audit_persist: bool = False,
    ):
        self.url = url
        self.echo = echo
        self.audit_enabled = audit_enabled
        self.audit_persist = audit_persist
        self.engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    async def open(self) -> None:
        """Create the engine and the schema"""
        if self.engine is not None:
            return

        self.engine = create_async_engine(self.url, echo=self.echo, future=True)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database opened: {self.engine.url.render_as_string(hide_password=True)}")

    async def close(self) -> None:
        """Dispose of the engine and its connection pool"""
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._sessionmaker = None
        logger.info("Database closed")

    def _factory(self) -> async_sessionmaker:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not open")
        return self._sessionmaker

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session for reads, nothing is committed"""
        async with self._factory()() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Session bound to a single transaction.
        Commits when the block exits cleanly, rolls back on any exception.
        """
        async with self._factory()() as session:
            async with session.begin():
                yield session

    async def ping(self) -> None:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))


async def log_audit(
    database: Database,
    action: str,
    resource_type: str,
    resource_id: str = None,
    details: str = None,
    ip_address: str = None,
    user_agent: str = None,
    status: str = "success",
    error_message: str = None,
):
    """
    Log an audit entry.

    Always goes to the application log; also persisted to the
    audit_logs table when the database handle asks for it.
    """
    if not database.audit_enabled:
        return

    # Build log message
    log_msg = f"AUDIT: action={action} resource={resource_type}"
    if resource_id:
        log_msg += f"/{resource_id}"
    if details:
        log_msg += f" details={details}"
    if ip_address:
        log_msg += f" ip={ip_address}"
    if status != "success":
        log_msg += f" status={status}"
    if error_message:
        log_msg += f" error={error_message}"

    if status == "success":
        logger.info(log_msg)
    else:
        logger.warning(log_msg)

    if not database.audit_persist:
        return

    try:
        async with database.transaction() as session:
            session.add(AuditLog(
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details,
                ip_address=ip_address,
                user_agent=user_agent,
                status=status,
                error_message=error_message,
            ))
    except Exception as e:
        # If database write fails, the log line above is the only record
        logger.warning(f"{log_msg} (db_error: {e})")


def get_database(request: Request) -> Database:
    """Dependency for the storage handle opened by the application lifespan"""
    return request.app.state.database
