"""
Connection management and table definition for the annual plan store.
"""

from __future__ import annotations

import enum
import logging

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from calplanner.errors import StoreOffline

logger = logging.getLogger(__name__)

MYSQL_DIALECTS = ("mysql", "mariadb")

THEME_MAX_LENGTH = 50

Base = declarative_base()

# Documents can carry inline background images, so MySQL gets LONGTEXT.
DocumentText = Text().with_variant(mysql.LONGTEXT(), "mysql", "mariadb")


class PlanRow(Base):
    __tablename__ = "annual_plans"
    __table_args__ = (
        UniqueConstraint("year", name="unique_year"),
        {
            "mysql_engine": "InnoDB",
            "mysql_charset": "utf8mb4",
            "mysql_collate": "utf8mb4_unicode_ci",
        },
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False)
    data = Column(DocumentText, nullable=False)
    theme = Column(String(THEME_MAX_LENGTH), nullable=True)
    bg_images = Column(DocumentText, nullable=True)
    created_at = Column(
        DateTime().with_variant(mysql.TIMESTAMP(), "mysql", "mariadb"),
        nullable=False,
        server_default=func.now(),
    )


class StoreState(enum.Enum):
    OFFLINE = "offline"
    ONLINE = "online"


class PlanStore:
    """
    Owns the SQLAlchemy engine (and its connection pool) for the plan table.

    The store starts OFFLINE. ``connect()`` makes a single attempt to reach
    the database and create the table; on any failure the store stays
    OFFLINE and every caller gets ``StoreOffline`` instead of an engine.
    """

    def __init__(self, target: str | URL | None, *, session_time_zone: str = "+08:00"):
        self.target = target
        self.session_time_zone = session_time_zone
        self.state = StoreState.OFFLINE
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        self._attempted = False

    @property
    def is_online(self) -> bool:
        return self.state is StoreState.ONLINE

    @property
    def engine(self) -> Engine:
        if self._engine is None or not self.is_online:
            raise StoreOffline("Database offline")
        return self._engine

    def session(self) -> Session:
        if self._session_factory is None or not self.is_online:
            raise StoreOffline("Database offline")
        return self._session_factory()

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def connect(self) -> StoreState:
        if self._attempted:
            return self.state
        self._attempted = True

        if self.target is None:
            logger.warning(
                "No complete MySQL connection variables found; running with persistence disabled"
            )
            return self.state

        url = make_url(self.target)
        engine = None
        try:
            engine = self._build_engine(url)
            with engine.connect():
                pass
            logger.info(
                "Database pool created for %s", url.render_as_string(hide_password=True)
            )
            PlanRow.__table__.create(engine, checkfirst=True)
            logger.info("Table %s checked/created", PlanRow.__tablename__)
        except Exception as exc:
            logger.error("Database connection or initialization failed: %s", exc)
            if engine is not None:
                engine.dispose()
            return self.state

        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine, class_=Session, expire_on_commit=False, future=True
        )
        self.state = StoreState.ONLINE
        return self.state

    def create_table(self) -> None:
        PlanRow.__table__.create(self.engine, checkfirst=True)

    def drop_table(self) -> None:
        PlanRow.__table__.drop(self.engine, checkfirst=True)

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    def _build_engine(self, url: URL) -> Engine:
        if url.get_backend_name() == "sqlite":
            kwargs: dict = {"connect_args": {"check_same_thread": False}}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise each pooled connection
                # would open its own empty in-memory database.
                kwargs["poolclass"] = StaticPool
            return create_engine(url, future=True, **kwargs)

        engine = create_engine(
            url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if url.get_backend_name() in MYSQL_DIALECTS:
            event.listen(engine, "connect", self._configure_mysql_session)
        return engine

    def _configure_mysql_session(self, dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("SET NAMES 'utf8mb4'")
            cursor.execute("SET CHARACTER SET utf8mb4")
            cursor.execute("SET time_zone = %s", (self.session_time_zone,))
        finally:
            cursor.close()
