"""
Database Connection and Session Management

This module handles the relational store for classifications, metering
readings, and calculated EnPIs, and provides session management for
the FastAPI application.

Features:
- SQLAlchemy ORM tables with cascading deletes from classifications
- Connection pooling for server databases, SQLite for local use
- Health checking
- Table creation and seeding on startup
"""

import os
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from contextlib import contextmanager

from sqlalchemy import (
    create_engine, event, inspect, text,
    Column, DateTime, Float, ForeignKey, Integer, String,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from core.errors import ClassificationNotFoundError
from core.readings import Reading, to_utc

logger = logging.getLogger(__name__)

# =========================================
# Database Configuration
# =========================================

DEFAULT_DATABASE_URL = "sqlite:///./energy_metering.db"

SEED_CLASSIFICATIONS = [
    {"name": "Main Building", "type": "Facility"},
    {"name": "Server Room", "type": "Equipment"},
    {"name": "Production Line A", "type": "ProductionLine"},
]


def get_database_url() -> str:
    """Get database URL from environment."""
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite connections are shared across FastAPI's worker threads, so
    same-thread checking is disabled there; other backends get a
    QueuePool.
    """
    echo = os.getenv("SQL_ECHO", "false").lower() == "true"

    if database_url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, or each session sees an empty database
            options["poolclass"] = StaticPool
        sqlite_engine = create_engine(database_url, echo=echo, **options)
        event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before use
        echo=echo,
    )


engine = build_engine(get_database_url())

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


# =========================================
# ORM Models
# =========================================

class ClassificationRecord(Base):
    """A named, typed consumption grouping (building, equipment, line)."""

    __tablename__ = "classifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    type = Column(String(100), nullable=False)

    readings = relationship(
        "MeteringDataRecord",
        back_populates="classification",
        cascade="all, delete-orphan",
    )
    enpis = relationship(
        "EnPIRecord",
        back_populates="classification",
        cascade="all, delete-orphan",
    )


class MeteringDataRecord(Base):
    """One persisted (energy, power) reading."""

    __tablename__ = "metering_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, nullable=False, index=True)
    energy_value = Column(Float, nullable=False)
    power = Column(Float, nullable=False)
    classification_id = Column(
        Integer,
        ForeignKey("classifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    classification = relationship("ClassificationRecord", back_populates="readings")

    def to_reading(self) -> Reading:
        """Convert to a core Reading."""
        return Reading(
            id=self.id,
            timestamp=from_db_time(self.timestamp),
            energy_value=self.energy_value,
            power=self.power,
            classification_id=self.classification_id,
        )


class EnPIRecord(Base):
    """One calculated Energy Performance Indicator."""

    __tablename__ = "enpis"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    formula = Column(String(50), nullable=False)
    current_value = Column(Float, nullable=False)
    baseline_value = Column(Float, nullable=False, default=0.0)
    baseline_status = Column(String(20), nullable=False, default="not_requested")
    calculation_date = Column(DateTime, nullable=False)
    classification_id = Column(
        Integer,
        ForeignKey("classifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    classification = relationship("ClassificationRecord", back_populates="enpis")


# =========================================
# Timestamp Storage
# =========================================

def to_db_time(timestamp: datetime) -> datetime:
    """Store instants as naive UTC."""
    return to_utc(timestamp).replace(tzinfo=None)


def from_db_time(timestamp: datetime) -> datetime:
    """Re-attach UTC to a stored naive instant."""
    return timestamp.replace(tzinfo=timezone.utc)


# =========================================
# Dependency for FastAPI
# =========================================

def get_db():
    """
    Dependency that provides a database session.

    Usage in FastAPI:
        @app.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as db:
            db.execute(query)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# =========================================
# Database Operations
# =========================================

class DatabaseManager:
    """
    Manager class for database operations.

    Provides high-level methods for the classification, reading and
    EnPI operations used by the API endpoints. Reading queries do the
    classification/window filtering; the indicator engine receives
    their results unfiltered.
    """

    def __init__(self, session: Optional[Session] = None):
        """
        Initialize with optional session.

        Args:
            session: SQLAlchemy session (creates new if None)
        """
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> Session:
        """Get or create session."""
        if self._session is None:
            self._session = SessionLocal()
        return self._session

    def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.session.rollback()
        self.close()

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to {action}: {e}")
            self.session.rollback()
            raise

    # =========================================
    # Classification Operations
    # =========================================

    def get_all_classifications(self) -> List[ClassificationRecord]:
        """Get all classifications ordered by id."""
        return (
            self.session.query(ClassificationRecord)
            .order_by(ClassificationRecord.id)
            .all()
        )

    def get_classification(self, classification_id: int) -> Optional[ClassificationRecord]:
        """Get classification by id, or None."""
        return self.session.get(ClassificationRecord, classification_id)

    def require_classification(self, classification_id: int) -> ClassificationRecord:
        """
        Get classification by id.

        Raises:
            ClassificationNotFoundError: If no such classification exists
        """
        classification = self.get_classification(classification_id)
        if classification is None:
            logger.warning(f"Classification not found with ID: {classification_id}")
            raise ClassificationNotFoundError(classification_id)
        return classification

    def get_classification_names(self) -> Dict[int, str]:
        """Map of classification id to name."""
        rows = self.session.query(ClassificationRecord.id, ClassificationRecord.name).all()
        return {row.id: row.name for row in rows}

    def get_classification_types(self) -> Dict[int, str]:
        """Map of classification id to type."""
        rows = self.session.query(ClassificationRecord.id, ClassificationRecord.type).all()
        return {row.id: row.type for row in rows}

    def create_classification(self, name: str, type: str) -> ClassificationRecord:
        """Create a new classification."""
        classification = ClassificationRecord(name=name, type=type)
        self.session.add(classification)
        self._commit("create classification")
        self.session.refresh(classification)
        return classification

    def update_classification(
        self,
        classification_id: int,
        name: str,
        type: str
    ) -> ClassificationRecord:
        """
        Rename or retype a classification.

        Raises:
            ClassificationNotFoundError: If no such classification exists
        """
        classification = self.require_classification(classification_id)
        classification.name = name
        classification.type = type
        self._commit("update classification")
        self.session.refresh(classification)
        return classification

    def delete_classification(self, classification_id: int) -> None:
        """
        Delete a classification and, by cascade, its readings and EnPIs.

        Raises:
            ClassificationNotFoundError: If no such classification exists
        """
        classification = self.require_classification(classification_id)
        self.session.delete(classification)
        self._commit("delete classification")

    # =========================================
    # Metering Data Operations
    # =========================================

    def insert_readings(self, readings: List[Reading]) -> List[Reading]:
        """
        Insert readings in one transaction.

        Args:
            readings: Readings to persist

        Returns:
            The persisted readings with ids assigned
        """
        records = [
            MeteringDataRecord(
                timestamp=to_db_time(r.timestamp),
                energy_value=r.energy_value,
                power=r.power,
                classification_id=r.classification_id,
            )
            for r in readings
        ]
        self.session.add_all(records)
        self._commit("insert metering data")
        return [record.to_reading() for record in records]

    def get_readings(
        self,
        classification_id: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None
    ) -> List[Reading]:
        """
        Get readings, optionally filtered by classification and window.

        Both window bounds are inclusive.

        Args:
            classification_id: Restrict to one classification
            start_time: Earliest timestamp
            end_time: Latest timestamp

        Returns:
            Readings ordered by timestamp
        """
        query = self.session.query(MeteringDataRecord)

        if classification_id is not None:
            query = query.filter(MeteringDataRecord.classification_id == classification_id)
        if start_time is not None:
            query = query.filter(MeteringDataRecord.timestamp >= to_db_time(start_time))
        if end_time is not None:
            query = query.filter(MeteringDataRecord.timestamp <= to_db_time(end_time))

        records = query.order_by(MeteringDataRecord.timestamp, MeteringDataRecord.id).all()
        return [record.to_reading() for record in records]

    def get_reading_count(self, classification_id: Optional[int] = None) -> int:
        """Count readings, optionally for one classification."""
        query = self.session.query(MeteringDataRecord)
        if classification_id is not None:
            query = query.filter(MeteringDataRecord.classification_id == classification_id)
        return query.count()

    # =========================================
    # EnPI Operations
    # =========================================

    def create_enpi(self, enpi_data: Dict[str, Any]) -> EnPIRecord:
        """Persist a calculated EnPI."""
        enpi = EnPIRecord(
            name=enpi_data["name"],
            formula=enpi_data["formula"],
            current_value=enpi_data["current_value"],
            baseline_value=enpi_data["baseline_value"],
            baseline_status=enpi_data["baseline_status"],
            calculation_date=to_db_time(enpi_data["calculation_date"]),
            classification_id=enpi_data["classification_id"],
        )
        self.session.add(enpi)
        self._commit("create EnPI")
        self.session.refresh(enpi)
        return enpi

    def get_all_enpis(self) -> List[EnPIRecord]:
        """Get all EnPIs ordered by id."""
        return self.session.query(EnPIRecord).order_by(EnPIRecord.id).all()

    def get_enpi(self, enpi_id: int) -> Optional[EnPIRecord]:
        """Get EnPI by id, or None."""
        return self.session.get(EnPIRecord, enpi_id)

    def delete_enpi(self, enpi_id: int) -> bool:
        """
        Delete an EnPI.

        Returns:
            False if no such EnPI existed
        """
        enpi = self.get_enpi(enpi_id)
        if enpi is None:
            return False
        self.session.delete(enpi)
        self._commit("delete EnPI")
        return True


# =========================================
# Utility Functions
# =========================================

def check_database_health(bind: Optional[Engine] = None) -> Dict[str, Any]:
    """
    Check database health and return status.

    Returns:
        Dictionary with health status information
    """
    bind = bind or engine
    try:
        with bind.connect() as conn:
            conn.execute(text("SELECT 1"))

        tables = set(inspect(bind).get_table_names())

        return {
            "status": "healthy",
            "connected": True,
            "dialect": bind.dialect.name,
            "tables_ready": {"classifications", "metering_data", "enpis"} <= tables,
        }

    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "connected": False,
            "error": str(e)
        }


def init_database(bind: Optional[Engine] = None) -> None:
    """
    Create tables if they don't exist and seed default classifications.

    This is called on application startup to ensure
    the database schema is ready.
    """
    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    session = Session(bind=bind)
    try:
        if session.query(ClassificationRecord).count() == 0:
            session.add_all(ClassificationRecord(**seed) for seed in SEED_CLASSIFICATIONS)
            session.commit()
            logger.info(f"Seeded {len(SEED_CLASSIFICATIONS)} default classifications")
        else:
            logger.info("Database tables verified")
    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        session.rollback()
        raise
    finally:
        session.close()
