"""
Database models for the spots table.

Uses SQLAlchemy 2.0. The engine and session factory are built at startup
and handed to the record store; nothing here connects at import time.
"""

from contextlib import contextmanager
from typing import Optional

from sqlalchemy import Float, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool


# =============================================================================
# Database Engine and Session
# =============================================================================

def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for the spots database.

    SQLite URLs share a single connection so in-memory databases
    survive across sessions.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=2,            # Single writer, one reader
        pool_recycle=1800,      # Recycle connections every 30 minutes
        connect_args={
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000",
        },
    )


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker):
    """Context manager for database sessions."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Spot(Base):
    """
    A point of interest shown on the globe.

    `name` may carry `#tag` suffixes after the base name. `year` is signed:
    negative for BC, positive for AD, NULL when unknown.
    """
    __tablename__ = "spots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    country: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    country_ja: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Locale pairs (see config.SUPPORTED_LANGUAGES)
    name_ja: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description_ja: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name_en: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name_zh: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description_zh: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name_es: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description_es: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name_fr: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description_fr: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Spot {self.id} {self.name} ({self.lat}, {self.lon})>"
