"""
Experience Sampling - Database Configuration
Durable state persistence using SQLAlchemy
"""
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Database URL - local SQLite file by default, any SQLAlchemy URL works
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./experience_sampling.db"
)

# Base class for ORM models
Base = declarative_base()


def build_engine(url: str = DATABASE_URL):
    """Create an engine; SQLite connections are shared with worker threads."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def build_session_factory(engine):
    """Session factory bound to the given engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine):
    """Initialize database - create all tables."""
    # Import models so they register on Base.metadata
    from .models import db_models  # noqa: F401
    Base.metadata.create_all(bind=engine)
