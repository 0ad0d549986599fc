"""
DATABASE CONFIGURATION - SQLAlchemy setup, bootstrap and session management

This file configures the database connection and provides session management.
It sets up:
1. Database engine with connection pooling
2. Session factory for creating database sessions
3. Base class for all ORM models
4. Startup bootstrap: connect, ping, ensure the users table exists
5. Dependency injection function for FastAPI routes

Nothing here is module-level state: the engine and session factory are built
at startup and handed to the app, and get_db() reads them back from
app.state for each request.
"""

from dataclasses import dataclass
from typing import Optional, Union
from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from app.utils import get_logger, format_error_message

logger = get_logger(__name__)

# Base class for all ORM models
Base = declarative_base()


class StartupError(Exception):
    """Raised (or carried in a StartupResult) when the service cannot start."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {format_error_message(cause)}")


@dataclass
class StartupResult:
    engine: Optional[Engine] = None
    session_factory: Optional[sessionmaker] = None
    error: Optional[StartupError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def create_db_engine(url: Union[str, URL], **kwargs) -> Engine:
    """
    Create the database engine.

    pool_pre_ping=True ensures connections are validated before use; pool
    sizing stays at SQLAlchemy's defaults.
    """
    kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    """
    Session factory bound to the engine.

    expire_on_commit=False keeps committed rows readable after commit so a
    handler can serialize what it just wrote without another round trip.
    """
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def ensure_schema(engine: Engine, reset: bool = False) -> None:
    """
    Make sure the users table exists.

    By default this is create-if-absent. With reset=True the table is dropped
    first, which deletes every stored user.
    """
    from app import models  # noqa: F401  registers tables on Base.metadata

    if reset:
        logger.warning("Dropping existing tables before recreating them")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database table 'users' is ready")


def bootstrap(settings, engine: Optional[Engine] = None) -> StartupResult:
    """
    Prepare storage before the service accepts connections.

    Failures are returned in the result instead of aborting the process, so
    the caller decides whether to exit.
    """
    # STEP 1: Open the engine (lazy in SQLAlchemy, so URL errors show up here)
    if engine is None:
        try:
            engine = create_db_engine(settings.engine_url())
        except (SQLAlchemyError, ValueError, ImportError) as e:
            return _failed("connect", e)

    # STEP 2: Verify connectivity
    try:
        ping(engine)
    except SQLAlchemyError as e:
        engine.dispose()
        return _failed("ping", e)

    # STEP 3: Ensure the table exists
    try:
        ensure_schema(engine, reset=settings.reset_db_on_startup)
    except SQLAlchemyError as e:
        engine.dispose()
        return _failed("create table", e)

    logger.info("Database connection established")
    return StartupResult(engine=engine, session_factory=make_session_factory(engine))


def _failed(stage: str, cause: Exception) -> StartupResult:
    error = StartupError(stage, cause)
    logger.error(f"Database {error}")
    return StartupResult(error=error)


def get_db(request: Request):
    """
    FastAPI dependency for database sessions.

    The session factory lives on app.state (set by create_app). The session
    is closed after the request completes, which also rolls back anything a
    failed handler left uncommitted.

    Usage in routes:
    def my_route(db: Session = Depends(get_db)):
        # Use db session here
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
