from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Engine configuration, read from the environment or .env

    - pairing_trials: random partitions tried per round (minimum 100)
    - plan_iteration_cap: max rounds generated by one plan request
    - default_matches_per_player: target used when a tournament omits it
    - min_tournament_players: smallest roster accepted at creation
    - admin_token: shared secret for write endpoints, empty disables the check
    """
    database_url: str = "sqlite:///./americano.db"
    pairing_trials: int = 100
    plan_iteration_cap: int = 30
    default_matches_per_player: int = 3
    min_tournament_players: int = 8
    admin_token: str = ""
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite needs check_same_thread=False because FastAPI serves requests from a thread pool
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
if settings.database_url.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # ON DELETE CASCADE on match_players / tournament_players relies on it
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: provides a database Session

    The session is closed once the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator: one commit (or one rollback) per call

    Usage:
        @transactional
        def some_operation(db: Session, ...):
            match = Match(...)
            db.add(match)
            # no manual commit, the decorator handles it

    If the wrapped function raises:
        - the session is rolled back
        - the exception is re-raised for the caller to handle

    Notes:
        - the first argument must be db: Session (or pass db= as keyword)
        - do not commit inside the function
        - do not nest transactional functions; share private helpers instead
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
