import logging
import os
from sqlmodel import Session, SQLModel, create_engine

logger = logging.getLogger(__name__)

env = os.getenv("ENV", "dev").lower()
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    # Local file fallback is for development and tests only
    if env in ("prod", "production"):
        raise RuntimeError(
            "DATABASE_URL is not set; a local SQLite file is not allowed when ENV is production."
        )
    DATABASE_URL = f"sqlite:///{os.getenv('DATABASE_PATH', './performances.db')}"

if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + DATABASE_URL.removeprefix("postgres://")

driver = DATABASE_URL.split(":", 1)[0] if ":" in DATABASE_URL else "unknown"
logger.info(f"Performance store using driver: {driver}")

# Request handlers run in a threadpool, so SQLite connections must cross threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True, connect_args=connect_args)


def create_db_and_tables():
    """Create the performances table if missing; existing rows are untouched."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield a session per request."""
    with Session(engine) as session:
        yield session
