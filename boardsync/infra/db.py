from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from boardsync.config import SETTINGS


def make_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        # Gateway work runs on worker threads.
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = make_engine(SETTINGS.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
Base = declarative_base()


def init_db() -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
