from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

from skinwatch.core.config import settings
from skinwatch.db.base import Base


def build_engine(url: str | None = None) -> Engine:
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.SQL_ECHO,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=settings.SQL_ECHO,
        poolclass=QueuePool,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=300,  # recycle before server-side idle timeouts
        connect_args={
            "connect_timeout": 10,
            "keepalives": 1,
            "keepalives_idle": 30,
        },
    )


engine = build_engine()

SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables. Production schemas are managed by alembic."""
    import skinwatch.db.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
