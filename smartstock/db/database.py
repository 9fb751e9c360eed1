from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from smartstock.core.config import settings


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, **kwargs) -> Engine:
    sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if sqlite else {"sslmode": settings.database_sslmode}
    new_engine = create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=not sqlite,
        pool_recycle=1800 if not sqlite else -1,
        **kwargs,
    )
    if sqlite:
        # conversion and line rows rely on ON DELETE CASCADE
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
    return new_engine


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind: Engine | None = None) -> None:
    import smartstock.models  # noqa: F401  registers every table on Base.metadata

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
