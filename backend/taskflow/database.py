from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from . import config


def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # sqlite's busy timeout bounds how long a write waits on a lock
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": config.STORE_TIMEOUT_SECONDS},
        )

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=config.STORE_TIMEOUT_SECONDS,
        connect_args={"connect_timeout": int(config.STORE_TIMEOUT_SECONDS)},
    )


engine = make_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

class Base(DeclarativeBase):
    pass

def init_db(bind: Engine = engine) -> None:
    from . import models  # noqa: F401  registers tables on Base.metadata
    Base.metadata.create_all(bind=bind)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
