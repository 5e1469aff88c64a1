from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from triclub.config import Config

# Base class for all models
Base = declarative_base()


def create_db_engine(config: Config) -> Engine:
    """
    Build the engine for the configured database.

    The engine (and its connection pool) is owned by the application entry
    point; nothing in the package keeps a module-level pool.
    """
    return create_engine(config.SQLALCHEMY_DATABASE_URI, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def transactional(db: Session):
    """
    Run the enclosed block as one database transaction.

    Commits when the block finishes and rolls back everything on any
    exception, so no partial state of a multi-step operation is ever visible.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
