# farmfence/db.py
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from farmfence.config import DATABASE_URL

SessionFactory = Callable[[], Session]


def make_session_factory(bind: Engine) -> sessionmaker:
    # rows handed back after commit stay readable
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = make_session_factory(engine)

Base = declarative_base()


@contextmanager
def unit_of_work(session_factory: Optional[SessionFactory] = None) -> Iterator[Session]:
    """
    One transaction per logical operation: commit when the block finishes,
    roll back everything on any exception.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

