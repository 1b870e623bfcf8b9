import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from dotenv import load_dotenv
from contextlib import contextmanager

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scholarship_models.db")

class Base(DeclarativeBase):
    pass

def make_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, future=True, **kwargs)

def make_session_factory(bind):
    return sessionmaker(bind=bind, autoflush=False, autocommit=False, future=True, expire_on_commit=False)

engine = make_engine(DATABASE_URL)
SessionLocal = make_session_factory(engine)

def init_db(bind=None):
    # model modules register their tables on Base.metadata when imported
    import scholarship_matching.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

@contextmanager
def get_db(session_factory=None):
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
