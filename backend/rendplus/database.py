from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from rendplus.config import settings

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

class Base(DeclarativeBase):
    pass

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    from rendplus import models  # noqa: F401
    Base.metadata.create_all(engine)
