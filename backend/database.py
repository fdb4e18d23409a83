import os
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker, Session

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg://localhost/mtg_library")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class LibrarySlot(Base):
    __tablename__ = "library_slots"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SQLAlchemyStore:
    """Key-value store backed by the library_slots table."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            slot = db.get(LibrarySlot, key)
            return slot.value if slot else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = self.session_factory()
        try:
            slot = db.get(LibrarySlot, key)
            if slot is None:
                db.add(LibrarySlot(key=key, value=value))
            else:
                slot.value = value
            db.commit()
        finally:
            db.close()


def init_db():
    Base.metadata.create_all(bind=engine)
