from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from intellicode.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Collaboration writes run on worker threads
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

from intellicode.db.base_class import Base  # noqa: F401

# Import models to ensure they're registered with SQLAlchemy
from intellicode.models.user import User
from intellicode.models.project import Project, ProjectFile, Collaboration
from intellicode.models.chat import ChatMessage
from intellicode.models.cursor import CursorPosition
from intellicode.models.ai_cache import AICache

# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
