from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, UniqueConstraint
from intellicode.db.base_class import Base
from datetime import datetime

class CursorPosition(Base):
    __tablename__ = "cursor_positions"
    __table_args__ = (
        UniqueConstraint("user_id", "project_id", "file_path", name="uq_cursor_positions_user_project_path"),
    )

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    file_path = Column(String, nullable=False)
    line = Column(Integer, default=0, nullable=False)
    column = Column(Integer, default=0, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
