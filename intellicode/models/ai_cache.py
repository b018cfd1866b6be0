from sqlalchemy import Column, String, DateTime, Integer, Text
from intellicode.db.base_class import Base
from datetime import datetime

class AICache(Base):
    __tablename__ = "ai_cache"

    id = Column(String, primary_key=True, index=True)
    cache_key = Column(String(64), unique=True, index=True, nullable=False)  # sha256 hex
    prompt = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    model = Column(String, nullable=False)
    tokens = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)

    def is_expired(self, now: datetime = None) -> bool:
        """Check if the cached response has outlived its TTL"""
        return (now or datetime.utcnow()) >= self.expires_at
