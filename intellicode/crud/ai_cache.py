import hashlib
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from intellicode.models.ai_cache import AICache


def make_cache_key(*parts: str) -> str:
    digest = hashlib.sha256()
    for part in parts:
        digest.update((part or "").encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


def get_cached_response(db: Session, cache_key: str) -> Optional[str]:
    entry = db.query(AICache).filter(AICache.cache_key == cache_key).first()
    if entry is None:
        return None
    if entry.is_expired():
        db.delete(entry)
        db.commit()
        return None
    return entry.response


def store_response(
    db: Session, cache_key: str, prompt: str, response: str, model: str, tokens: int, ttl_seconds: int
) -> AICache:
    expires_at = datetime.utcnow() + timedelta(seconds=ttl_seconds)
    entry = db.query(AICache).filter(AICache.cache_key == cache_key).first()
    if entry is None:
        entry = AICache(id=str(uuid.uuid4()), cache_key=cache_key)
    entry.prompt = prompt
    entry.response = response
    entry.model = model
    entry.tokens = tokens
    entry.created_at = datetime.utcnow()
    entry.expires_at = expires_at
    db.add(entry)
    db.commit()
    return entry
