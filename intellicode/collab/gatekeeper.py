import logging
from typing import Optional

from intellicode.collab.errors import AuthenticationError, PersistenceError
from intellicode.collab.session import UserIdentity
from intellicode.collab.store import CollabStore
from intellicode.core.security import decode_access_token

logger = logging.getLogger("auth")


def extract_bearer_token(query_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """Pick the credential from the ``token`` query param or an Authorization header."""
    if query_token:
        return query_token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def authenticate_connection(store: CollabStore, token: Optional[str]) -> UserIdentity:
    """Resolve a handshake credential to a user. Fails closed."""
    if not token:
        raise AuthenticationError("Authentication error: No token provided")

    user_id = decode_access_token(token)
    if user_id is None:
        raise AuthenticationError("Authentication error: Invalid token")

    try:
        user = await store.get_user(user_id)
    except PersistenceError as e:
        raise AuthenticationError("Authentication error: Unable to verify user") from e
    if user is None:
        raise AuthenticationError("Authentication error: User not found")
    return user
