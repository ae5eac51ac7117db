"""Explicit session objects and their in-memory store.

A session holds the bearer token pair obtained at login plus the user's
non-critical draft material selections. Sessions are passed around
explicitly (FastAPI dependencies) and persisted only through the store's
load/save/clear lifecycle; nothing else reads or writes tokens.
"""

import threading
import uuid
from datetime import datetime
from datetime import timezone
from typing import Dict
from typing import List
from typing import Optional

import jwt
from loguru import logger
from pydantic import BaseModel
from pydantic import Field


def token_expiry(token: Optional[str]) -> Optional[datetime]:
    """
    Decode the `exp` claim of a JWT without verifying its signature.

    Parameters
    ----------
    token : Optional[str]
        Encoded JWT

    Returns
    -------
    Optional[datetime]
        Expiry in UTC, or None if the token is missing, malformed or has no `exp`.
    """
    if not token:
        return None
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc)


class TokenPair(BaseModel):
    """Access/refresh pair returned by the token endpoint."""

    access: str
    refresh: str


class DraftMaterial(BaseModel):
    """An unsaved material selection for an environment."""

    item: str
    description: str = ""
    brand_id: Optional[int] = None


class Session(BaseModel):
    """Authenticated dashboard session."""

    session_id: str
    email: str
    access_token: str
    refresh_token: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    draft_selections: Dict[int, List[DraftMaterial]] = Field(default_factory=dict)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        True when the session can no longer be refreshed.

        The refresh token's `exp` gates the session; an expired access token
        alone is recovered by the client's single refresh attempt. A refresh
        token that cannot be decoded counts as expired.
        """
        expires_at = token_expiry(self.refresh_token)
        if expires_at is None:
            return True
        return expires_at <= (now or datetime.now(timezone.utc))


class SessionStore:
    """
    Thread-safe in-memory session store.

    Attributes
    ----------
    _sessions : Dict[str, Session]
        Sessions keyed by session id
    _lock : threading.Lock
        Lock guarding the dictionary
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, email: str, tokens: TokenPair) -> Session:
        """Create and persist a new session for a freshly obtained token pair."""
        session = Session(
            session_id=uuid.uuid4().hex,
            email=email,
            access_token=tokens.access,
            refresh_token=tokens.refresh,
        )
        self.save(session)
        logger.info("Session created", session_id=session.session_id, email=email)
        return session

    def load(self, session_id: str) -> Optional[Session]:
        """Return a copy of the stored session, or None."""
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def save(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.session_id] = session.model_copy(deep=True)

    def update_access_token(self, session_id: str, access_token: str) -> bool:
        """Replace only the access token of a stored session; False if the session is gone."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            session.access_token = access_token
            return True

    def update_draft_selection(self, session_id: str, environment_id: int, materials: List[DraftMaterial]) -> bool:
        """Replace (or, with an empty list, remove) the drafts of one environment; False if the session is gone."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            if materials:
                session.draft_selections[environment_id] = [m.model_copy() for m in materials]
            else:
                session.draft_selections.pop(environment_id, None)
            return True

    def sweep_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Drop every session whose refresh token has expired; returns the removed ids."""
        with self._lock:
            expired = [sid for sid, session in self._sessions.items() if session.is_expired(now)]
            for session_id in expired:
                del self._sessions[session_id]
        if expired:
            logger.info("Expired sessions swept", count=len(expired))
        return expired

    def clear(self, session_id: str) -> None:
        """Forget a session (logout or failed refresh)."""
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed:
            logger.info("Session cleared", session_id=session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
