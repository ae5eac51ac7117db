"""Session handling and token endpoint calls."""

from espec_api.auth.session import DraftMaterial
from espec_api.auth.session import Session
from espec_api.auth.session import SessionStore
from espec_api.auth.session import TokenPair
from espec_api.auth.session import token_expiry

__all__ = [
    "DraftMaterial",
    "Session",
    "SessionStore",
    "TokenPair",
    "token_expiry",
]
