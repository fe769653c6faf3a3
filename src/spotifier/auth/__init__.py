"""
Auth Module - SSO login and session persistence.
================================================

- authenticator: login state machine, expiry detection, cookie export/import
- session_store: JSON persistence of exported cookies
"""

from spotifier.auth.authenticator import AuthState, SessionAuthenticator
from spotifier.auth.session_store import delete_session, load_session, save_session

__all__ = [
    "AuthState",
    "SessionAuthenticator",
    "save_session",
    "load_session",
    "delete_session",
]
