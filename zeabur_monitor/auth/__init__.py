from zeabur_monitor.auth.gate import AuthGate, Identity, require_auth
from zeabur_monitor.auth.passwords import AdminPassword
from zeabur_monitor.auth.sessions import Session, SessionStore

__all__ = [
    "AdminPassword",
    "AuthGate",
    "Identity",
    "Session",
    "SessionStore",
    "require_auth",
]
