from zeabur_monitor.storage.documents import (
    ACCOUNTS_FILE,
    PASSWORD_FILE,
    SESSIONS_FILE,
    JsonDocument,
)

__all__ = ["JsonDocument", "ACCOUNTS_FILE", "PASSWORD_FILE", "SESSIONS_FILE"]
