from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Admin password. When set it always wins over password.json and makes
    # the first-run setup endpoint permanently unavailable.
    admin_password: str = ""

    # Pre-configured accounts: "name1:token1,name2:token2"
    accounts: str = ""

    # Directory holding sessions.json / accounts.json / password.json
    config_dir: str = "config"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Zeabur GraphQL endpoint
    upstream_url: str = "https://api.zeabur.com/graphql"
    upstream_timeout: float = 10.0  # seconds, per request, no retry

    # Monthly free allowance in USD
    free_quota_limit: float = 5.0

    # Logging
    log_level: str = "INFO"

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir).expanduser()


settings = Settings()
