from zeabur_monitor.accounts.catalog import Account, AccountCatalog, parse_env_accounts

__all__ = ["Account", "AccountCatalog", "parse_env_accounts"]
