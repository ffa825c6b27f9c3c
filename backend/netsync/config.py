from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "netsync"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://netsync:netsync@db:5432/netsync"

    # Inventory source (LibreNMS-style API)
    INVENTORY_API_URL: str = ""
    INVENTORY_API_TOKEN: str = ""
    INVENTORY_TIMEOUT: float = 30.0

    # SNMP
    SNMP_VERSION: str = "2c"
    SNMP_PORT: int = 161
    SNMP_TIMEOUT: float = 8.0          # per request, seconds
    SNMP_RETRIES: int = 0
    STORAGE_DISCOVERY_TIMEOUT: float = 2.0
    USAGE_POLL_DEADLINE: float = 20.0  # clamped to 1..30 s
    VLAN_DISCOVERY_DEADLINE: float = 18.0
    VLAN_SNMP_RETRIES: int = 2
    MIKROTIK_PVID_PORT_SLOTS: int = 12
    VLAN_PRUNE_STALE: bool = False

    # Sync scheduling
    SYNC_INTERVAL_SECONDS: int = 300
    SYNC_CONCURRENCY: int = 8

    # Change notifications (optional)
    NOTIFY_WEBHOOK_URL: str = ""
    NOTIFY_USERNAME: str = ""
    NOTIFY_PASSWORD: str = ""
    NOTIFY_TARGET: Optional[str] = None   # group / channel id forwarded to the webhook

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
