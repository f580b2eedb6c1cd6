# sales_tracker/config.py
"""
Centralized Configuration Management

Version: 2.1.0
Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Environment detection
- Session / password / bootstrap settings for the auth layer
"""

import os
import json
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Optional
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _parse_bootstrap_passwords(raw: Any) -> Dict[str, str]:
    """Accept a mapping or a JSON object string; anything else is ignored."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("BOOTSTRAP_PASSWORDS is not valid JSON, ignoring it")
        return {}
    if not isinstance(parsed, dict):
        logger.warning("BOOTSTRAP_PASSWORDS must be a JSON object, ignoring it")
        return {}
    return {str(k): str(v) for k, v in parsed.items()}


@dataclass
class DatabaseConfig:
    """Database configuration container"""
    host: str
    port: int
    user: str
    password: str
    database: str
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
            'url': self.url,
        }

    def is_configured(self) -> bool:
        return bool(self.url) or all([self.host, self.user, self.password])


class Config:
    """
    Centralized configuration management

    Usage:
        from sales_tracker.config import config

        # Get database config
        db_config = config.get_db_config()

        # Get app settings
        timeout = config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)

        # Check feature flags
        if config.is_feature_enabled("CONSOLE_LOGS"):
            ...
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration based on environment"""
        self._secrets: Dict[str, Any] = {}

        if self.is_cloud:
            self._load_cloud_config()
        else:
            self._load_local_config()

        self._load_app_config()
        self._log_config_status()

    def _load_cloud_config(self):
        """Load configuration from Streamlit Cloud secrets"""
        import streamlit as st

        db_secrets = st.secrets.get("DB_CONFIG", {})
        self._db_config = DatabaseConfig(
            host=db_secrets.get("host", ""),
            port=int(db_secrets.get("port", 3306)),
            user=db_secrets.get("user", ""),
            password=db_secrets.get("password", ""),
            database=db_secrets.get("database", "sales_tracker"),
            url=db_secrets.get("url"),
        )

        # Auth-related secrets override environment variables
        auth_secrets = st.secrets.get("AUTH", {})
        self._secrets = {
            "BOOTSTRAP_PASSWORDS": auth_secrets.get("BOOTSTRAP_PASSWORDS"),
        }

        logger.info("☁️ Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Load configuration from local .env file"""
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        self._db_config = DatabaseConfig(
            host=os.getenv("DB_HOST", ""),
            port=int(os.getenv("DB_PORT", "3306")),
            user=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            database=os.getenv("DB_NAME", os.getenv("DB_DATABASE", "sales_tracker")),
            url=os.getenv("DATABASE_URL"),
        )

        # Validated lazily when the engine is first created
        if not self._db_config.is_configured():
            logger.warning("Database configuration incomplete, set DATABASE_URL or DB_* in .env")

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Session
            "SESSION_TIMEOUT_HOURS": int(os.getenv("SESSION_TIMEOUT_HOURS", "8")),
            "SESSION_IDLE_TIMEOUT_MINUTES": int(os.getenv("SESSION_IDLE_TIMEOUT_MINUTES", "40")),
            "ACTIVITY_DEBOUNCE_SECONDS": float(os.getenv("ACTIVITY_DEBOUNCE_SECONDS", "1")),

            # Passwords
            "BCRYPT_ROUNDS": int(os.getenv("BCRYPT_ROUNDS", "12")),
            "BOOTSTRAP_PASSWORDS": _parse_bootstrap_passwords(
                self._secrets.get("BOOTSTRAP_PASSWORDS") or os.getenv("BOOTSTRAP_PASSWORDS", "")
            ),

            # Database pool
            "DB_POOL_SIZE": int(os.getenv("DB_POOL_SIZE", "5")),
            "DB_POOL_RECYCLE": int(os.getenv("DB_POOL_RECYCLE", "3600")),

            # Logging
            "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),

            # Feature flags
            "ENABLE_CONSOLE_LOGS": _env_bool("ENABLE_CONSOLE_LOGS", "true"),
        }

    def _log_config_status(self):
        """Log configuration status"""
        if self._db_config.url:
            logger.info("✅ Database: DATABASE_URL")
        else:
            logger.info(f"✅ Database: {self._db_config.host or '-'}/{self._db_config.database}")
        bootstrap_count = len(self._app_config["BOOTSTRAP_PASSWORDS"])
        logger.info(f"✅ Bootstrap accounts: {bootstrap_count if bootstrap_count else 'Not configured'}")

    # ==================== PUBLIC GETTERS ====================

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration as dictionary"""
        return self._db_config.to_dict()

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        """Check if feature is enabled"""
        key = f"ENABLE_{feature.upper()}"
        return self._app_config.get(key, True)

    # ==================== PROPERTIES ====================

    @property
    def app_config(self) -> Dict[str, Any]:
        """Copy of all application settings"""
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

IS_RUNNING_ON_CLOUD = config.is_cloud

__all__ = [
    'config',
    'Config',
    'DatabaseConfig',
    'IS_RUNNING_ON_CLOUD',
]
