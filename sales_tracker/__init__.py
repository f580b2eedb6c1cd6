# sales_tracker/__init__.py
"""
Shared Package for the Sales Tracker Streamlit App

This package contains the logic shared across all pages:
- auth: Authentication, session lifecycle and capability flags
- config: Configuration management (local + Streamlit Cloud)
- db: Database connection management and table definitions
- stores: User / credential / tab-scoped session stores
- users: User administration
- passwords: bcrypt hashing and password policy
- secure_logger: Logging with sensitive-data masking
- commission: Tiered bonus calculation

Usage:
    from sales_tracker.auth import get_auth_manager
    from sales_tracker.commission import calculate_commission

    # Or import commonly used items directly
    from sales_tracker import AuthManager, calculate_commission, config
"""

# Configuration
from .config import (
    config,
    Config,
    IS_RUNNING_ON_CLOUD,
)

# Authentication
from .auth import (
    AuthManager,
    capabilities_for_role,
    get_auth_manager,
    require_auth,
    require_role,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
    ensure_schema,
    get_connection,
    get_transaction,
    get_connection_pool_status,
)

# Stores
from .stores import (
    SqlUserStore,
    SqlCredentialStore,
    MemorySessionStorage,
    StreamlitSessionStorage,
)

from .models import User, Capabilities
from .users import UserService
from .secure_logger import configure_logging

# Commission
from .commission import calculate_commission, format_currency

__all__ = [
    # Config
    'config',
    'Config',
    'IS_RUNNING_ON_CLOUD',

    # Auth
    'AuthManager',
    'capabilities_for_role',
    'get_auth_manager',
    'require_auth',
    'require_role',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'ensure_schema',
    'get_connection',
    'get_transaction',
    'get_connection_pool_status',

    # Stores
    'SqlUserStore',
    'SqlCredentialStore',
    'MemorySessionStorage',
    'StreamlitSessionStorage',

    # Models / services
    'User',
    'Capabilities',
    'UserService',
    'configure_logging',

    # Commission
    'calculate_commission',
    'format_currency',
]

__version__ = '1.0.0'
