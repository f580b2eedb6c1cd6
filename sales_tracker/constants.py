# sales_tracker/constants.py
"""
Constants for authentication and authorization

Centralized configuration for:
- Role definitions and capability flags
- Session lifecycle defaults
- Activity signal types
- Bootstrap accounts (first-run only)
"""

# =====================================================================
# ROLE DEFINITIONS
# =====================================================================

ROLE_SUPER_ADMIN = 'super_admin'
ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'
ROLE_AGENT = 'agent'

# Ordered by privilege, highest first
ROLES = (ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_MANAGER, ROLE_AGENT)

ROLE_LABELS = {
    ROLE_SUPER_ADMIN: 'Super Administrateur',
    ROLE_ADMIN: 'Administrateur',
    ROLE_MANAGER: 'Manager',
    ROLE_AGENT: 'Agent',
}

# Roles allowed on the user management page
USER_ADMIN_ROLES = [ROLE_SUPER_ADMIN, ROLE_ADMIN, ROLE_MANAGER]

# =====================================================================
# CAPABILITIES
# =====================================================================

CAPABILITY_FLAGS = (
    'is_manager',
    'is_admin',
    'is_super_admin',
    'is_agent',
    'can_manage_users',
    'can_manage_teams',
)

ROLE_CAPABILITIES = {
    ROLE_MANAGER: {
        'is_manager': True, 'is_admin': False, 'is_super_admin': False,
        'is_agent': False, 'can_manage_users': True, 'can_manage_teams': False,
    },
    ROLE_ADMIN: {
        'is_manager': False, 'is_admin': True, 'is_super_admin': False,
        'is_agent': False, 'can_manage_users': True, 'can_manage_teams': True,
    },
    ROLE_SUPER_ADMIN: {
        'is_manager': False, 'is_admin': False, 'is_super_admin': True,
        'is_agent': False, 'can_manage_users': True, 'can_manage_teams': True,
    },
    ROLE_AGENT: {
        'is_manager': False, 'is_admin': False, 'is_super_admin': False,
        'is_agent': True, 'can_manage_users': False, 'can_manage_teams': False,
    },
}

# =====================================================================
# SESSION LIFECYCLE
# =====================================================================

DEFAULT_SESSION_TIMEOUT_HOURS = 8
DEFAULT_IDLE_TIMEOUT_MINUTES = 40
DEFAULT_ACTIVITY_DEBOUNCE_SECONDS = 1.0

# Single key so the four session fields are always written together
SESSION_STORAGE_KEY = 'auth_session'
SESSION_FIELDS = ('user', 'token', 'expires_at', 'last_activity')

ACTIVITY_EVENTS = frozenset([
    'mousedown', 'mousemove', 'keypress', 'scroll', 'touchstart', 'click',
])

EXPIRY_LOGOUT = 'logout'
EXPIRY_INACTIVITY = 'inactivity'
EXPIRY_ABSOLUTE = 'expired'

GENERIC_LOGIN_ERROR = "Invalid username or password"
INACTIVITY_MESSAGE = (
    "Your session expired after a long period of inactivity. Please log in again."
)
ABSOLUTE_EXPIRY_MESSAGE = "Your session has expired. Please log in again."

# =====================================================================
# CREDENTIAL FORMATS
# =====================================================================

CREDENTIAL_PLAIN = 'plain'
CREDENTIAL_HASHED = 'hashed'

# =====================================================================
# BOOTSTRAP ACCOUNTS
# =====================================================================

# Only reachable before the user store is seeded. Passwords come from
# BOOTSTRAP_PASSWORDS in the environment, never from source.
BOOTSTRAP_USERS = [
    {
        'id': -1,
        'username': 'super_admin1',
        'role': ROLE_SUPER_ADMIN,
        'name': 'Super Administrateur',
        'email': 'super.admin@company.com',
        'is_active': True,
        'is_hidden': True,
    },
    {
        'id': -2,
        'username': 'admin2',
        'role': ROLE_ADMIN,
        'name': 'Administrateur Principal',
        'email': 'admin@company.com',
        'is_active': True,
        'is_hidden': True,
    },
    {
        'id': -3,
        'username': 'manager',
        'role': ROLE_MANAGER,
        'name': 'CLEMENT',
        'email': 'manager@company.com',
        'is_active': True,
    },
    {
        'id': -4,
        'username': 'CARLY',
        'role': ROLE_MANAGER,
        'name': 'CARLY',
        'email': 'carly@company.com',
        'is_active': True,
    },
    {
        'id': -5,
        'username': 'agent',
        'role': ROLE_AGENT,
        'name': 'Pierre Dubois',
        'email': 'agent@company.com',
        'is_active': True,
        'team_id': -3,
    },
]

# Hidden admin accounts re-created when missing from a seeded store
REQUIRED_ADMIN_USERNAMES = ['super_admin1', 'admin2']
