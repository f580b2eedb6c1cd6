# sales_tracker/auth.py
"""
Authentication Manager

Version: 3.0.0
Features:
- bcrypt password verification with lazy migration of legacy plaintext records
- Session token with 8-hour absolute lifetime
- 40-minute inactivity timeout driven by activity signals
- Tab-scoped session persistence and restore
- Role-derived capability flags
- Bootstrap accounts, only before the user store is seeded

State machine:
    LoggedOut --login / restore_session--> Active
    Active --logout / inactivity / absolute expiry--> LoggedOut
"""

import hmac
import json
import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from .config import config
from .constants import (
    ABSOLUTE_EXPIRY_MESSAGE,
    ACTIVITY_EVENTS,
    BOOTSTRAP_USERS,
    CAPABILITY_FLAGS,
    DEFAULT_ACTIVITY_DEBOUNCE_SECONDS,
    DEFAULT_IDLE_TIMEOUT_MINUTES,
    DEFAULT_SESSION_TIMEOUT_HOURS,
    EXPIRY_ABSOLUTE,
    EXPIRY_INACTIVITY,
    EXPIRY_LOGOUT,
    GENERIC_LOGIN_ERROR,
    INACTIVITY_MESSAGE,
    ROLE_CAPABILITIES,
    SESSION_FIELDS,
    SESSION_STORAGE_KEY,
)
from .models import Capabilities, Session, User
from .secure_logger import log_auth_event, mask_value

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TimerFactory = Callable[[float, Callable[[], None]], Any]
ExpiryCallback = Callable[[str, str], None]


# ==================== CAPABILITIES ====================

def capabilities_for_role(role: Optional[str]) -> Capabilities:
    """Pure lookup; unknown or missing roles get no capability"""
    flags = ROLE_CAPABILITIES.get(role or '')
    if not flags:
        return Capabilities()
    return Capabilities(**{name: flags[name] for name in CAPABILITY_FLAGS})


# ==================== TIMERS ====================

def thread_timer(interval: float, callback: Callable[[], None]) -> threading.Timer:
    """Default timer factory: a started daemon threading.Timer"""
    timer = threading.Timer(interval, callback)
    timer.daemon = True
    timer.start()
    return timer


class _RerunTimer:
    def cancel(self):
        pass


def rerun_timer(interval: float, callback: Callable[[], None]) -> _RerunTimer:
    """
    Timer factory for Streamlit pages.

    A background thread can neither redraw the page nor reach
    st.session_state, so nothing is scheduled here; check_session() on
    every rerun enforces the same idle limit.
    """
    return _RerunTimer()


class AuthManager:
    """
    Session & authorization manager.

    Every collaborator is injected so tests can swap in fakes:
        auth = AuthManager(
            user_store=SqlUserStore(engine),
            credential_store=SqlCredentialStore(engine),
            storage=MemorySessionStorage(),
            clock=fake_clock,
            timer_factory=fake_timers,
        )

        auth.restore_session()          # once per tab
        auth.login("manager", "...")    # -> bool
        auth.notify_activity("click")   # from the UI on each interaction
        auth.check_session()            # before each protected action
        auth.logout()
    """

    def __init__(
        self,
        user_store,
        credential_store,
        storage,
        clock: Optional[Clock] = None,
        timer_factory: Optional[TimerFactory] = None,
        session_timeout: Optional[timedelta] = None,
        idle_timeout: Optional[timedelta] = None,
        activity_debounce: Optional[timedelta] = None,
        on_session_expired: Optional[ExpiryCallback] = None,
        bootstrap_passwords: Optional[Dict[str, str]] = None,
    ):
        self.user_store = user_store
        self.credential_store = credential_store
        self.storage = storage
        self.clock = clock or datetime.now
        self.timer_factory = timer_factory or thread_timer
        self.on_session_expired = on_session_expired

        self.session_timeout = session_timeout or timedelta(
            hours=config.get_app_setting("SESSION_TIMEOUT_HOURS", DEFAULT_SESSION_TIMEOUT_HOURS)
        )
        self.idle_timeout = idle_timeout or timedelta(
            minutes=config.get_app_setting("SESSION_IDLE_TIMEOUT_MINUTES", DEFAULT_IDLE_TIMEOUT_MINUTES)
        )
        self.activity_debounce = activity_debounce if activity_debounce is not None else timedelta(
            seconds=config.get_app_setting("ACTIVITY_DEBOUNCE_SECONDS", DEFAULT_ACTIVITY_DEBOUNCE_SECONDS)
        )
        if bootstrap_passwords is None:
            bootstrap_passwords = config.get_app_setting("BOOTSTRAP_PASSWORDS", {})
        self._bootstrap_passwords = dict(bootstrap_passwords)

        self._lock = threading.RLock()
        self._session: Optional[Session] = None
        self._timer = None
        self._timer_armed_at: Optional[datetime] = None

        self.last_error: Optional[str] = None
        self.last_expiry_reason: Optional[str] = None
        self.expiry_notice: Optional[str] = None

    # ==================== AUTHENTICATION ====================

    def login(self, username: str, password: str) -> bool:
        """
        Authenticate and open a session.

        Returns False for every authentication failure; the cause is only
        logged. Store errors are logged and also reported as False.
        """
        self.last_error = None

        if not username or not password:
            self.last_error = GENERIC_LOGIN_ERROR
            return False

        log_auth_event(logger, "Login attempt", username)

        try:
            user = self._authenticate(username, password)
        except Exception as e:
            logger.error(f"Authentication error ({type(e).__name__}) for user {mask_value(username)}")
            user = None

        if user is None:
            self.last_error = GENERIC_LOGIN_ERROR
            return False

        try:
            self._start_session(user)
        except Exception as e:
            logger.error(f"Could not store session ({type(e).__name__}) for user {mask_value(username)}")
            self.last_error = GENERIC_LOGIN_ERROR
            return False

        log_auth_event(logger, "Login successful", username, success=True)
        return True

    def _authenticate(self, username: str, password: str) -> Optional[User]:
        user = self.user_store.get_by_username(username)

        if user is None:
            if not self.user_store.is_initialized():
                return self._authenticate_bootstrap(username, password)
            log_auth_event(logger, "Unknown user", username)
            return None

        if not user.is_active:
            log_auth_event(logger, "Account is inactive", username)
            return None

        record = self.credential_store.get_credential(username)

        if record is None:
            if not self.user_store.is_initialized():
                return self._authenticate_bootstrap(username, password)
            logger.warning(f"No credential record for user {mask_value(username)}")
            return None

        if record.is_legacy:
            if not hmac.compare_digest(record.secret.encode('utf-8'), password.encode('utf-8')):
                log_auth_event(logger, "Wrong password", username)
                return None
            self.credential_store.set_password(username, password)
            logger.info(f"Legacy plaintext credential migrated to hash for user {mask_value(username)}")
            return user

        if not self.credential_store.verify(password, record.secret):
            log_auth_event(logger, "Wrong password", username)
            return None

        return user

    def _authenticate_bootstrap(self, username: str, password: str) -> Optional[User]:
        """Fixed first-run accounts; only called while the user store is empty"""
        expected = self._bootstrap_passwords.get(username)
        account = next((u for u in BOOTSTRAP_USERS if u['username'] == username), None)

        if account is None or not expected:
            log_auth_event(logger, "Unknown user (store not initialized)", username)
            return None

        logger.warning(f"⚠️ Bootstrap account used before first-run initialization: {mask_value(username)}")

        if not hmac.compare_digest(expected.encode('utf-8'), password.encode('utf-8')):
            log_auth_event(logger, "Wrong password (bootstrap)", username)
            return None

        return User.from_dict(account)

    # ==================== SESSION LIFECYCLE ====================

    def _start_session(self, user: User):
        now = self.clock()
        session = Session(
            token=secrets.token_hex(32),
            user=user,
            expires_at=now + self.session_timeout,
            last_activity=now,
        )

        with self._lock:
            # Nothing is kept in memory unless the tab store accepted the record
            self._persist(session)
            self._cancel_timer()
            self._session = session
            self.last_expiry_reason = None
            self.expiry_notice = None
            self._schedule_idle_timer(self.idle_timeout)

    def logout(self):
        """Clear memory and tab storage, cancel the idle timer. Idempotent."""
        with self._lock:
            username = self._session.user.username if self._session else None
            self._end_session(EXPIRY_LOGOUT)

        if username:
            log_auth_event(logger, "Logged out", username, success=True)

    def restore_session(self) -> Optional[User]:
        """
        Rehydrate a session from tab storage.

        Every failure (missing fields, corrupt payload, expired, idle,
        storage error) wipes the store and returns None.
        """
        try:
            raw = self.storage.get_item(SESSION_STORAGE_KEY)
        except Exception as e:
            logger.error(f"Could not read session storage ({type(e).__name__})")
            self._wipe_storage()
            return None

        if raw is None:
            return None

        try:
            payload = json.loads(raw)
            if not isinstance(payload, dict) or any(not payload.get(f) for f in SESSION_FIELDS):
                raise ValueError("incomplete session record")
            session = Session.from_payload(payload)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding invalid stored session: {e}")
            self._wipe_storage()
            return None

        now = self.clock()

        try:
            expired = now > session.expires_at
            idle = now - session.last_activity
        except TypeError as e:
            logger.warning(f"Discarding stored session with mismatched timestamps: {e}")
            self._wipe_storage()
            return None

        if expired:
            logger.info(f"Stored session expired for user {mask_value(session.user.username)}")
            self._wipe_storage()
            return None

        if idle > self.idle_timeout:
            logger.info(f"Stored session idle for {idle} for user {mask_value(session.user.username)}")
            self._wipe_storage()
            return None

        with self._lock:
            self._cancel_timer()
            self._session = session
            self.last_expiry_reason = None
            self._schedule_idle_timer(self.idle_timeout - idle)

        logger.info(f"Session restored for user {mask_value(session.user.username)}")
        return session.user

    def check_session(self) -> bool:
        """Enforce absolute expiry and inactivity; True while the session is valid"""
        reason = None
        with self._lock:
            if self._session is None:
                return False
            reason = self._expiry_reason(self.clock())
            if reason:
                self._end_session(reason)

        if reason:
            self._notify_expired(reason)
            return False
        return True

    def _expiry_reason(self, now: datetime) -> Optional[str]:
        if now > self._session.expires_at:
            return EXPIRY_ABSOLUTE
        if now - self._session.last_activity > self.idle_timeout:
            return EXPIRY_INACTIVITY
        return None

    def _end_session(self, reason: str):
        self._cancel_timer()
        self._session = None
        self.last_expiry_reason = reason
        self._wipe_storage()

    def _persist(self, session: Session):
        """One write of the whole record, so readers never see a partial session"""
        self.storage.set_item(SESSION_STORAGE_KEY, json.dumps(session.to_payload()))

    def _wipe_storage(self):
        try:
            self.storage.clear()
        except Exception as e:
            logger.error(f"Could not clear session storage ({type(e).__name__})")

    # ==================== ACTIVITY & IDLE TIMER ====================

    def notify_activity(self, event_type: str = "click") -> bool:
        """
        Activity sink for the UI.

        Qualifying signals refresh last-activity (memory and storage) and
        re-arm the idle countdown, at most once per debounce window.
        Returns True when the signal was applied to an active session.
        """
        if event_type not in ACTIVITY_EVENTS:
            return False

        reason = None
        with self._lock:
            if self._session is None:
                return False

            now = self.clock()
            reason = self._expiry_reason(now)
            if reason:
                self._end_session(reason)
            else:
                if now > self._session.last_activity:
                    self._session.last_activity = now
                    try:
                        self._persist(self._session)
                    except Exception as e:
                        logger.error(f"Could not write session storage ({type(e).__name__})")

                if self._timer_armed_at is None or now - self._timer_armed_at >= self.activity_debounce:
                    self._schedule_idle_timer(self.idle_timeout)

        if reason:
            self._notify_expired(reason)
            return False
        return True

    def _schedule_idle_timer(self, delay: timedelta):
        """Cancel whatever is pending, then arm a timer bound to the current token"""
        self._cancel_timer()
        token = self._session.token
        seconds = max(delay.total_seconds(), 0.0)
        self._timer = self.timer_factory(seconds, lambda: self._on_idle_timer(token))
        self._timer_armed_at = self.clock()

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._timer_armed_at = None

    def _on_idle_timer(self, token: str):
        expired = False
        with self._lock:
            if self._session is None or self._session.token != token:
                # Timer from an earlier session
                return

            idle = self.clock() - self._session.last_activity
            if idle < self.idle_timeout:
                # Activity arrived inside the debounce window
                self._schedule_idle_timer(self.idle_timeout - idle)
                return

            username = self._session.user.username
            self._end_session(EXPIRY_INACTIVITY)
            expired = True

        if expired:
            log_auth_event(logger, "Session closed for inactivity", username)
            self._notify_expired(EXPIRY_INACTIVITY)

    def _notify_expired(self, reason: str):
        message = INACTIVITY_MESSAGE if reason == EXPIRY_INACTIVITY else ABSOLUTE_EXPIRY_MESSAGE
        self.expiry_notice = message
        if self.on_session_expired is None:
            return
        try:
            self.on_session_expired(reason, message)
        except Exception as e:
            logger.error(f"Session expiry callback failed: {e}")

    # ==================== CURRENT USER ====================

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def current_user(self) -> Optional[User]:
        session = self._session
        return session.user if session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def capabilities(self) -> Capabilities:
        user = self.current_user
        return capabilities_for_role(user.role if user else None)

    @property
    def is_manager(self) -> bool:
        return self.capabilities.is_manager

    @property
    def is_admin(self) -> bool:
        return self.capabilities.is_admin

    @property
    def is_super_admin(self) -> bool:
        return self.capabilities.is_super_admin

    @property
    def is_agent(self) -> bool:
        return self.capabilities.is_agent

    @property
    def can_manage_users(self) -> bool:
        return self.capabilities.can_manage_users

    @property
    def can_manage_teams(self) -> bool:
        return self.capabilities.can_manage_teams

    def has_role(self, *roles: str) -> bool:
        user = self.current_user
        return bool(user) and user.role in roles

    def get_user_display_name(self) -> str:
        user = self.current_user
        return user.display_name if user else 'User'


# ==================== STREAMLIT INTEGRATION ====================

AUTH_MANAGER_STATE_KEY = '_auth_manager'
EXPIRY_NOTICE_STATE_KEY = '_auth_expiry_notice'


def get_auth_manager() -> AuthManager:
    """
    One AuthManager per browser tab, kept in st.session_state.

    Created (and restore_session() run) on the first script run of the tab.
    """
    import streamlit as st
    from .stores import SqlCredentialStore, SqlUserStore, StreamlitSessionStorage

    if AUTH_MANAGER_STATE_KEY not in st.session_state:
        manager = AuthManager(
            user_store=SqlUserStore(),
            credential_store=SqlCredentialStore(),
            storage=StreamlitSessionStorage(),
            timer_factory=rerun_timer,
        )
        manager.restore_session()
        st.session_state[AUTH_MANAGER_STATE_KEY] = manager

    return st.session_state[AUTH_MANAGER_STATE_KEY]


def pop_expiry_notice(manager: AuthManager) -> Optional[str]:
    """Return the pending expiry message once, for an st.error banner"""
    notice = manager.expiry_notice
    manager.expiry_notice = None
    return notice


def require_auth(manager: Optional[AuthManager] = None) -> AuthManager:
    """
    Require authentication to access a page.
    Use at the beginning of each protected page; stops the script otherwise.
    """
    import streamlit as st

    manager = manager or get_auth_manager()
    if not manager.check_session():
        notice = pop_expiry_notice(manager)
        if notice:
            st.error(notice)
        st.warning("⚠️ Please login to access this page")
        st.info("Go to the main page to login")
        st.stop()

    manager.notify_activity("click")
    return manager


def require_role(allowed_roles: List[str], manager: Optional[AuthManager] = None) -> AuthManager:
    """
    Require specific role(s) to access a page

    Usage:
        auth = require_role(['admin', 'super_admin'])
    """
    import streamlit as st

    manager = require_auth(manager)
    if not manager.has_role(*allowed_roles):
        st.error(f"🚫 Access denied. Required role: {', '.join(allowed_roles)}")
        st.stop()
    return manager


# ==================== MODULE EXPORTS ====================

__all__ = [
    'AuthManager',
    'capabilities_for_role',
    'thread_timer',
    'rerun_timer',
    'get_auth_manager',
    'pop_expiry_notice',
    'require_auth',
    'require_role',
]
