# app.py
"""
Sales Tracker Dashboard - Main Entry Point

Version: 1.0.0
"""

import streamlit as st
import logging

from sales_tracker.auth import get_auth_manager, pop_expiry_notice
from sales_tracker.config import IS_RUNNING_ON_CLOUD, config
from sales_tracker.constants import ROLE_LABELS
from sales_tracker.db import (
    check_db_connection,
    ensure_schema,
    get_connection_pool_status,
    reset_db_engine,
)
from sales_tracker.secure_logger import configure_logging
from sales_tracker.stores import SqlCredentialStore, SqlUserStore
from sales_tracker.users import UserService

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# ==================== PAGE CONFIGURATION ====================

APP_NAME = "Sales Tracker"
APP_ICON = "📈"
APP_VERSION = "1.0.0"

st.set_page_config(
    page_title=APP_NAME,
    page_icon=APP_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)

# ==================== CUSTOM CSS ====================

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 0.5rem;
        color: #1f77b4;
    }

    .sub-header {
        font-size: 1.1rem;
        color: #666;
        margin-bottom: 2rem;
    }

    .welcome-box {
        background: linear-gradient(135deg, #1f77b4 0%, #2196f3 100%);
        color: white;
        padding: 2rem;
        border-radius: 0.75rem;
        margin-bottom: 2rem;
    }

    .info-card {
        background: #f8f9fa;
        padding: 1.5rem;
        border-radius: 0.5rem;
        border-left: 4px solid #1f77b4;
        margin-bottom: 1rem;
    }
</style>
""", unsafe_allow_html=True)

# ==================== INITIALIZATION ====================


@st.cache_resource
def initialize_backend() -> bool:
    """Create tables and seed first-run accounts once per process"""
    db_ok, db_error = check_db_connection()
    if not db_ok:
        logger.error(f"Backend initialization skipped: {db_error}")
        return False

    ensure_schema()
    service = UserService(SqlUserStore(), SqlCredentialStore())
    service.initialize_default_users(config.get_app_setting("BOOTSTRAP_PASSWORDS", {}))
    return True


# ==================== HELPER FUNCTIONS ====================

def show_login_page(auth):
    """Display the login page"""
    st.markdown(f'<p class="main-header">{APP_ICON} {APP_NAME}</p>', unsafe_allow_html=True)
    st.markdown('<p class="sub-header">Telemarketing performance and bonuses</p>', unsafe_allow_html=True)

    notice = pop_expiry_notice(auth)
    if notice:
        st.error(f"⏰ {notice}")

    db_ok, db_error = check_db_connection()
    if not db_ok:
        st.error(f"⚠️ {db_error}")
        st.info("Please check your network connection or contact IT support.")
        if st.button("🔄 Retry connection"):
            reset_db_engine()
            initialize_backend.clear()
            st.rerun()
        return

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        with st.form("login_form", clear_on_submit=False):
            st.markdown("#### 🔐 Login")

            username = st.text_input("Username", placeholder="Enter your username", key="login_username")
            password = st.text_input("Password", type="password", placeholder="Enter your password",
                                     key="login_password")

            submit = st.form_submit_button("🔑 Login", type="primary", use_container_width=True)

            if submit:
                with st.spinner("Authenticating..."):
                    success = auth.login(username, password)

                if success:
                    st.success("✅ Login successful!")
                    st.rerun()
                else:
                    st.error(auth.last_error or "Authentication failed")

        with st.expander("ℹ️ Need Help?"):
            timeout_hours = config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
            idle_minutes = config.get_app_setting("SESSION_IDLE_TIMEOUT_MINUTES", 40)
            st.info(f"""
            - Contact your administrator if you forgot your password
            - Sessions end after {idle_minutes} minutes of inactivity
            - Sessions last at most {timeout_hours} hours
            """)


def show_main_app(auth):
    """Display the main application after login"""
    user = auth.current_user

    with st.sidebar:
        st.markdown(f"### 👤 {auth.get_user_display_name()}")

        if auth.is_super_admin or auth.is_admin:
            st.success("🔓 Full Access")
        elif auth.is_manager:
            st.info("👥 Team Access")
        else:
            st.warning("👤 Personal Access")

        st.caption(f"Role: {ROLE_LABELS.get(user.role, user.role)}")
        st.markdown("---")

        if auth.is_super_admin:
            with st.expander("🔧 System"):
                st.caption("☁️ Streamlit Cloud" if IS_RUNNING_ON_CLOUD else "💻 Local")
                st.json(get_connection_pool_status())
                st.caption(f"Session expires: {auth.session.expires_at.strftime('%H:%M')}")

        if st.button("🚪 Logout", use_container_width=True):
            auth.logout()
            st.rerun()

    st.markdown(f"""
    <div class="welcome-box">
        <h3>Welcome, {auth.get_user_display_name()}! 👋</h3>
        <div>Select a page from the sidebar menu to get started.</div>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("### 📊 Available Pages")
    st.markdown("""
    <div class="info-card">
        <strong>💰 Commission</strong><br>
        <span style="color: #666;">Bonus tiers and bonus simulation from validated sales.</span>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("""
    <div class="info-card">
        <strong>🔑 My Profile</strong><br>
        <span style="color: #666;">Account details and password change.</span>
    </div>
    """, unsafe_allow_html=True)

    if auth.can_manage_users:
        st.markdown("""
        <div class="info-card">
            <strong>👤 User Management</strong><br>
            <span style="color: #666;">Create accounts, assign agents to teams, reset passwords.</span>
        </div>
        """, unsafe_allow_html=True)


# ==================== MAIN ====================

def main():
    """Main application entry point"""
    initialize_backend()
    auth = get_auth_manager()

    if not auth.check_session():
        show_login_page(auth)
    else:
        # Each rerun is a user interaction
        auth.notify_activity("click")
        show_main_app(auth)


if __name__ == "__main__":
    main()
