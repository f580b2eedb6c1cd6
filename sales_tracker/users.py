# sales_tracker/users.py
"""
User Administration Service

Features:
- List users (hidden admin accounts excluded by default)
- Create user (agents must belong to a manager's team)
- Edit user, including username change with credential move
- Toggle active status
- Delete user (never your own account)
- Reset password
- Self-service password change (current password required)
- First-run seeding of bootstrap accounts

Write operations return (success, message) tuples so pages can show
the message directly.
"""

import hmac
import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .constants import (
    BOOTSTRAP_USERS,
    REQUIRED_ADMIN_USERNAMES,
    ROLE_AGENT,
    ROLE_MANAGER,
    ROLES,
)
from .db import get_transaction
from .models import User
from .passwords import (
    PasswordValidationError,
    generate_temporary_password,
    validate_password_strength,
)
from .secure_logger import mask_value

logger = logging.getLogger(__name__)


class UserService:
    """
    Usage:
        service = UserService(SqlUserStore(), SqlCredentialStore())
        ok, message = service.create_user("jdoe", "S3cure!pass", "John Doe",
                                          role="agent", team_id=manager_id)
    """

    def __init__(self, user_store, credential_store):
        self.user_store = user_store
        self.credential_store = credential_store

    # ==================== QUERIES ====================

    def list_users(self, include_hidden: bool = False) -> List[User]:
        return self.user_store.list_users(include_hidden=include_hidden)

    def list_users_df(self, include_hidden: bool = False) -> pd.DataFrame:
        """Users as a DataFrame for st.dataframe / filtering"""
        columns = ['id', 'username', 'name', 'email', 'role',
                   'is_active', 'team_id', 'is_hidden', 'created_at']
        users = self.list_users(include_hidden=include_hidden)
        if not users:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame([u.to_dict() for u in users], columns=columns)

    def get_team_members(self, manager_id: int) -> List[User]:
        return self.user_store.list_users(team_id=manager_id)

    def get_managers(self) -> List[User]:
        return [u for u in self.list_users() if u.role == ROLE_MANAGER]

    # ==================== VALIDATION ====================

    def _check_team(self, role: str, team_id: Optional[int]) -> Optional[str]:
        if role != ROLE_AGENT:
            return None
        if not team_id:
            return "An agent must belong to a team (manager)"
        manager = self.user_store.get_by_id(team_id)
        if manager is None or manager.role != ROLE_MANAGER:
            return "Selected team manager does not exist"
        return None

    @staticmethod
    def _check_password(password: str) -> Optional[str]:
        try:
            validate_password_strength(password)
        except PasswordValidationError as e:
            return str(e)
        return None

    # ==================== WRITES ====================

    def create_user(self, username: str, password: str, name: str, role: str,
                    email: Optional[str] = None, team_id: Optional[int] = None,
                    is_active: bool = True, is_hidden: bool = False,
                    created_by: str = 'system') -> Tuple[bool, str]:
        """Create user and its hashed credential in one transaction"""
        try:
            username = (username or '').strip()
            if not username or not (name or '').strip():
                return False, "Username and name are required"

            if role not in ROLES:
                return False, f"Unknown role: {role}"

            error = self._check_team(role, team_id)
            if error:
                return False, error

            if self.user_store.username_exists(username):
                return False, "Username already exists"

            error = self._check_password(password)
            if error:
                return False, error

            user = User(
                id=0,
                username=username,
                name=name.strip(),
                email=email or None,
                role=role,
                is_active=is_active,
                team_id=team_id if role == ROLE_AGENT else None,
                is_hidden=is_hidden,
            )
            password_hash = self.credential_store.hash(password)

            with get_transaction(self.user_store.engine) as conn:
                self.user_store.insert_user(user, conn=conn)
                self.credential_store.set_hash(username, password_hash, conn=conn)

            logger.info(f"User created: {mask_value(username)} ({role}) by {mask_value(created_by)}")
            return True, "User created successfully"

        except Exception as e:
            logger.error(f"Error creating user: {e}")
            return False, "Failed to create user"

    def update_user(self, user_id: int, updated_by: str = 'system',
                    password: Optional[str] = None, **fields) -> Tuple[bool, str]:
        """
        Update user details.

        A username change moves the credential record and keeps its hash;
        a password, when given, is validated and rotated.
        """
        try:
            current = self.user_store.get_by_id(user_id)
            if current is None:
                return False, "User not found"

            new_username = fields.get('username')
            if new_username is not None:
                new_username = new_username.strip()
                if not new_username:
                    return False, "Username is required"
                fields['username'] = new_username
                if new_username != current.username and \
                        self.user_store.username_exists(new_username, exclude_id=user_id):
                    return False, "Username already exists"

            role = fields.get('role', current.role)
            if role not in ROLES:
                return False, f"Unknown role: {role}"

            error = self._check_team(role, fields.get('team_id', current.team_id))
            if error:
                return False, error
            if role != ROLE_AGENT and fields.get('team_id', current.team_id) is not None:
                fields['team_id'] = None

            if password:
                error = self._check_password(password)
                if error:
                    return False, error

            renamed = new_username is not None and new_username != current.username
            final_username = new_username if renamed else current.username
            password_hash = self.credential_store.hash(password) if password else None

            with get_transaction(self.user_store.engine) as conn:
                if fields:
                    self.user_store.update_user(user_id, fields, conn=conn)
                if renamed:
                    self.credential_store.rename(current.username, new_username, conn=conn)
                if password_hash:
                    self.credential_store.set_hash(final_username, password_hash, conn=conn)

            logger.info(f"User {user_id} updated by {mask_value(updated_by)}")
            return True, "User updated successfully"

        except Exception as e:
            logger.error(f"Error updating user: {e}")
            return False, "Failed to update user"

    def toggle_user_status(self, user_id: int) -> Tuple[bool, str]:
        """Toggle user active status"""
        try:
            user = self.user_store.get_by_id(user_id)
            if user is None:
                return False, "User not found"

            self.user_store.update_user(user_id, {'is_active': not user.is_active})
            state = "activated" if not user.is_active else "deactivated"
            logger.info(f"User {user_id} {state}")
            return True, f"User {state}"

        except Exception as e:
            logger.error(f"Error toggling status: {e}")
            return False, "Failed to update status"

    def delete_user(self, user_id: int, current_user_id: Optional[int] = None) -> Tuple[bool, str]:
        """Delete user and its credential; sales history is left untouched"""
        try:
            if current_user_id is not None and user_id == current_user_id:
                return False, "Cannot delete your own account"

            user = self.user_store.get_by_id(user_id)
            if user is None:
                return False, "User not found"

            with get_transaction(self.user_store.engine) as conn:
                self.user_store.delete_user(user_id, conn=conn)
                self.credential_store.delete(user.username, conn=conn)

            logger.info(f"User {user_id} deleted")
            return True, "User deleted successfully"

        except Exception as e:
            logger.error(f"Error deleting user: {e}")
            return False, "Failed to delete user"

    def reset_password(self, user_id: int, new_password: str) -> Tuple[bool, str]:
        """Reset user password"""
        try:
            user = self.user_store.get_by_id(user_id)
            if user is None:
                return False, "User not found"

            error = self._check_password(new_password)
            if error:
                return False, error

            self.credential_store.set_password(user.username, new_password)
            logger.info(f"Password reset for user {user_id}")
            return True, "Password reset successfully"

        except Exception as e:
            logger.error(f"Error resetting password: {e}")
            return False, "Failed to reset password"

    def change_own_password(self, user_id: int, current_password: str,
                            new_password: str) -> Tuple[bool, str]:
        """
        Self-service password change.

        The current password must match the stored credential (hashed or
        legacy plaintext); the new one goes through the strength policy
        and is always stored hashed.
        """
        try:
            user = self.user_store.get_by_id(user_id)
            if user is None:
                return False, "User not found"

            record = self.credential_store.get_credential(user.username)
            if record is None or not current_password:
                matches = False
            elif record.is_legacy:
                matches = hmac.compare_digest(record.secret.encode('utf-8'),
                                              current_password.encode('utf-8'))
            else:
                matches = self.credential_store.verify(current_password, record.secret)

            if not matches:
                logger.warning(f"Password change refused, wrong current password for {mask_value(user.username)}")
                return False, "Current password is incorrect"

            if new_password == current_password:
                return False, "New password must differ from the current one"

            error = self._check_password(new_password)
            if error:
                return False, error

            self.credential_store.set_password(user.username, new_password)
            logger.info(f"✅ Password changed by user {mask_value(user.username)}")
            return True, "Password changed successfully"

        except Exception as e:
            logger.error(f"Error changing password ({type(e).__name__}) for user {user_id}")
            return False, "Failed to change password"

    @staticmethod
    def generate_temporary_password(length: int = 12) -> str:
        return generate_temporary_password(length)

    # ==================== FIRST RUN ====================

    def initialize_default_users(self, passwords: Dict[str, str]) -> int:
        """
        Seed bootstrap accounts with hashed credentials.

        Empty store: every bootstrap account that has a password in
        `passwords` is created. Seeded store: only the hidden admin
        accounts are re-created when missing. Returns accounts created.
        """
        if self.user_store.is_initialized():
            logger.info("Existing users found, no initialization needed")
            return self._add_missing_admin_accounts(passwords)

        logger.info("Initializing default users...")
        created = 0
        id_map: Dict[int, int] = {}

        with get_transaction(self.user_store.engine) as conn:
            for account in BOOTSTRAP_USERS:
                password = passwords.get(account['username'])
                if not password:
                    logger.warning(f"No bootstrap password for {mask_value(account['username'])}, skipped")
                    continue

                user = User.from_dict(account)
                if user.team_id is not None:
                    user.team_id = id_map.get(user.team_id)
                    if user.role == ROLE_AGENT and user.team_id is None:
                        logger.warning(f"Team manager for {mask_value(user.username)} was not created, skipped")
                        continue

                new_id = self.user_store.insert_user(user, conn=conn)
                id_map[account['id']] = new_id
                self.credential_store.set_hash(user.username, self.credential_store.hash(password), conn=conn)
                created += 1

        logger.info(f"✅ Default users initialized: {created} account(s)")
        return created

    def _add_missing_admin_accounts(self, passwords: Dict[str, str]) -> int:
        created = 0
        for account in BOOTSTRAP_USERS:
            username = account['username']
            if username not in REQUIRED_ADMIN_USERNAMES:
                continue
            if self.user_store.get_by_username(username) is not None:
                continue
            password = passwords.get(username)
            if not password:
                logger.warning(f"Admin account {mask_value(username)} missing and no password configured")
                continue

            with get_transaction(self.user_store.engine) as conn:
                self.user_store.insert_user(User.from_dict(account), conn=conn)
                self.credential_store.set_hash(username, self.credential_store.hash(password), conn=conn)
            logger.info(f"➕ Admin account created: {mask_value(username)}")
            created += 1

        return created


__all__ = ['UserService']
