"""
User administration tests.

Verifies:
- Agents must belong to an existing manager's team
- Usernames stay unique, renames keep the password working
- Self-deletion is refused
- Users change their own password only after proving the current one
- First-run seeding creates hashed credentials only
"""

import pytest

from conftest import AGENT_PASSWORD, MANAGER_PASSWORD
from sales_tracker.constants import CREDENTIAL_HASHED

NEW_PASSWORD = "Fresh#Pass9"


# =============================================================================
# CREATE
# =============================================================================


class TestCreateUser:

    def test_creates_user_and_hashed_credential(self, user_service, user_store, credential_store):
        ok, message = user_service.create_user("jdoe", NEW_PASSWORD, "John Doe", role="admin",
                                               email="jdoe@company.com")

        assert ok, message
        user = user_store.get_by_username("jdoe")
        assert user.name == "John Doe"
        assert user.is_active

        record = credential_store.get_credential("jdoe")
        assert record.format == CREDENTIAL_HASHED
        assert record.secret != NEW_PASSWORD
        assert credential_store.verify(NEW_PASSWORD, record.secret)

    def test_agent_needs_team(self, user_service, user_store):
        ok, message = user_service.create_user("lone", NEW_PASSWORD, "Lone Agent", role="agent")

        assert not ok
        assert "team" in message
        assert user_store.get_by_username("lone") is None

    def test_agent_team_must_be_a_manager(self, user_service, agent_user):
        ok, _ = user_service.create_user("nested", NEW_PASSWORD, "Nested", role="agent",
                                         team_id=agent_user.id)
        assert not ok

    def test_agent_in_manager_team(self, user_service, manager_user):
        ok, _ = user_service.create_user("a2", NEW_PASSWORD, "Second Agent", role="agent",
                                         team_id=manager_user.id)
        assert ok
        members = user_service.get_team_members(manager_user.id)
        assert [m.username for m in members] == ["a2"]

    def test_duplicate_username(self, user_service, manager_user):
        ok, message = user_service.create_user("manager", NEW_PASSWORD, "Copy", role="admin")
        assert not ok
        assert message == "Username already exists"

    def test_unknown_role(self, user_service):
        ok, _ = user_service.create_user("x", NEW_PASSWORD, "X", role="viewer")
        assert not ok

    def test_weak_password(self, user_service, user_store):
        ok, _ = user_service.create_user("weak", "short", "Weak", role="admin")
        assert not ok
        assert user_store.get_by_username("weak") is None


# =============================================================================
# UPDATE
# =============================================================================


class TestUpdateUser:

    def test_rename_keeps_password(self, user_service, manager_user, auth, credential_store):
        ok, _ = user_service.update_user(manager_user.id, username="clement")
        assert ok

        assert credential_store.get_credential("manager") is None
        assert auth.login("clement", MANAGER_PASSWORD) is True

    def test_rename_to_taken_username(self, user_service, agent_user):
        ok, message = user_service.update_user(agent_user.id, username="manager")
        assert not ok
        assert message == "Username already exists"

    def test_password_rotation(self, user_service, manager_user, auth):
        ok, _ = user_service.update_user(manager_user.id, name="Clément", password=NEW_PASSWORD)
        assert ok
        assert auth.login("manager", NEW_PASSWORD) is True
        assert auth.current_user.name == "Clément"

    def test_agent_cannot_lose_team(self, user_service, agent_user):
        ok, _ = user_service.update_user(agent_user.id, team_id=None)
        assert not ok

    def test_promotion_clears_team(self, user_service, agent_user, manager_user, user_store):
        ok, _ = user_service.update_user(agent_user.id, role="admin", team_id=manager_user.id)
        assert ok

        promoted = user_store.get_by_id(agent_user.id)
        assert promoted.role == "admin"
        assert promoted.team_id is None

    def test_non_agent_created_without_team(self, user_service, user_store, manager_user):
        ok, _ = user_service.create_user("lead2", NEW_PASSWORD, "Lead Two", role="manager",
                                         team_id=manager_user.id)
        assert ok
        assert user_store.get_by_username("lead2").team_id is None

    def test_missing_user(self, user_service):
        ok, message = user_service.update_user(999, name="Nobody")
        assert not ok
        assert message == "User not found"


# =============================================================================
# STATUS / DELETE / RESET
# =============================================================================


class TestAccountActions:

    def test_toggle_status(self, user_service, agent_user, user_store, auth):
        ok, message = user_service.toggle_user_status(agent_user.id)
        assert ok
        assert message == "User deactivated"
        assert not user_store.get_by_id(agent_user.id).is_active
        assert auth.login("agent", AGENT_PASSWORD) is False

    def test_cannot_delete_self(self, user_service, manager_user, user_store):
        ok, message = user_service.delete_user(manager_user.id, current_user_id=manager_user.id)
        assert not ok
        assert message == "Cannot delete your own account"
        assert user_store.get_by_id(manager_user.id) is not None

    def test_delete_removes_credential(self, user_service, agent_user, manager_user, credential_store):
        ok, _ = user_service.delete_user(agent_user.id, current_user_id=manager_user.id)
        assert ok
        assert credential_store.get_credential("agent") is None

    def test_reset_password(self, user_service, agent_user, auth):
        ok, _ = user_service.reset_password(agent_user.id, NEW_PASSWORD)
        assert ok
        assert auth.login("agent", AGENT_PASSWORD) is False
        assert auth.login("agent", NEW_PASSWORD) is True

    def test_reset_password_policy(self, user_service, agent_user):
        ok, _ = user_service.reset_password(agent_user.id, "abc")
        assert not ok

    def test_hidden_users_not_listed(self, user_service, user_store, manager_user):
        user_service.create_user("root", NEW_PASSWORD, "Root", role="super_admin", is_hidden=True)

        assert [u.username for u in user_service.list_users()] == ["manager"]
        assert len(user_service.list_users(include_hidden=True)) == 2
        assert list(user_service.list_users_df()["username"]) == ["manager"]


# =============================================================================
# SELF-SERVICE PASSWORD CHANGE
# =============================================================================


class TestChangeOwnPassword:

    def test_success(self, user_service, agent_user, auth):
        ok, message = user_service.change_own_password(agent_user.id, AGENT_PASSWORD, NEW_PASSWORD)
        assert ok
        assert message == "Password changed successfully"
        assert auth.login("agent", AGENT_PASSWORD) is False
        assert auth.login("agent", NEW_PASSWORD) is True

    @pytest.mark.parametrize("current", ["Wrong#Pass1", ""])
    def test_wrong_current_password(self, user_service, agent_user, auth, current):
        ok, message = user_service.change_own_password(agent_user.id, current, NEW_PASSWORD)
        assert not ok
        assert message == "Current password is incorrect"
        assert auth.login("agent", AGENT_PASSWORD) is True

    def test_weak_new_password(self, user_service, agent_user, auth):
        ok, _ = user_service.change_own_password(agent_user.id, AGENT_PASSWORD, "abc")
        assert not ok
        assert auth.login("agent", AGENT_PASSWORD) is True

    def test_same_password_refused(self, user_service, agent_user):
        ok, message = user_service.change_own_password(agent_user.id, AGENT_PASSWORD, AGENT_PASSWORD)
        assert not ok
        assert "differ" in message

    def test_legacy_plaintext_current_password(self, user_service, agent_user, credential_store):
        credential_store.set_legacy_plaintext("agent", "Plain#Text1")

        ok, _ = user_service.change_own_password(agent_user.id, "Plain#Text1", NEW_PASSWORD)
        assert ok

        record = credential_store.get_credential("agent")
        assert record.format == CREDENTIAL_HASHED
        assert credential_store.verify(NEW_PASSWORD, record.secret)

    def test_missing_user(self, user_service):
        ok, message = user_service.change_own_password(999, AGENT_PASSWORD, NEW_PASSWORD)
        assert not ok
        assert message == "User not found"

    def test_passwords_never_logged(self, user_service, agent_user, caplog):
        caplog.set_level("DEBUG")
        user_service.change_own_password(agent_user.id, "Wrong#Pass1", NEW_PASSWORD)
        user_service.change_own_password(agent_user.id, AGENT_PASSWORD, NEW_PASSWORD)
        for secret in ("Wrong#Pass1", AGENT_PASSWORD, NEW_PASSWORD):
            assert secret not in caplog.text


# =============================================================================
# FIRST RUN
# =============================================================================


class TestInitializeDefaultUsers:

    PASSWORDS = {
        "super_admin1": "Super#Admin1",
        "admin2": "Admin#Two22",
        "manager": "Manager#Boot1",
        "CARLY": "Carly#Boot11",
        "agent": "Agent#Boot11",
    }

    def test_seeds_empty_store(self, user_service, user_store, credential_store):
        created = user_service.initialize_default_users(self.PASSWORDS)

        assert created == 5
        agent = user_store.get_by_username("agent")
        manager = user_store.get_by_username("manager")
        assert agent.team_id == manager.id
        assert credential_store.get_credential("agent").format == CREDENTIAL_HASHED
        assert user_store.get_by_username("super_admin1").is_hidden

    def test_skips_accounts_without_password(self, user_service, user_store):
        created = user_service.initialize_default_users({"admin2": "Admin#Two22"})

        assert created == 1
        assert user_store.count_users() == 1

    def test_agent_skipped_without_manager(self, user_service, user_store):
        created = user_service.initialize_default_users({"agent": "Agent#Boot11"})
        assert created == 0
        assert not user_store.is_initialized()

    def test_seeded_store_only_restores_admins(self, user_service, user_store, manager_user):
        created = user_service.initialize_default_users(self.PASSWORDS)

        assert created == 2
        assert user_store.get_by_username("super_admin1") is not None
        assert user_store.get_by_username("CARLY") is None

    def test_seeded_accounts_can_log_in(self, user_service, auth):
        user_service.initialize_default_users(self.PASSWORDS)
        assert auth.login("CARLY", "Carly#Boot11") is True


@pytest.mark.parametrize("length", [8, 12, 20])
def test_generate_temporary_password(user_service, length):
    password = user_service.generate_temporary_password(length)
    assert len(password) == length
