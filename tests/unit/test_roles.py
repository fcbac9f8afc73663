"""Tests for role checks, session tokens, and navigation capabilities."""

import pytest

from src.core.config import settings
from src.domain.user import Actor, UserRole, has_any_role
from src.interface.auth import capabilities_for, issue_session_token, read_session_token


@pytest.mark.unit
class TestHasAnyRole:
    """Tests for has_any_role."""

    def test_matching_role(self):
        assert has_any_role(["manager"], [UserRole.ADMIN, UserRole.MANAGER]) is True

    def test_no_matching_role(self):
        assert has_any_role([UserRole.TEAM_MEMBER], [UserRole.ADMIN]) is False

    def test_empty_requirement_always_satisfied(self):
        assert has_any_role([], []) is True

    def test_no_roles_fails_non_empty_requirement(self):
        assert has_any_role([], [UserRole.TEAM_MEMBER]) is False

    def test_actor_helpers(self):
        actor = Actor(user_id="u1", roles=frozenset({UserRole.ADMIN}))

        assert actor.is_admin is True
        assert actor.is_manager is False
        assert actor.has_any_role([UserRole.ADMIN]) is True


@pytest.mark.unit
class TestSessionTokens:
    """Tests for signed session tokens."""

    def test_round_trip(self):
        assert read_session_token(issue_session_token("alice")) == "alice"

    def test_tampered_token_rejected(self):
        token = issue_session_token("alice")
        assert read_session_token(token[:-2] + "xx") is None

    def test_token_signed_with_other_key_rejected(self, monkeypatch):
        token = issue_session_token("alice")
        monkeypatch.setattr(settings, "secret_key", "a-different-secret")
        assert read_session_token(token) is None

    def test_expired_token_rejected(self, monkeypatch):
        token = issue_session_token("alice")
        monkeypatch.setattr(settings, "session_max_age_seconds", -1)
        assert read_session_token(token) is None


@pytest.mark.unit
class TestCapabilities:
    """Tests for capabilities_for."""

    def test_team_member(self):
        capabilities = capabilities_for(Actor(user_id="m", roles=frozenset({UserRole.TEAM_MEMBER})))

        assert "dashboard" in capabilities
        assert "admin_dashboard" not in capabilities
        assert "users" not in capabilities

    def test_manager(self):
        capabilities = capabilities_for(Actor(user_id="m", roles=frozenset({UserRole.MANAGER})))

        assert "admin_dashboard" in capabilities
        assert "teams" in capabilities
        assert "users" not in capabilities

    def test_admin(self):
        capabilities = capabilities_for(Actor(user_id="a", roles=frozenset({UserRole.ADMIN})))

        assert "users" in capabilities
