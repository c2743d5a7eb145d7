"""Unit tests for WorkspaceSettings."""

import pytest
from pydantic import ValidationError

from workspace.settings import WorkspaceSettings


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every VWS_* variable so tests start from defaults."""
    for field_name in WorkspaceSettings.model_fields:
        monkeypatch.delenv(f"VWS_{field_name.upper()}", raising=False)
    return monkeypatch


class TestDefaults:
    """Test default settings values."""

    def test_defaults(self):
        """Verify the built-in defaults."""
        settings = WorkspaceSettings()

        assert settings.home == "/home/user"
        assert settings.username == "henu"
        assert settings.history_limit == 100
        assert settings.default_shell == "henu"
        assert settings.seed_demo_tree is True
        assert settings.bound_root is None


class TestValidation:
    """Test field validators."""

    def test_home_is_normalized(self):
        """Verify repeated and trailing separators are dropped."""
        assert WorkspaceSettings(home="//work//me/").home == "/work/me"

    def test_relative_home_rejected(self):
        """Verify home must be absolute."""
        with pytest.raises(ValidationError):
            WorkspaceSettings(home="work")

    def test_unknown_shell_rejected(self):
        """Verify default_shell must be a known shell."""
        with pytest.raises(ValidationError, match="Unknown shell"):
            WorkspaceSettings(default_shell="fish")

    def test_history_limit_positive(self):
        """Verify history_limit must be at least 1."""
        with pytest.raises(ValidationError):
            WorkspaceSettings(history_limit=0)


class TestFromEnv:
    """Test WorkspaceSettings.from_env."""

    def test_reads_prefixed_variables(self, clean_env):
        """Verify VWS_* variables are parsed into typed fields."""
        clean_env.setenv("VWS_HOME", "/srv/me")
        clean_env.setenv("VWS_HISTORY_LIMIT", "25")
        clean_env.setenv("VWS_SEED_DEMO_TREE", "false")
        clean_env.setenv("VWS_DEFAULT_SHELL", "zsh")

        settings = WorkspaceSettings.from_env()

        assert settings.home == "/srv/me"
        assert settings.history_limit == 25
        assert settings.seed_demo_tree is False
        assert settings.default_shell == "zsh"

    def test_overrides_win(self, clean_env):
        """Verify programmatic overrides take precedence over the environment."""
        clean_env.setenv("VWS_USERNAME", "env-user")

        settings = WorkspaceSettings.from_env(username="override")

        assert settings.username == "override"

    def test_none_overrides_ignored(self, clean_env):
        """Verify None overrides fall through to the environment."""
        clean_env.setenv("VWS_USERNAME", "env-user")

        assert WorkspaceSettings.from_env(username=None).username == "env-user"

    def test_empty_variable_ignored(self, clean_env):
        """Verify an empty variable keeps the default."""
        clean_env.setenv("VWS_BOUND_ROOT", "")

        assert WorkspaceSettings.from_env().bound_root is None

    def test_invalid_value_raises(self, clean_env):
        """Verify invalid environment values raise ValidationError."""
        clean_env.setenv("VWS_HISTORY_LIMIT", "many")

        with pytest.raises(ValidationError):
            WorkspaceSettings.from_env()
