"""
Tests for application settings validation.
"""
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.config import Settings


class TestSettings:
    """Tests for Settings defaults and validators."""

    def test_defaults(self):
        """Test defaults target a local workspace and the localnet cluster."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.ANCHOR_BINARY == "anchor"
        assert settings.ANCHOR_CLUSTER == "localnet"
        assert settings.anchor_test_extra_args == []

    def test_env_override(self):
        """Test values are read from the environment."""
        with patch.dict(os.environ, {
            "WORKSPACE_PATH": "/srv/anchor-workspace",
            "ANCHOR_TEST_EXTRA_ARGS": "--skip-lint --skip-local-validator",
        }):
            settings = Settings(_env_file=None)

        assert settings.WORKSPACE_PATH == "/srv/anchor-workspace"
        assert settings.anchor_test_extra_args == ["--skip-lint", "--skip-local-validator"]

    def test_workspace_path_traversal_rejected(self):
        """Test '..' in WORKSPACE_PATH is refused."""
        with pytest.raises(ValidationError, match="Path traversal"):
            Settings(WORKSPACE_PATH="../elsewhere", _env_file=None)

    @pytest.mark.parametrize("cluster", ["local net", "localnet]", "a.b"])
    def test_invalid_cluster(self, cluster):
        """Test cluster names that would break the TOML header are refused."""
        with pytest.raises(ValidationError):
            Settings(ANCHOR_CLUSTER=cluster, _env_file=None)

    def test_invalid_log_level(self):
        """Test unknown log levels are refused."""
        with pytest.raises(ValidationError, match="Unknown log level"):
            Settings(LOG_LEVEL="CHATTY", _env_file=None)

    def test_lowercase_log_level_accepted(self):
        """Test level names are case insensitive."""
        assert Settings(LOG_LEVEL="debug", _env_file=None).LOG_LEVEL == "debug"
