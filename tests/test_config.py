"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from confess_wall.config import load_config


def write_config(tmp_path, body: str):
    path = tmp_path / "config.yaml"
    path.write_text(body)
    return path


class TestLoadConfig:
    """Test load_config()."""

    def test_defaults(self, tmp_path):
        """Test a minimal file yields the documented defaults."""
        config = load_config(write_config(tmp_path, "turnstile:\n  secret_key: abc\n"))

        assert config.turnstile.secret_key.get_secret_value() == "abc"
        assert config.rate_limit.window_seconds == 10
        assert config.rate_limit.max_requests == 5
        assert config.uploads.max_bytes == 2 * 1024 * 1024
        assert config.uploads.allowed_types == [
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
        ]
        assert config.storage.backend == "sql"
        assert config.server.port == 3000

    def test_env_expansion(self, tmp_path, monkeypatch):
        """Test ${VAR} values are read from the environment."""
        monkeypatch.setenv("TURNSTILE_SECRET", "from-env")
        path = write_config(
            tmp_path,
            "turnstile:\n  secret_key: ${TURNSTILE_SECRET}\n"
            "rate_limit:\n  max_requests: 2\n",
        )

        config = load_config(path)

        assert config.turnstile.secret_key.get_secret_value() == "from-env"
        assert config.rate_limit.max_requests == 2

    def test_secret_hidden_in_repr(self, tmp_path):
        """Test the verification secret does not leak through repr."""
        config = load_config(write_config(tmp_path, "turnstile:\n  secret_key: hunter2\n"))
        assert "hunter2" not in repr(config)

    def test_missing_env_var(self, tmp_path, monkeypatch):
        """Test an unset variable is an error."""
        monkeypatch.delenv("TURNSTILE_SECRET", raising=False)
        path = write_config(tmp_path, "turnstile:\n  secret_key: ${TURNSTILE_SECRET}\n")

        with pytest.raises(ValueError, match="TURNSTILE_SECRET"):
            load_config(path)

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_secret_required(self, tmp_path):
        """Test the verification secret has no default."""
        with pytest.raises(ValidationError):
            load_config(write_config(tmp_path, "server:\n  port: 8080\n"))

    def test_invalid_backend(self, tmp_path):
        """Test unknown storage backends are rejected."""
        path = write_config(
            tmp_path, "turnstile:\n  secret_key: x\nstorage:\n  backend: redis\n"
        )
        with pytest.raises(ValidationError):
            load_config(path)
