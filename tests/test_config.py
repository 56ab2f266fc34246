"""Tests for configuration loading."""

from pathlib import Path

import pytest
from variant_bridge import BatchPolicy
from variant_bridge import BridgeConfig
from variant_bridge import ConfigFileError
from variant_bridge import ConfigValidationError
from variant_bridge import load_config
from variant_bridge.config import DEFAULTS


class TestLoadConfig:
    """Test load_config function."""

    @pytest.fixture
    def settings_file(self, tmp_path):
        """Path of a settings file in a not yet existing directory."""
        return tmp_path / "conf" / "settings.yaml"

    def write(self, path, text):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    # ===== Defaults =====

    def test_defaults(self):
        """Test no file and no environment gives the defaults."""
        assert load_config(env={}) == BridgeConfig()

    def test_missing_file(self, settings_file):
        """Test a missing file is not an error."""
        assert load_config(settings_file, env={}) == BridgeConfig()

    def test_empty_file(self, settings_file):
        """Test an empty file gives the defaults."""
        self.write(settings_file, "")
        assert load_config(settings_file, env={}) == BridgeConfig()

    def test_defaults_not_modified(self, settings_file):
        """Test loading a file leaves the defaults alone."""
        self.write(settings_file, "bridge:\n  channel: other\n")
        load_config(settings_file, env={})
        assert DEFAULTS["bridge"]["channel"] == "variant-bridge"

    # ===== File =====

    def test_file_values(self, settings_file):
        """Test settings are read from the file."""
        self.write(
            settings_file,
            "bridge:\n"
            "  channel: desktop\n"
            "  store_path: store/channel.yaml\n"
            "  batch_policy: fail-fast\n"
            "  locked_keys:\n"
            "    - /system/lockdown\n",
        )
        config = load_config(settings_file, env={})

        assert config.channel == "desktop"
        assert config.store_path == settings_file.parent / "store" / "channel.yaml"
        assert config.batch_policy is BatchPolicy.FAIL_FAST
        assert config.locked_keys == ("/system/lockdown",)
        assert config.backend == "property-channel"

    def test_absolute_store_path(self, settings_file, tmp_path):
        """Test absolute store paths are kept."""
        store = tmp_path / "elsewhere.yaml"
        self.write(settings_file, f"bridge:\n  store_path: {store}\n")
        assert load_config(settings_file, env={}).store_path == store

    def test_partial_file(self, settings_file):
        """Test unset values fall back to defaults."""
        self.write(settings_file, "bridge:\n  channel: desktop\n")
        config = load_config(settings_file, env={})
        assert config.channel == "desktop"
        assert config.batch_policy is BatchPolicy.BEST_EFFORT
        assert config.store_path is None

    def test_unrelated_sections(self, settings_file):
        """Test other top-level sections are ignored."""
        self.write(settings_file, "other:\n  key: value\n")
        assert load_config(settings_file, env={}) == BridgeConfig()

    # ===== Environment =====

    def test_env_overrides(self, settings_file):
        """Test environment variables win over the file."""
        self.write(settings_file, "bridge:\n  channel: desktop\n  batch_policy: best-effort\n")
        env = {
            "VARIANT_BRIDGE_CHANNEL": "from-env",
            "VARIANT_BRIDGE_STORE": "/tmp/store.yaml",
            "VARIANT_BRIDGE_BATCH_POLICY": "fail-fast",
        }
        config = load_config(settings_file, env=env)

        assert config.channel == "from-env"
        assert config.store_path == Path("/tmp/store.yaml")
        assert config.batch_policy is BatchPolicy.FAIL_FAST

    def test_empty_env_values_ignored(self):
        """Test empty environment variables do not override."""
        assert load_config(env={"VARIANT_BRIDGE_CHANNEL": ""}).channel == "variant-bridge"

    def test_os_environ(self, monkeypatch):
        """Test the process environment is used by default."""
        monkeypatch.setenv("VARIANT_BRIDGE_CHANNEL", "process")
        assert load_config().channel == "process"

    # ===== Errors =====

    def test_invalid_yaml(self, settings_file):
        """Test unparseable files fail."""
        self.write(settings_file, "bridge: [unclosed")
        with pytest.raises(ConfigFileError):
            load_config(settings_file, env={})

    @pytest.mark.parametrize("text", ["- a\n- b\n", "just text\n", "bridge: 5\n"])
    def test_not_a_mapping(self, settings_file, text):
        """Test files must hold a mapping with a mapping bridge section."""
        self.write(settings_file, text)
        with pytest.raises(ConfigFileError):
            load_config(settings_file, env={})

    def test_unknown_policy(self):
        """Test unknown batch policies are rejected."""
        with pytest.raises(ConfigValidationError, match="fail-fast"):
            load_config(env={"VARIANT_BRIDGE_BATCH_POLICY": "sometimes"})

    @pytest.mark.parametrize(
        "text",
        [
            "bridge:\n  locked_keys: /system\n",
            "bridge:\n  locked_keys: [system]\n",
            "bridge:\n  locked_keys: [1]\n",
        ],
    )
    def test_invalid_locked_keys(self, settings_file, text):
        """Test locked keys must be a list of property keys."""
        self.write(settings_file, text)
        with pytest.raises(ConfigValidationError):
            load_config(settings_file, env={})

    @pytest.mark.parametrize("text", ["bridge:\n  channel: ''\n", "bridge:\n  backend: 3\n"])
    def test_invalid_names(self, settings_file, text):
        """Test channel and backend names must be non-empty strings."""
        self.write(settings_file, text)
        with pytest.raises(ConfigValidationError):
            load_config(settings_file, env={})
