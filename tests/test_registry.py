"""Tests for backend discovery."""

import logging
import threading

import pytest
from variant_bridge import BackendError
from variant_bridge import BackendNotFoundError
from variant_bridge import BridgeConfig
from variant_bridge import ChannelSettingsBackend
from variant_bridge import MemoryChannel
from variant_bridge import SettingsBackend
from variant_bridge import registry
from variant_bridge.registry import BackendRegistry


class FakeEntryPoint:
    """Stand-in for importlib.metadata.EntryPoint."""

    def __init__(self, name, target=None, error=None):
        self.name = name
        self.value = f"fake.module:{name}"
        self.target = target
        self.error = error

    def load(self):
        if self.error is not None:
            raise self.error
        return self.target


class OtherBackend(ChannelSettingsBackend):
    """Backend registered through a fake entry point."""


@pytest.fixture
def fake_entry_points(monkeypatch):
    """Replace entry point discovery, recording every lookup."""
    state = {"points": [], "calls": []}

    def entry_points(group):
        state["calls"].append(group)
        return list(state["points"])

    monkeypatch.setattr(registry, "entry_points", entry_points)
    return state


@pytest.fixture
def fresh_registry(fake_entry_points):
    """Install an unloaded process-wide registry."""
    registry.reset_registry()
    yield registry.get_registry()
    registry.reset_registry()


class TestBackendRegistry:
    """Test BackendRegistry class."""

    def test_not_loaded_until_used(self, fake_entry_points):
        """Test discovery is lazy."""
        backends = BackendRegistry()
        assert not backends.loaded
        assert fake_entry_points["calls"] == []

    def test_builtin_backend(self, fake_entry_points):
        """Test the property channel backend is always available."""
        backends = BackendRegistry()
        assert backends.names() == ["property-channel"]
        assert backends.loaded
        assert isinstance(backends.get_backend(), ChannelSettingsBackend)

    def test_loads_once(self, fake_entry_points):
        """Test repeated use discovers entry points only once."""
        backends = BackendRegistry()
        backends.ensure_loaded()
        backends.ensure_loaded()
        backends.names()
        assert fake_entry_points["calls"] == ["variant_bridge.backends"]

    def test_loads_once_across_threads(self, fake_entry_points):
        """Test concurrent first use still discovers only once."""
        backends = BackendRegistry()
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            backends.ensure_loaded()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(fake_entry_points["calls"]) == 1

    def test_discovery_failure_retried(self, fake_entry_points, monkeypatch, caplog):
        """Test a failed discovery leaves the registry unloaded so it can retry."""
        fake_entry_points["points"] = [FakeEntryPoint("other", OtherBackend)]
        working = registry.entry_points

        def failing(group):
            raise OSError("metadata unreadable")

        monkeypatch.setattr(registry, "entry_points", failing)
        backends = BackendRegistry()
        with caplog.at_level(logging.ERROR, logger="variant_bridge"):
            with pytest.raises(OSError):
                backends.ensure_loaded()
        assert not backends.loaded
        assert "metadata unreadable" in caplog.text

        monkeypatch.setattr(registry, "entry_points", working)
        assert backends.names() == ["other", "property-channel"]
        assert backends.loaded

    def test_custom_group(self, fake_entry_points):
        """Test the entry point group can be changed."""
        BackendRegistry(group="custom.group").ensure_loaded()
        assert fake_entry_points["calls"] == ["custom.group"]

    def test_entry_point_backend(self, fake_entry_points):
        """Test backends from entry points can be created."""
        fake_entry_points["points"] = [FakeEntryPoint("other", OtherBackend)]
        backends = BackendRegistry()
        assert backends.names() == ["other", "property-channel"]

        backend = backends.get_backend("other", channel=MemoryChannel("x"))
        assert isinstance(backend, OtherBackend)
        assert backend.channel.name == "x"

    def test_broken_entry_point(self, fake_entry_points, caplog):
        """Test entry points that fail to load are skipped."""
        fake_entry_points["points"] = [
            FakeEntryPoint("broken", error=ImportError("no module named fake")),
            FakeEntryPoint("other", OtherBackend),
        ]
        backends = BackendRegistry()
        with caplog.at_level(logging.WARNING, logger="variant_bridge"):
            assert backends.names() == ["other", "property-channel"]
        assert "broken" in caplog.text

    def test_duplicate_name(self, fake_entry_points):
        """Test the first registration of a name wins."""
        fake_entry_points["points"] = [FakeEntryPoint("property-channel", OtherBackend)]
        backend = BackendRegistry().get_backend("property-channel")
        assert type(backend) is ChannelSettingsBackend

    def test_unknown_backend(self, fake_entry_points):
        """Test unknown names fail."""
        with pytest.raises(BackendNotFoundError):
            BackendRegistry().get_backend("dconf")

    def test_not_callable(self, fake_entry_points):
        """Test entry points must point at a factory."""
        fake_entry_points["points"] = [FakeEntryPoint("constant", 42)]
        with pytest.raises(BackendError):
            BackendRegistry().get_backend("constant")

    def test_not_a_backend(self, fake_entry_points):
        """Test factories must create settings backends."""
        fake_entry_points["points"] = [FakeEntryPoint("dict", dict)]
        with pytest.raises(BackendError):
            BackendRegistry().get_backend("dict")

    def test_not_found_is_backend_error(self, fake_entry_points):
        """Test lookup failures share a base class."""
        with pytest.raises(BackendError):
            BackendRegistry().get_backend("missing")


class TestModuleRegistry:
    """Test module-level registry functions."""

    def test_reset_registry(self, fresh_registry):
        """Test resetting installs an unloaded registry."""
        registry.ensure_loaded()
        assert fresh_registry.loaded

        registry.reset_registry()
        assert registry.get_registry() is not fresh_registry
        assert not registry.get_registry().loaded

    def test_get_backend(self, fresh_registry):
        """Test the default backend is created by default."""
        backend = registry.get_backend()
        assert isinstance(backend, SettingsBackend)
        assert fresh_registry.loaded

    def test_backend_from_config(self, fresh_registry):
        """Test the configured backend receives the configuration."""
        config = BridgeConfig(channel="demo", locked_keys=("/system",))
        backend = registry.backend_from_config(config)

        assert backend.config is config
        assert backend.channel.name == "demo"
        assert not backend.get_writable("/system/lockdown")

    def test_backend_from_config_unknown(self, fresh_registry):
        """Test an unknown configured backend fails."""
        with pytest.raises(BackendNotFoundError):
            registry.backend_from_config(BridgeConfig(backend="dconf"))
