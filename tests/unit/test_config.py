"""
Unit tests for role resolution and pool configuration.
"""

import dataclasses

import pytest

from clusterweb import settings
from clusterweb.local import config as config_module
from clusterweb.local.config import (PoolConfiguration, Role, detect_cpu_count, pool_size_for,
                                     resolve_listen_fd, resolve_role)


class TestResolveRole:
    """Tests for resolve_role."""

    def test_defaults_to_primary(self):
        assert resolve_role({}) is Role.PRIMARY

    def test_worker(self):
        assert resolve_role({settings.ROLE_ENV_VAR: "worker"}) is Role.WORKER
        assert resolve_role({settings.ROLE_ENV_VAR: " Worker "}) is Role.WORKER

    def test_explicit_primary(self):
        assert resolve_role({settings.ROLE_ENV_VAR: "primary"}) is Role.PRIMARY

    def test_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown process role"):
            resolve_role({settings.ROLE_ENV_VAR: "master"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv(settings.ROLE_ENV_VAR, "worker")
        assert resolve_role() is Role.WORKER


class TestResolveListenFd:
    """Tests for resolve_listen_fd."""

    def test_valid(self):
        assert resolve_listen_fd({settings.LISTEN_FD_ENV_VAR: "7"}) == 7

    @pytest.mark.parametrize("environ", [{}, {settings.LISTEN_FD_ENV_VAR: "x"}, {settings.LISTEN_FD_ENV_VAR: "-1"}])
    def test_invalid(self, environ):
        with pytest.raises(ValueError):
            resolve_listen_fd(environ)


class TestPoolSize:
    """Tests for core detection and the pool configuration."""

    @pytest.mark.parametrize("detected, cpus, pool", [(8, 8, 8), (1, 1, 1), (None, None, 1), (0, None, 1)])
    def test_detect_pool_size(self, monkeypatch, detected, cpus, pool):
        monkeypatch.setattr(config_module.psutil, "cpu_count", lambda logical=True: detected)
        assert detect_cpu_count() == cpus
        assert pool_size_for(detect_cpu_count()) == pool

    def test_from_settings(self, monkeypatch):
        monkeypatch.setattr(config_module.psutil, "cpu_count", lambda logical=True: 4)
        config = PoolConfiguration.from_settings()

        assert config.pool_size == 4
        assert config.port == 3000
        assert config.cpu_count == 4
        assert config.host == "0.0.0.0"

    def test_from_settings_keeps_failed_detection(self, monkeypatch):
        monkeypatch.setattr(config_module.psutil, "cpu_count", lambda logical=True: None)
        config = PoolConfiguration.from_settings()

        assert config.pool_size == 1
        assert config.cpu_count is None

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ValueError):
            PoolConfiguration(pool_size=0)

    def test_immutable(self):
        config = PoolConfiguration(pool_size=2)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.pool_size = 3
