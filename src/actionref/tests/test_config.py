# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from actionref import config as config_mod
from actionref.config import ActionRefConfig, get_config, load_and_validate_config


class TestDefaults:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = ActionRefConfig()
        assert cfg.success_ttl_s == 86400
        assert cfg.failure_ttl_s == 600
        assert cfg.fetch_timeout_s == 10.0
        assert cfg.raw_content_host == "https://raw.githubusercontent.com"
        assert cfg.github_host == "https://github.com"
        assert cfg.log_level == "WARNING"
        assert cfg.max_workers == 4
        assert cfg.max_log_file_bytes is None

    def test_failed_lookups_expire_sooner_than_successful_ones(self):
        cfg = ActionRefConfig()
        assert cfg.failure_ttl_s < cfg.success_ttl_s


class TestEnvOverrides:
    """ACTIONREF_* env vars override config values."""

    @pytest.mark.parametrize(
        "env_var, field, value, expected",
        [
            ("ACTIONREF_CACHE_DIR", "cache_dir", "/tmp/actionref", Path("/tmp/actionref")),
            ("ACTIONREF_SUCCESS_TTL_S", "success_ttl_s", "3600", 3600.0),
            ("ACTIONREF_FAILURE_TTL_S", "failure_ttl_s", "30", 30.0),
            ("ACTIONREF_FETCH_TIMEOUT_S", "fetch_timeout_s", "2.5", 2.5),
            ("ACTIONREF_RAW_CONTENT_HOST", "raw_content_host", "http://localhost:8080/", "http://localhost:8080"),
            ("ACTIONREF_GITHUB_HOST", "github_host", "https://ghe.example.com", "https://ghe.example.com"),
            ("ACTIONREF_WORKSPACE_ROOT", "workspace_root", "/src/project", Path("/src/project")),
            ("ACTIONREF_MAX_WORKERS", "max_workers", "8", 8),
            ("ACTIONREF_LOG_LEVEL", "log_level", "debug", "DEBUG"),
            ("ACTIONREF_MAX_LOG_FILE_BYTES", "max_log_file_bytes", "1048576", 1048576),
            ("ACTIONREF_LOG_BACKUP_COUNT", "log_backup_count", "3", 3),
        ],
    )
    def test_env_var_overrides_field(self, env_var, field, value, expected):
        with patch.dict(os.environ, {env_var: value}):
            cfg = ActionRefConfig()
            assert getattr(cfg, field) == expected


class TestValidation:
    """Bad config must fail at startup, not in the middle of a fetch."""

    @pytest.mark.parametrize(
        "env_var, value, error_match",
        [
            ("ACTIONREF_SUCCESS_TTL_S", "0", "must be > 0"),
            ("ACTIONREF_FAILURE_TTL_S", "-5", "must be > 0"),
            ("ACTIONREF_FETCH_TIMEOUT_S", "0", "must be > 0"),
            ("ACTIONREF_RAW_CONTENT_HOST", "raw.githubusercontent.com", "not a valid host"),
            ("ACTIONREF_GITHUB_HOST", "ftp://github.com", "not a valid host"),
            ("ACTIONREF_GITHUB_HOST", "https://github.com/path", "not a valid host"),
            ("ACTIONREF_MAX_WORKERS", "0", "must be >= 1"),
            ("ACTIONREF_LOG_LEVEL", "TRACE", "not a valid log level"),
            ("ACTIONREF_LOG_LEVEL", "verbose", "not a valid log level"),
            ("ACTIONREF_MAX_LOG_FILE_BYTES", "-1", "must be >= 0"),
            ("ACTIONREF_LOG_BACKUP_COUNT", "-1", "must be >= 0"),
        ],
    )
    def test_bad_value_rejected(self, env_var, value, error_match):
        with patch.dict(os.environ, {env_var: value}):
            with pytest.raises(ValidationError, match=error_match):
                ActionRefConfig()

    def test_max_log_file_bytes_zero_allowed(self):
        with patch.dict(os.environ, {"ACTIONREF_MAX_LOG_FILE_BYTES": "0"}):
            assert ActionRefConfig().max_log_file_bytes == 0


class TestSingleton:
    def test_get_config_is_cached(self):
        with patch.object(config_mod, "_config", None):
            assert get_config() is get_config()

    def test_load_and_validate_replaces_singleton(self):
        with patch.object(config_mod, "_config", None):
            first = get_config()
            with patch.dict(os.environ, {"ACTIONREF_MAX_WORKERS": "6"}):
                second = load_and_validate_config()
            assert second is not first
            assert get_config() is second
            assert second.max_workers == 6

    def test_load_and_validate_raises_on_bad_env(self):
        with patch.object(config_mod, "_config", None):
            with patch.dict(os.environ, {"ACTIONREF_LOG_LEVEL": "LOUD"}):
                with pytest.raises(ValidationError):
                    load_and_validate_config()
