"""
Tests for settings resolution.
"""

from pathlib import Path

import pytest

from aps_viewer_backend.configuration import DEFAULT_BASE_URL, default_bucket_name, load_settings
from aps_viewer_backend.errors import ConfigurationError
from aps_viewer_backend.utils import object_key_from_filename, sanitize_bucket_key


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("APS_CLIENT_ID", "APS_CLIENT_SECRET", "APS_BUCKET", "APS_BASE_URL", "APS_HTTP_TIMEOUT", "APS_STATIC_DIR"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadSettings:
    def test_reads_environment(self, clean_env):
        clean_env.setenv("APS_CLIENT_ID", "MyClient")
        clean_env.setenv("APS_CLIENT_SECRET", "secret")
        clean_env.setenv("APS_BUCKET", "my-bucket")
        clean_env.setenv("APS_HTTP_TIMEOUT", "12.5")

        settings = load_settings()

        assert settings.client_id == "MyClient"
        assert settings.client_secret == "secret"
        assert settings.bucket == "my-bucket"
        assert settings.http_timeout == 12.5
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.static_dir == Path("wwwroot")

    def test_bucket_defaults_to_lowercased_client_id(self, clean_env):
        settings = load_settings({"client_id": "MyClient", "client_secret": "secret"})

        assert settings.bucket == "myclient-basic-app"

    def test_overrides_win_over_environment(self, clean_env):
        clean_env.setenv("APS_CLIENT_ID", "FromEnv")
        clean_env.setenv("APS_CLIENT_SECRET", "secret")

        settings = load_settings({"client_id": "FromOverride", "base_url": "https://aps.test"})

        assert settings.client_id == "FromOverride"
        assert settings.base_url == "https://aps.test"

    @pytest.mark.parametrize("missing", ["APS_CLIENT_ID", "APS_CLIENT_SECRET"])
    def test_missing_credentials_are_fatal(self, clean_env, missing):
        clean_env.setenv("APS_CLIENT_ID", "MyClient")
        clean_env.setenv("APS_CLIENT_SECRET", "secret")
        clean_env.delenv(missing)

        with pytest.raises(ConfigurationError, match="APS_CLIENT_ID or APS_CLIENT_SECRET"):
            load_settings()

    def test_unknown_override_is_rejected(self, clean_env):
        with pytest.raises(ConfigurationError):
            load_settings({"client_id": "a", "client_secret": "b", "bucket_name": "x"})


class TestNaming:
    def test_default_bucket_name(self):
        assert default_bucket_name("AbC123") == "abc123-basic-app"

    def test_sanitize_bucket_key(self):
        assert sanitize_bucket_key("My Client-basic-app") == "my-client-basic-app"
        assert sanitize_bucket_key("!!") == "basic-app"
        assert len(sanitize_bucket_key("a" * 200)) == 128

    def test_object_key_from_filename(self):
        assert object_key_from_filename("house.rvt") == "house.rvt"
        assert object_key_from_filename("C:\\models\\house.rvt") == "house.rvt"
        assert object_key_from_filename("/tmp/models/house.rvt") == "house.rvt"
        assert object_key_from_filename("") == ""
