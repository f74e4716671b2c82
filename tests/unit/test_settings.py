"""Tests for environment-driven settings."""

import os

import pytest
from pydantic import ValidationError

from sitedeploy.config.settings import Settings, get_settings

ENV_VARS = [
    "BUCKET_NAME",
    "SERVICE_PATH",
    "CLIENT_DIST_PATH",
    "STAGE",
    "AWS_REGION",
    "AWS_ENDPOINT_URL",
    "ARN_PARTITION",
    "STORAGE_MOCK_MODE",
    "UPLOAD_CONCURRENCY",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell environment out of these tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDefaults:

    def test_defaults(self):
        settings = make_settings()

        assert settings.bucket_name == ""
        assert settings.stage == "dev"
        assert settings.aws_region == "us-east-1"
        assert settings.arn_partition == "aws"
        assert settings.upload_concurrency == 8
        assert not settings.storage_mock_mode

    def test_build_output_defaults_to_client_dist(self, tmp_path):
        settings = make_settings(service_path=str(tmp_path))

        assert settings.local_root_path == str(tmp_path / "client" / "dist")

    def test_relative_dist_path_resolves_against_service_path(self, tmp_path):
        settings = make_settings(service_path=str(tmp_path), client_dist_path="build")

        assert settings.local_root_path == str(tmp_path / "build")

    def test_absolute_dist_path_wins(self, tmp_path):
        settings = make_settings(service_path="/somewhere/else", client_dist_path=str(tmp_path))

        assert settings.local_root_path == str(tmp_path)

    def test_local_root_path_is_absolute(self):
        assert os.path.isabs(make_settings().local_root_path)


class TestEnvironment:

    def test_reads_environment_variables(self, monkeypatch):
        monkeypatch.setenv("BUCKET_NAME", "my-site")
        monkeypatch.setenv("UPLOAD_CONCURRENCY", "16")
        monkeypatch.setenv("STORAGE_MOCK_MODE", "true")

        settings = make_settings()

        assert settings.bucket_name == "my-site"
        assert settings.upload_concurrency == 16
        assert settings.storage_mock_mode

    def test_rejects_zero_concurrency(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_CONCURRENCY", "0")

        with pytest.raises(ValidationError):
            make_settings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestRequiredFields:

    def test_bucket_name_is_required(self):
        assert make_settings().validate_required_fields() == ["BUCKET_NAME"]

    def test_nothing_missing_when_bucket_set(self):
        assert make_settings(bucket_name="my-site").validate_required_fields() == []
