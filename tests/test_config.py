"""
Unit tests for configuration system.

Tests settings loading, validation, merging, and request file loading.
"""

import os
from pathlib import Path

import pytest
import yaml

from acr_platform.config import (
    DEFAULT_RETRYABLE_ERRORS,
    BackendKind,
    BackendSettings,
    ConfigError,
    ConfigLoader,
    PlatformSettings,
    ValidationSettings,
    load_config,
    load_promotion,
    load_request,
)
from acr_platform.models import DEFAULT_ALLOWED_ENVIRONMENTS, ConflictPolicy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment out of configuration tests."""
    for key in list(os.environ):
        if key.startswith(ConfigLoader.ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.setenv(ConfigLoader.CONFIG_PATH_ENV, str(tmp_path / "missing.yaml"))


class TestPlatformSettingsModel:
    """Test PlatformSettings pydantic model validation."""

    def test_default_config(self):
        """Test creating settings with all defaults."""
        config = PlatformSettings()

        assert config.log_level == "INFO"
        assert config.validation.allowed_environments == list(DEFAULT_ALLOWED_ENVIRONMENTS)
        assert config.validation.conflict_policy == ConflictPolicy.FAIL
        assert config.backend.kind == BackendKind.TERRAFORM
        assert config.backend.max_retries == 3
        assert config.backend.retryable_errors == DEFAULT_RETRYABLE_ERRORS

    def test_partial_config(self):
        config = PlatformSettings(
            validation={"conflict_policy": "merge"},
            backend={"kind": "memory"},
        )

        assert config.validation.conflict_policy == ConflictPolicy.MERGE
        assert config.backend.kind == BackendKind.MEMORY
        # Other fields use defaults
        assert config.backend.initial_delay == 5.0

    def test_log_level_normalized(self):
        assert PlatformSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            PlatformSettings(log_level="LOUD")

    def test_empty_allowed_environments(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            ValidationSettings(allowed_environments=[])

    def test_duplicate_allowed_environments(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ValidationSettings(allowed_environments=["dev", "dev"])

    def test_retry_bounds(self):
        with pytest.raises(ValueError):
            BackendSettings(max_retries=0)
        with pytest.raises(ValueError):
            BackendSettings(backoff=0.5)

    def test_list_settings_accept_comma_separated_strings(self):
        assert ValidationSettings(allowed_environments="dev, production").allowed_environments == [
            "dev",
            "production",
        ]
        assert BackendSettings(retryable_errors="429").retryable_errors == ["429"]

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValueError, match="Extra inputs are not permitted"):
            PlatformSettings(unknown_field="value")


class TestConfigLoader:
    """Test ConfigLoader priority and merging."""

    def test_defaults_without_file(self, tmp_path):
        config = ConfigLoader(tmp_path / "missing.yaml").load()

        assert config == PlatformSettings()

    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            yaml.dump(
                {
                    "log_level": "WARNING",
                    "validation": {"allowed_environments": ["test", "production"]},
                    "backend": {"kind": "memory", "max_retries": 5},
                }
            )
        )

        config = ConfigLoader(config_file).load()

        assert config.log_level == "WARNING"
        assert config.validation.allowed_environments == ["test", "production"]
        assert config.backend.kind == BackendKind.MEMORY
        assert config.backend.max_retries == 5

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        assert ConfigLoader(config_file).load() == PlatformSettings()

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("log_level: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader(config_file).load()

    def test_invalid_values_in_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"backend": {"max_retries": 100}}))

        with pytest.raises(ConfigError, match="Configuration validation failed"):
            ConfigLoader(config_file).load()

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"backend": {"max_retries": 5}}))
        monkeypatch.setenv("ACR_PLATFORM_BACKEND__MAX_RETRIES", "7")
        monkeypatch.setenv("ACR_PLATFORM_BACKEND__INITIAL_DELAY", "0.5")
        monkeypatch.setenv("ACR_PLATFORM_VALIDATION__ALLOWED_ENVIRONMENTS", "sandbox,dev")

        config = ConfigLoader(config_file).load()

        assert config.backend.max_retries == 7
        assert config.backend.initial_delay == 0.5
        assert config.validation.allowed_environments == ["sandbox", "dev"]

    def test_single_value_env_list(self, monkeypatch):
        monkeypatch.setenv("ACR_PLATFORM_VALIDATION__ALLOWED_ENVIRONMENTS", "test")
        monkeypatch.setenv("ACR_PLATFORM_BACKEND__RETRYABLE_ERRORS", "TooManyRequests")

        config = ConfigLoader().load()

        assert config.validation.allowed_environments == ["test"]
        assert config.backend.retryable_errors == ["TooManyRequests"]

    def test_env_values_coerced_by_models(self, monkeypatch):
        monkeypatch.setenv("ACR_PLATFORM_VALIDATION__CONFLICT_POLICY", "merge")
        monkeypatch.setenv("ACR_PLATFORM_BACKEND__MODULE_DIR", "environments/prod")
        monkeypatch.setenv("ACR_PLATFORM_BACKEND__MAX_RETRIES", "1")

        config = ConfigLoader().load()

        assert config.validation.conflict_policy == ConflictPolicy.MERGE
        assert config.backend.module_dir == Path("environments/prod")
        assert config.backend.max_retries == 1

    def test_env_section_clash(self, monkeypatch):
        monkeypatch.setenv("ACR_PLATFORM_BACKEND", "terraform")
        monkeypatch.setenv("ACR_PLATFORM_BACKEND__KIND", "memory")

        with pytest.raises(ConfigError, match="not a section"):
            ConfigLoader().load()

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(yaml.dump({"log_level": "ERROR"}))
        monkeypatch.setenv(ConfigLoader.CONFIG_PATH_ENV, str(config_file))

        loader = ConfigLoader()

        assert loader.config_path == config_file
        assert loader.load().log_level == "ERROR"

    def test_cli_args_override_everything(self, monkeypatch):
        monkeypatch.setenv("ACR_PLATFORM_LOG_LEVEL", "ERROR")

        config = load_config(
            cli_args={"log_level": "DEBUG", "backend": {"kind": "memory", "module_dir": None}}
        )

        assert config.log_level == "DEBUG"
        assert config.backend.kind == BackendKind.MEMORY
        assert config.backend.module_dir == Path("environments/sandbox")

    def test_cli_args_all_none(self):
        config = load_config(cli_args={"log_level": None, "backend": {"kind": None}})

        assert config == PlatformSettings()

    def test_invalid_cli_args(self):
        with pytest.raises(ConfigError):
            load_config(cli_args={"backend": {"kind": "pulumi"}})


class TestLoadPromotion:
    """Test image promotion file loading."""

    def test_load_promotion(self, tmp_path):
        promotion_file = tmp_path / "promotion.yaml"
        promotion_file.write_text(
            yaml.dump(
                {
                    "source_registry": "brightcloudnonprod-1a2b3c4d.azurecr.io",
                    "target_registry": "brightcloudprod-5e6f7a8b.azurecr.io",
                    "source_environment": "dev",
                    "target_environment": "prod",
                    "team_name": "test-team",
                    "image_name": "payments-api",
                    "source_tag": "v1.4.2",
                }
            )
        )

        promotion = load_promotion(promotion_file)

        assert promotion.resolved_target_tag == "v1.4.2"
        assert promotion.dry_run is False

    def test_unknown_field(self, tmp_path):
        promotion_file = tmp_path / "promotion.yaml"
        promotion_file.write_text(yaml.dump({"force": True}))

        with pytest.raises(ConfigError, match="Invalid promotion request"):
            load_promotion(promotion_file)


class TestLoadRequest:
    """Test provisioning request file loading."""

    def test_load_request(self, tmp_path):
        request_file = tmp_path / "request.yaml"
        request_file.write_text(
            yaml.dump(
                {
                    "registry": {
                        "name": "testacrabc123",
                        "resource_group": "test-rg",
                        "location": "East US",
                        "environment": "sandbox",
                    },
                    "teams": [
                        {
                            "name": "integration-team",
                            "principal_id": "11111111-1111-1111-1111-111111111111",
                            "allowed_environments": ["sandbox"],
                        }
                    ],
                    "domain_name": "brightcloud.test",
                }
            )
        )

        request = load_request(request_file)

        assert request.request_id == "testacrabc123-sandbox"
        assert request.registry.sku == "Premium"
        assert request.teams[0].allowed_environments == ("sandbox",)
        assert request.network is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read request file"):
            load_request(tmp_path / "missing.yaml")

    def test_not_a_mapping(self, tmp_path):
        request_file = tmp_path / "request.yaml"
        request_file.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_request(request_file)

    def test_invalid_principal_id(self, tmp_path):
        request_file = tmp_path / "request.yaml"
        request_file.write_text(
            yaml.dump(
                {
                    "registry": {
                        "name": "testacrabc123",
                        "resource_group": "test-rg",
                        "location": "East US",
                    },
                    "teams": [
                        {
                            "name": "team",
                            "principal_id": "not-a-uuid",
                            "allowed_environments": ["dev"],
                        }
                    ],
                }
            )
        )

        with pytest.raises(ConfigError, match="Invalid provisioning request"):
            load_request(request_file)

    def test_unknown_registry_field(self, tmp_path):
        request_file = tmp_path / "request.yaml"
        request_file.write_text(
            yaml.dump(
                {
                    "registry": {
                        "name": "testacrabc123",
                        "resource_group": "test-rg",
                        "location": "East US",
                        "georeplication": True,
                    }
                }
            )
        )

        with pytest.raises(ConfigError):
            load_request(request_file)
