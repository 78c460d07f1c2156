"""
Tests for configuration loading.
"""

import os

import pytest

from azure_reaper.core.config import DEFAULT_CONFIG_PATH, Config, load_config
from azure_reaper.core.exceptions import ConfigurationError
from azure_reaper.core.filters import Filter, FilterType

SAMPLE_CONFIG = """
regions:
  - global
  - eastus

blocklist:
  - 99999999-0000-0000-0000-000000000000

resource-types:
  excludes:
    - KeyVault

presets:
  keep-prod:
    filters:
      __global__:
        - property: tag:env
          value: prod

tenants:
  00000000-0000-0000-0000-000000000001:
    presets:
      - keep-prod
    resource-types:
      targets:
        - VirtualMachine
        - PublicIPAddresses
    filters:
      VirtualMachine:
        - jumpbox
      PublicIPAddresses:
        - property: Name
          type: glob
          value: "keep-*"
"""

TENANT = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(SAMPLE_CONFIG)
    return str(path)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_parses_sections(self, config_file):
        config = load_config(config_file)

        assert config.regions == ["global", "eastus"]
        assert config.blocklist == ["99999999-0000-0000-0000-000000000000"]
        assert config.resource_types.excludes == ["KeyVault"]
        assert config.path == config_file

        tenant = config.tenant(TENANT)
        assert tenant.presets == ["keep-prod"]
        assert tenant.resource_types.includes == ["VirtualMachine", "PublicIPAddresses"]

    def test_deprecated_names_are_rewritten(self, config_file, caplog):
        config = load_config(
            config_file, deprecations={"PublicIPAddresses": "PublicIPAddress"}
        )

        tenant = config.tenant(TENANT)
        assert tenant.resource_types.includes == ["VirtualMachine", "PublicIPAddress"]
        assert tenant.filters.get("PublicIPAddress") == [
            Filter("Name", "keep-*", FilterType.GLOB)
        ]
        assert "PublicIPAddresses is deprecated" in caplog.text

    def test_regions_override(self, config_file):
        config = load_config(config_file, regions=["westus"])
        assert config.regions == ["westus"]

    def test_empty_regions_do_not_override(self, config_file):
        assert load_config(config_file, regions=[]).regions == ["global", "eastus"]

    def test_missing_default_file_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert not os.path.exists(DEFAULT_CONFIG_PATH)

        config = load_config()

        assert config.regions == []
        assert config.path is None

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="config file not found"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("regions: [eastus\n")

        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- eastus\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(str(path))

    def test_accounts_alias(self):
        config = Config.from_mapping({"accounts": {"t1": {"presets": ["p"]}}})
        assert config.tenant("t1").presets == ["p"]


class TestConfig:
    """Tests for Config methods."""

    def test_filters_for_merges_presets(self, config_file):
        filters = load_config(config_file).filters_for(TENANT)

        assert filters.get("VirtualMachine") == [Filter("Name", "jumpbox")]
        assert filters.get("__global__") == [Filter("tag:env", "prod")]

    def test_filters_for_unknown_tenant(self, config_file):
        assert len(load_config(config_file).filters_for("someone-else")) == 0

    def test_unknown_preset(self):
        config = Config.from_mapping({"tenants": {"t1": {"presets": ["missing"]}}})

        with pytest.raises(ConfigurationError, match="unknown preset"):
            config.filters_for("t1")

    def test_validate_blocklisted(self, config_file):
        config = load_config(config_file)

        with pytest.raises(ConfigurationError, match="blocklisted"):
            config.validate("99999999-0000-0000-0000-000000000000")
        config.validate(TENANT)

    def test_validate_requires_regions(self):
        with pytest.raises(ConfigurationError, match="no regions configured"):
            Config().validate("t1")
