"""
Tests for configuration loading and validation.
"""

import pytest
import yaml

from msp_toolkit.config import CONFIG_ENV_VAR, ToolkitConfig, deep_merge
from msp_toolkit.exceptions import ConfigAlreadyExistsError, InvalidConfigError


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_override(self):
        base = {"itglue": {"page_size": 1000, "retry": {"max_attempts": 5, "max_delay": 30.0}}}
        override = {"itglue": {"retry": {"max_attempts": 3}}}

        merged = deep_merge(base, override)

        assert merged == {"itglue": {"page_size": 1000, "retry": {"max_attempts": 3, "max_delay": 30.0}}}
        assert base["itglue"]["retry"]["max_attempts"] == 5

    def test_list_replaced_not_merged(self):
        merged = deep_merge({"paths": ["a", "b"]}, {"paths": ["c"]})
        assert merged == {"paths": ["c"]}


class TestToolkitConfig:
    """Tests for ToolkitConfig."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test that no config file means built-in defaults."""
        config = ToolkitConfig(tmp_path / "msp-toolkit.yaml").load()

        assert config["itglue"]["base_url"] == "https://api.itglue.com"
        assert config["itglue"]["retry"]["max_delay"] == 30.0
        assert config["password_policy"]["min_length"] == 12

    def test_defaults_are_not_shared(self, tmp_path):
        config = ToolkitConfig(tmp_path / "msp-toolkit.yaml").load()
        config["itglue"]["page_size"] = 1

        assert ToolkitConfig.DEFAULT_CONFIG["itglue"]["page_size"] == 1000

    def test_initialize_writes_valid_yaml(self, tmp_path):
        """Test init writes a file that loads back to the defaults."""
        toolkit_config = ToolkitConfig(tmp_path / "conf" / "msp-toolkit.yaml")

        toolkit_config.initialize()

        data = yaml.safe_load(toolkit_config.config_file.read_text())
        assert data["itglue"]["api_key_env"] == "ITGLUE_API_KEY"
        assert toolkit_config.load() == ToolkitConfig.DEFAULT_CONFIG

    def test_initialize_refuses_overwrite(self, tmp_path):
        toolkit_config = ToolkitConfig(tmp_path / "msp-toolkit.yaml")
        toolkit_config.initialize()

        with pytest.raises(ConfigAlreadyExistsError):
            toolkit_config.initialize()

        toolkit_config.initialize(force=True)

    def test_partial_file_merged_over_defaults(self, tmp_path):
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("itglue:\n  region: eu\npassword_policy:\n  min_length: 16\n")

        config = ToolkitConfig(path).load()

        assert config["itglue"]["region"] == "eu"
        assert config["itglue"]["page_size"] == 1000
        assert config["password_policy"]["min_length"] == 16
        assert config["password_policy"]["max_age_days"] == 365

    def test_empty_file(self, tmp_path):
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("")

        assert ToolkitConfig(path).load() == ToolkitConfig.DEFAULT_CONFIG

    def test_schema_violation(self, tmp_path):
        """Test out-of-range values are rejected with their location."""
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("itglue:\n  page_size: 5000\n")

        with pytest.raises(InvalidConfigError) as exc_info:
            ToolkitConfig(path).load()

        assert "itglue.page_size" in str(exc_info.value)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("itglue:\n  api_key: ITG.secret\n")

        with pytest.raises(InvalidConfigError):
            ToolkitConfig(path).load()

    def test_unknown_region_rejected(self, tmp_path):
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("itglue:\n  region: mars\n")

        with pytest.raises(InvalidConfigError):
            ToolkitConfig(path).load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("itglue: [unclosed\n")

        with pytest.raises(InvalidConfigError):
            ToolkitConfig(path).load()

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "msp-toolkit.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(InvalidConfigError, match="expected a mapping"):
            ToolkitConfig(path).load()

    def test_locate_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert ToolkitConfig().config_file == path

    def test_locate_defaults_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)

        assert ToolkitConfig().config_file == tmp_path / "msp-toolkit.yaml"
