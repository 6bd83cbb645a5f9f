import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import yaml

from nvmctrl.core.exceptions import ConfigurationError
from nvmctrl.core.flash_enums import FlashOp, Phase
from nvmctrl.utils.config_loader import (
    ControllerConfig,
    DataRuleConfig,
    FlashTopology,
    InfoRuleConfig,
    _get_config_path,
    _load_yaml_file,
    _parse_controller_cfg_from_dict,
    clear_config_cache,
    get_config,
    load_config,
)


class TestFlashTopology:
    def test_derived_counts(self):
        topo = FlashTopology(
            num_banks=2,
            pages_per_bank=256,
            info_pages_per_bank=4,
            words_per_page=128,
            data_width=64,
            bus_width=32,
        )
        assert topo.lanes == 2
        assert topo.total_data_pages == 512
        assert topo.total_info_pages == 8

    def test_topology_immutable(self):
        topo = FlashTopology(1, 1, 1, 1, 32, 32)
        with pytest.raises(AttributeError):
            topo.num_banks = 4


class TestGetConfigPath:
    def test_get_config_path_default(self):
        path = _get_config_path("default")
        assert path.endswith(str(Path("configs") / "default.yaml"))

    def test_get_config_path_custom(self):
        custom_path = "/path/to/custom/config.yaml"
        assert _get_config_path("default", custom_path) == custom_path


class TestLoadYamlFile:
    def test_load_valid_yaml(self):
        yaml_content = {"topology": {"num_banks": 2}}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(yaml_content, f)
            f.flush()
            path = Path(f.name)
        try:
            assert _load_yaml_file(path) == yaml_content
        finally:
            path.unlink()

    def test_load_invalid_yaml(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("{ invalid: yaml: content")
            f.flush()
            path = Path(f.name)
        try:
            with pytest.raises(ConfigurationError):
                _load_yaml_file(path)
        finally:
            path.unlink()

    def test_load_non_mapping_yaml(self, temp_yaml_file):
        temp_yaml_file.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            _load_yaml_file(temp_yaml_file)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            _load_yaml_file(tmp_path / "absent.yaml")


class TestParseControllerCfgFromDict:
    def test_parse_valid_config(self, valid_controller_config_dict):
        cfg = _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert isinstance(cfg, ControllerConfig)
        assert cfg.info_rules == (
            InfoRuleConfig(1, Phase.SEED, frozenset({FlashOp.READ})),
            InfoRuleConfig(2, Phase.SEED, frozenset({FlashOp.READ})),
            InfoRuleConfig(2, Phase.RMA, frozenset({FlashOp.READ, FlashOp.PAGE_ERASE})),
        )
        assert cfg.data_rules == (
            DataRuleConfig(Phase.RMA, frozenset({FlashOp.READ, FlashOp.BANK_ERASE}), 0, 512),
        )

    def test_missing_topology(self, valid_controller_config_dict):
        del valid_controller_config_dict["topology"]
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_unknown_topology_key(self, valid_controller_config_dict):
        valid_controller_config_dict["topology"]["sectors"] = 3
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_rules_are_optional(self, valid_controller_config_dict):
        del valid_controller_config_dict["info_rules"]
        valid_controller_config_dict["data_rules"] = None
        cfg = _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert cfg.info_rules == ()
        assert cfg.data_rules == ()

    @pytest.mark.parametrize(
        "key,value",
        [
            ("num_banks", 0),
            ("pages_per_bank", -1),
            ("bus_width", 0),
            ("data_width", 48),
            ("data_width", 96),
            ("info_pages_per_bank", 512),
        ],
    )
    def test_bad_topology(self, valid_controller_config_dict, key, value):
        valid_controller_config_dict["topology"][key] = value
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_unknown_phase(self, valid_controller_config_dict):
        valid_controller_config_dict["info_rules"][0]["phase"] = "none"
        with pytest.raises(ConfigurationError) as exc_info:
            _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert exc_info.value.config_key == "info_rules[0]"

    def test_unknown_operation(self, valid_controller_config_dict):
        valid_controller_config_dict["data_rules"][0]["allow"] = ["read", "format"]
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_info_page_out_of_bounds(self, valid_controller_config_dict):
        valid_controller_config_dict["info_rules"][0]["page"] = 8
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_data_region_out_of_bounds(self, valid_controller_config_dict):
        valid_controller_config_dict["data_rules"][0].update(base=1, size="all")
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_data_region_bad_size_keyword(self, valid_controller_config_dict):
        valid_controller_config_dict["data_rules"][0]["size"] = "most"
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_disabled_rule(self, valid_controller_config_dict):
        valid_controller_config_dict["info_rules"][0]["enabled"] = False
        cfg = _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert cfg.info_rules[0].enabled is False

    @pytest.mark.parametrize("value", ["false", "no", 0, 1, None])
    def test_enabled_must_be_boolean(self, valid_controller_config_dict, value):
        valid_controller_config_dict["info_rules"][0]["enabled"] = value
        with pytest.raises(ConfigurationError) as exc_info:
            _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert exc_info.value.config_key == "info_rules[0]"

    def test_data_rule_enabled_must_be_boolean(self, valid_controller_config_dict):
        valid_controller_config_dict["data_rules"][0]["enabled"] = "false"
        with pytest.raises(ConfigurationError):
            _parse_controller_cfg_from_dict(valid_controller_config_dict)

    def test_quoted_enabled_from_yaml_rejected(self, temp_yaml_file, valid_controller_config_dict):
        valid_controller_config_dict["info_rules"][0]["enabled"] = "false"
        temp_yaml_file.write_text(yaml.dump(valid_controller_config_dict), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path=str(temp_yaml_file))

    @pytest.mark.parametrize(
        "section,field,value",
        [
            ("info_rules", "page", 1.7),
            ("info_rules", "page", "1"),
            ("info_rules", "page", True),
            ("data_rules", "base", 0.5),
            ("data_rules", "size", 12.0),
        ],
    )
    def test_rule_numbers_must_be_integers(self, valid_controller_config_dict, section, field, value):
        valid_controller_config_dict[section][0][field] = value
        with pytest.raises(ConfigurationError) as exc_info:
            _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert exc_info.value.config_key == f"{section}[0]"

    def test_topology_numbers_must_be_integers(self, valid_controller_config_dict):
        valid_controller_config_dict["topology"]["pages_per_bank"] = 256.0
        with pytest.raises(ConfigurationError) as exc_info:
            _parse_controller_cfg_from_dict(valid_controller_config_dict)
        assert exc_info.value.config_key == "topology.pages_per_bank"


class TestLoadConfig:
    def test_load_config_from_path(self, temp_config_yaml_file):
        cfg = load_config(path=str(temp_config_yaml_file))
        assert isinstance(cfg, ControllerConfig)
        assert cfg.topology.pages_per_bank == 256

    def test_load_bundled_default(self):
        cfg = load_config("default")
        assert cfg.topology.num_banks == 2
        assert cfg.data_rules[0].size == cfg.topology.total_data_pages


class TestGetConfig:
    def test_get_config_loads_once(self):
        with patch("nvmctrl.utils.config_loader._LOADER_CACHE", {}):
            with patch("nvmctrl.utils.config_loader.load_config") as mock_load:
                mock_config = Mock(spec=ControllerConfig)
                mock_load.return_value = mock_config
                assert get_config("default") is mock_config
                assert get_config("default") is mock_config
                mock_load.assert_called_once_with(name="default")

    def test_clear_config_cache(self):
        first = get_config()
        assert get_config() is first
        clear_config_cache()
        assert get_config() is not first
