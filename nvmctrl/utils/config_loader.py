"""Helpers for loading and validating controller topology configuration."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union
import threading

import yaml  # type: ignore[import-untyped]

from nvmctrl.core.exceptions import ConfigurationError
from nvmctrl.core.flash_enums import FlashOp, Phase


@dataclass(frozen=True)
class FlashTopology:
    num_banks: int
    pages_per_bank: int
    info_pages_per_bank: int
    words_per_page: int
    data_width: int
    bus_width: int

    @property
    def lanes(self) -> int:
        """Bus words per native storage word."""
        return self.data_width // self.bus_width

    @property
    def total_data_pages(self) -> int:
        return self.num_banks * self.pages_per_bank

    @property
    def total_info_pages(self) -> int:
        return self.num_banks * self.info_pages_per_bank


@dataclass(frozen=True)
class InfoRuleConfig:
    page: int
    phase: Phase
    allow: frozenset[FlashOp]
    enabled: bool = True


@dataclass(frozen=True)
class DataRuleConfig:
    phase: Phase
    allow: frozenset[FlashOp]
    base: int
    size: int
    enabled: bool = True


@dataclass(frozen=True)
class ControllerConfig:
    topology: FlashTopology
    info_rules: tuple[InfoRuleConfig, ...]
    data_rules: tuple[DataRuleConfig, ...]


_PHASE_NAMES = {"seed": Phase.SEED, "rma": Phase.RMA}
_OP_NAMES = {
    "read": FlashOp.READ,
    "program": FlashOp.PROGRAM,
    "page_erase": FlashOp.PAGE_ERASE,
    "bank_erase": FlashOp.BANK_ERASE,
}

# Configuration cache with thread safety
_LOADER_CACHE: dict[str, ControllerConfig] = {}
_CACHE_LOCK = threading.RLock()


def _get_config_path(name: str, path: Optional[str] = None) -> str:
    if path is None:
        # Bundled configs live in nvmctrl/configs/{name}.yaml
        base = Path(__file__).parent.parent / "configs" / f"{name}.yaml"
        path = str(base)

    return path


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except Exception as exc:
        raise ConfigurationError(f"Failed to parse config: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError("config root must be a mapping")
    return raw


def _parse_phase(value: Any, key: str) -> Phase:
    phase = _PHASE_NAMES.get(str(value).lower())
    if phase is None:
        raise ConfigurationError(
            key, f"unknown phase {value!r}; expected one of {sorted(_PHASE_NAMES)}"
        )
    return phase


def _parse_int(value: Any, key: str, name: str) -> int:
    # bool is an int subclass; a YAML float would otherwise be truncated
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(key, f"{name} must be an integer, got {value!r}")
    return value


def _parse_enabled(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(key, f"enabled must be true or false, got {value!r}")
    return value


def _parse_allow(values: Any, key: str) -> frozenset[FlashOp]:
    if values is None:
        return frozenset()
    if not isinstance(values, list):
        raise ConfigurationError(key, "allow must be a list of operation names")
    ops = set()
    for name in values:
        op = _OP_NAMES.get(str(name).lower())
        if op is None:
            raise ConfigurationError(
                key, f"unknown operation {name!r}; expected one of {sorted(_OP_NAMES)}"
            )
        ops.add(op)
    return frozenset(ops)


def _build_topology(topo_raw: dict[str, Any]) -> FlashTopology:
    return FlashTopology(
        **{k: _parse_int(v, f"topology.{k}", k) for k, v in topo_raw.items()}
    )


def _build_info_rule(idx: int, raw: dict[str, Any]) -> InfoRuleConfig:
    key = f"info_rules[{idx}]"
    return InfoRuleConfig(
        page=_parse_int(raw["page"], key, "page"),
        phase=_parse_phase(raw["phase"], key),
        allow=_parse_allow(raw.get("allow"), key),
        enabled=_parse_enabled(raw.get("enabled", True), key),
    )


def _build_data_rule(idx: int, raw: dict[str, Any], topology: FlashTopology) -> DataRuleConfig:
    key = f"data_rules[{idx}]"
    size: Union[int, str] = raw["size"]
    if isinstance(size, str):
        if size.lower() != "all":
            raise ConfigurationError(key, f"size must be an integer or 'all', got {size!r}")
        size = topology.total_data_pages
    return DataRuleConfig(
        phase=_parse_phase(raw["phase"], key),
        allow=_parse_allow(raw.get("allow"), key),
        base=_parse_int(raw.get("base", 0), key, "base"),
        size=_parse_int(size, key, "size"),
        enabled=_parse_enabled(raw.get("enabled", True), key),
    )


def _parse_controller_cfg_from_dict(raw: dict[str, Any]) -> ControllerConfig:
    try:
        topology = _build_topology(raw["topology"])
        _validate_topology(topology)

        cfg = ControllerConfig(
            topology=topology,
            info_rules=tuple(
                _build_info_rule(i, r) for i, r in enumerate(raw.get("info_rules") or [])
            ),
            data_rules=tuple(
                _build_data_rule(i, r, topology)
                for i, r in enumerate(raw.get("data_rules") or [])
            ),
        )
    except KeyError as exc:
        raise ConfigurationError(f"Missing required config key: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid config schema: {exc}") from exc

    _validate_rules(cfg)
    return cfg


def _validate_topology(topo: FlashTopology) -> None:
    """Basic sanity checks for the flash geometry to fail fast on bad configs."""
    counts = {
        "num_banks": topo.num_banks,
        "pages_per_bank": topo.pages_per_bank,
        "info_pages_per_bank": topo.info_pages_per_bank,
        "words_per_page": topo.words_per_page,
        "data_width": topo.data_width,
        "bus_width": topo.bus_width,
    }
    for key, value in counts.items():
        if value <= 0:
            raise ConfigurationError(f"topology.{key}", "must be positive")

    if topo.data_width % topo.bus_width != 0:
        raise ConfigurationError(
            "topology.data_width", "must be a multiple of topology.bus_width"
        )
    if topo.info_pages_per_bank > topo.pages_per_bank:
        raise ConfigurationError(
            "topology.info_pages_per_bank", "must not exceed topology.pages_per_bank"
        )

    lanes = topo.lanes
    if lanes & (lanes - 1):
        raise ConfigurationError(
            "topology.data_width", "data_width / bus_width must be a power of two"
        )


def _validate_rules(cfg: ControllerConfig) -> None:
    topo = cfg.topology
    for i, info in enumerate(cfg.info_rules):
        if not 0 <= info.page < topo.total_info_pages:
            raise ConfigurationError(
                f"info_rules[{i}].page",
                f"page {info.page} outside 0..{topo.total_info_pages - 1}",
            )
    for i, data in enumerate(cfg.data_rules):
        if data.base < 0 or data.size < 0:
            raise ConfigurationError(f"data_rules[{i}]", "base and size must be >= 0")
        if data.base + data.size > topo.total_data_pages:
            raise ConfigurationError(
                f"data_rules[{i}]",
                f"region {data.base}+{data.size} exceeds {topo.total_data_pages} data pages",
            )


def load_config(name: str = "default", path: Optional[str] = None) -> ControllerConfig:
    """Load and validate configuration from a YAML file.

    Args:
        name: Config identifier for bundled lookup (e.g., 'default').
        path: Optional path to YAML config. If None, load bundled nvmctrl/configs/{name}.yaml.

    Returns:
        ControllerConfig instance

    Raises:
        ConfigurationError: on parse or validation errors
    """

    p = Path(_get_config_path(name=name, path=path))
    raw = _load_yaml_file(p)

    return _parse_controller_cfg_from_dict(raw=raw)


def get_config(name: str = "default") -> ControllerConfig:
    """Return the loaded config for name, loading and caching if necessary.

    Configs are cached per name; repeated calls for the same name
    return the cached instance without re-reading the YAML file.

    THREAD SAFETY: This function is thread-safe. Multiple threads can
    safely call this concurrently.
    """
    with _CACHE_LOCK:
        if name not in _LOADER_CACHE:
            _LOADER_CACHE[name] = load_config(name=name)
        return _LOADER_CACHE[name]


def clear_config_cache() -> None:
    """Clear all cached configurations.

    All subsequent calls to get_config() will reload from disk.
    """
    with _CACHE_LOCK:
        _LOADER_CACHE.clear()
