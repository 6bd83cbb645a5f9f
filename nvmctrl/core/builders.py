"""Factories for controllers and backend channels.

Encodes the common wiring (config -> controller -> channel) so callers
do not repeat it.
"""

from typing import Optional, Sequence

from nvmctrl.core.backend import BackendChannel, MemoryBackend
from nvmctrl.core.controller import FlashController
from nvmctrl.interfaces.backend import StorageBackend
from nvmctrl.interfaces.rule_provider import RuleProvider
from nvmctrl.utils.config_loader import get_config, load_config


def create_controller(
    name: str = "default",
    path: Optional[str] = None,
    extra_providers: Sequence[RuleProvider] = (),
) -> FlashController:
    """Create a controller from a bundled or explicit YAML config.

    Args:
        name: Bundled config name (nvmctrl/configs/{name}.yaml)
        path: Optional explicit YAML path; bypasses the config cache
        extra_providers: Additional rule sources ORed with the hardware rules

    Returns:
        Fully initialized FlashController
    """
    config = load_config(name, path=path) if path is not None else get_config(name)
    return FlashController(config, extra_providers=extra_providers)


def create_channel(
    controller: FlashController, backend: Optional[StorageBackend] = None
) -> BackendChannel:
    """Create a backend channel for controller, defaulting to a MemoryBackend."""
    if backend is None:
        backend = MemoryBackend(controller.address_space)
    return BackendChannel(backend, controller.codec)
