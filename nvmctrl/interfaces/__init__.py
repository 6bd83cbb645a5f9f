"""Abstract interfaces for collaborators the controller model plugs into."""

from nvmctrl.interfaces.backend import StorageBackend
from nvmctrl.interfaces.rule_provider import RuleProvider

__all__ = [
    "RuleProvider",
    "StorageBackend",
]
