"""
Fault registry.
Maps fault type names to plugin classes. Built once at startup, read-only after.
"""

from typing import Dict, Iterable, Type

from core.plugin import FaultPlugin


class FaultRegistry:
    """Lookup of FaultPlugin classes by fault type."""

    def __init__(self):
        self._plugins: Dict[str, Type[FaultPlugin]] = {}

    def register(self, plugin_cls: Type[FaultPlugin]):
        """
        Add a plugin class.

        Raises:
            ValueError: Empty fault type, or fault type already registered
        """
        fault_type = plugin_cls.fault_type
        if not fault_type:
            raise ValueError(f"{plugin_cls.__name__} does not define fault_type")
        if fault_type in self._plugins:
            raise ValueError(
                f"fault type {fault_type!r} registered twice "
                f"({self._plugins[fault_type].__name__} and {plugin_cls.__name__})"
            )
        self._plugins[fault_type] = plugin_cls

    def lookup(self, fault_type: str, **kwargs) -> FaultPlugin:
        """
        Create a fresh plugin instance for `fault_type`.

        Args:
            fault_type: Registry key
            **kwargs: Passed to the plugin constructor (config, runner, ...)

        Raises:
            KeyError: Unknown fault type
        """
        return self._plugins[fault_type](**kwargs)

    def __contains__(self, fault_type: str) -> bool:
        return fault_type in self._plugins


def build_registry(plugin_classes: Iterable[Type[FaultPlugin]]) -> FaultRegistry:
    """Register every class in order. Duplicates raise immediately."""
    registry = FaultRegistry()
    for plugin_cls in plugin_classes:
        registry.register(plugin_cls)
    return registry
