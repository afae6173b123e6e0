"""
Runs one CLI invocation against the registry: lookup, prepare, then inject or remove.
"""

import logging
from typing import Optional

from core.config import Config
from core.errors import FaultError, PreconditionError
from core.events import EventEmitter, EventSeverity, EventType, MemoryEmitter
from core.models import Operation, RunArgs
from core.plugin import FaultPlugin
from core.registry import FaultRegistry

logger = logging.getLogger(__name__)


class FaultDispatcher:
    """Drives a plugin through its lifecycle for a single invocation."""

    def __init__(
        self,
        registry: FaultRegistry,
        config: Optional[Config] = None,
        events: Optional[EventEmitter] = None,
        **plugin_kwargs
    ):
        """
        Args:
            registry: Registry built at startup
            config: Shared configuration
            events: Event sink for lifecycle events
            **plugin_kwargs: Extra collaborators passed to every plugin
                (runner, system_check, locator)
        """
        self.registry = registry
        self.config = config or Config()
        self.events = events or MemoryEmitter()
        self.plugin_kwargs = plugin_kwargs

    def resolve(self, run_args: RunArgs) -> FaultPlugin:
        """
        Create the plugin for `run_args`.

        Raises:
            PreconditionError: Unknown operation, fault type, or module mismatch
        """
        if run_args.operation not in (Operation.INJECT.value, Operation.REMOVE.value):
            raise PreconditionError(f"unknown operation: {run_args.operation}")
        if run_args.fault_type not in self.registry:
            raise PreconditionError(f"unknown fault type: {run_args.fault_type}")

        plugin = self.registry.lookup(
            run_args.fault_type,
            config=self.config,
            events=self.events,
            **self.plugin_kwargs
        )
        if plugin.module != run_args.module:
            raise PreconditionError(
                f"fault type {run_args.fault_type} belongs to module "
                f"{plugin.module}, not {run_args.module}"
            )
        return plugin

    def dispatch(self, run_args: RunArgs) -> FaultPlugin:
        """
        Prepare the plugin, then inject or remove.

        Returns:
            The plugin instance in its final state

        Raises:
            FaultError: Any lifecycle failure, after a FAULT_FAILED event
        """
        context = {
            'fault_type': run_args.fault_type,
            'module': run_args.module,
            'operation': run_args.operation,
            'flags': run_args.flags,
        }
        logger.info(f"{run_args.operation} {run_args.module} {run_args.fault_type} {run_args.flags_string}")

        try:
            plugin = self.resolve(run_args)
            plugin.prepare(run_args)
            self.events.emit(EventType.FAULT_PREPARED, f"{run_args.fault_type} prepared", context=context)

            if run_args.is_remove():
                plugin.remove(run_args)
                self.events.emit(EventType.FAULT_REMOVED, f"{run_args.fault_type} removed", context=context)
            else:
                plugin.inject(run_args)
                self.events.emit(EventType.FAULT_INJECTED, f"{run_args.fault_type} injected", context=context)
        except FaultError as e:
            self.events.emit(
                EventType.FAULT_FAILED,
                str(e),
                severity=EventSeverity.ERROR,
                context={**context, 'error': type(e).__name__}
            )
            raise

        return plugin
