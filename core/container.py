"""Dependency injection container used to wire the pipeline services."""
from __future__ import annotations

from typing import Any, Callable, Dict

ServiceFactory = Callable[["Container"], Any]


class Container:
    """Name-keyed service registry.

    Factories receive the container so they can resolve their own
    dependencies; each factory runs at most once and its instance is cached.
    """

    def __init__(self):
        self._instances: Dict[str, Any] = {}
        self._factories: Dict[str, ServiceFactory] = {}

    def register(self, name: str, instance: Any) -> None:
        """Register a ready-made instance."""
        self._instances[name] = instance

    def register_factory(self, name: str, factory: ServiceFactory) -> None:
        """Register a lazily evaluated factory."""
        self._factories[name] = factory
        self._instances.pop(name, None)

    def get(self, name: str) -> Any:
        if name in self._instances:
            return self._instances[name]

        if name in self._factories:
            instance = self._factories[name](self)
            self._instances[name] = instance
            return instance

        raise KeyError(f"Service '{name}' not found in container")

    def has(self, name: str) -> bool:
        return name in self._instances or name in self._factories

    def clear(self) -> None:
        """Drop all registrations (useful for testing)."""
        self._instances.clear()
        self._factories.clear()
