"""Name-keyed factories for runtime selection from coefficient dictionaries."""

from __future__ import annotations

from typing import Any, Callable, Dict, Type, TypeVar

T = TypeVar("T")


class Registry:
    """Case-insensitive map from a dictionary name (``cubeRootVol``) to a factory.

    Unknown names raise ``error`` with the registered names listed.
    """

    def __init__(self, name: str, error: Type[Exception] = KeyError) -> None:
        self.name = name
        self.error = error
        self._factories: Dict[str, Callable[..., Any]] = {}

    def register(self, key: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
        def decorator(factory: Callable[..., T]) -> Callable[..., T]:
            norm = key.lower()
            if norm in self._factories:
                raise ValueError(f"Duplicate {self.name} '{key}'")
            self._factories[norm] = factory
            return factory

        return decorator

    def __contains__(self, key: str) -> bool:
        return str(key).lower() in self._factories

    def get(self, key: str) -> Callable[..., Any]:
        factory = self._factories.get(str(key).lower())
        if factory is None:
            known = ", ".join(sorted(self._factories))
            raise self.error(f"Unknown {self.name} '{key}' (known: {known})")
        return factory

    def create(self, key: str, *args: Any, **kwargs: Any) -> Any:
        return self.get(key)(*args, **kwargs)
