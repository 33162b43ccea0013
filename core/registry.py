"""
Shared Registry Module

Process-scoped key/value mailbox used to hand data from the NVP rewriter to
the order-history audit attacher. One value per key, last write wins, no
locking.

Precondition: a process handles one order at a time. The rewriter publishes
during the PayPal call and the attacher reads when the resulting history
entry is created; nothing but the host's call order keeps those two steps
in sequence, so overlapping orders sharing a process can read each other's
records.
"""

from typing import Any


class RegistryKeyExistsError(RuntimeError):
    pass


class Registry:
    def __init__(self):
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any, overwrite: bool = False) -> None:
        """Store ``value`` under ``key``.

        Raises RegistryKeyExistsError if the key is taken and ``overwrite`` is
        not set.
        """
        if key in self._data and not overwrite:
            raise RegistryKeyExistsError(f'Registry key "{key}" already exists')
        self._data[key] = value

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def unregister(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data


# Process-wide default instance
_registry = None


def get_registry() -> Registry:
    """Return the process-wide registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = Registry()
    return _registry


def reset_registry():
    """Drop the process-wide registry. Used for testing."""
    global _registry
    _registry = None
