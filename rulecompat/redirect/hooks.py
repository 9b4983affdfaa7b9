"""
Hook mirroring.

An event dispatched as "<canonical>.<event>" is dispatched again, inline and
with the same arguments, as "<alias>.<event>" for each legacy alias in
declared order. Events dispatched under a legacy name are not mirrored back,
so a handler can never trigger a canonical-side duplicate or a dispatch loop.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from ..identity import Identity


@runtime_checkable
class HookBackend(Protocol):
    def on(self, event_name: str, handler: Callable[..., Any]) -> int: ...

    def once(self, event_name: str, handler: Callable[..., Any]) -> int: ...

    def off(self, event_name: str, handler_or_id: Any) -> bool: ...

    def call(self, event_name: str, *args: Any) -> bool: ...

    def call_all(self, event_name: str, *args: Any) -> bool: ...


class HookMirror:
    """Drop-in wrapper for a hook bus that mirrors canonical events to legacy names."""

    def __init__(self, identity: Identity, bus: HookBackend):
        self.identity = identity
        self.bus = bus
        self._prefix = f"{identity.canonical}."

    def legacy_names(self, event_name: str) -> list[str]:
        """Legacy event names a dispatch of event_name is mirrored to."""
        if not isinstance(event_name, str) or not event_name.startswith(self._prefix):
            return []
        suffix = event_name[len(self._prefix) :]
        return [f"{alias}.{suffix}" for alias in self.identity.legacy_aliases]

    def call_all(self, event_name: str, *args: Any) -> bool:
        result = self.bus.call_all(event_name, *args)
        for legacy_name in self.legacy_names(event_name):
            self.bus.call_all(legacy_name, *args)
        return result

    # Registration and interruptible dispatch are passed through unchanged.

    def on(self, event_name: str, handler: Callable[..., Any]) -> int:
        return self.bus.on(event_name, handler)

    def once(self, event_name: str, handler: Callable[..., Any]) -> int:
        return self.bus.once(event_name, handler)

    def off(self, event_name: str, handler_or_id: Any) -> bool:
        return self.bus.off(event_name, handler_or_id)

    def call(self, event_name: str, *args: Any) -> bool:
        return self.bus.call(event_name, *args)
