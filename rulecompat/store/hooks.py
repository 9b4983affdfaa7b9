"""
Named event dispatch.

Events are named "<namespace>.<event>". call_all() runs every handler;
call() stops at the first handler that returns False.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


@dataclass
class HookSubscription:
    event_name: str
    handler: Handler
    id: int
    once: bool = False


@dataclass
class HookBus:
    """Registry of event handlers."""

    _subscriptions: dict[str, list[HookSubscription]] = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def on(self, event_name: str, handler: Handler, *, once: bool = False) -> int:
        sub = HookSubscription(event_name=event_name, handler=handler, id=next(self._ids), once=once)
        self._subscriptions.setdefault(event_name, []).append(sub)
        return sub.id

    def once(self, event_name: str, handler: Handler) -> int:
        return self.on(event_name, handler, once=True)

    def off(self, event_name: str, handler_or_id: Handler | int) -> bool:
        subs = self._subscriptions.get(event_name, [])
        for i, sub in enumerate(subs):
            if sub.id == handler_or_id or sub.handler is handler_or_id:
                del subs[i]
                return True
        return False

    def subscriptions(self, event_name: str) -> list[HookSubscription]:
        return list(self._subscriptions.get(event_name, []))

    def _take(self, event_name: str) -> list[HookSubscription]:
        subs = list(self._subscriptions.get(event_name, []))
        for sub in subs:
            if sub.once:
                self.off(event_name, sub.id)
        return subs

    def call_all(self, event_name: str, *args: Any) -> bool:
        """Run every handler for event_name. A failing handler does not stop the rest."""
        for sub in self._take(event_name):
            try:
                sub.handler(*args)
            except Exception:
                logger.exception("Error in %s handler %r", event_name, sub.handler)
        return True

    def call(self, event_name: str, *args: Any) -> bool:
        """Run handlers until one returns False. Returns False if interrupted."""
        for sub in self._take(event_name):
            try:
                if sub.handler(*args) is False:
                    return False
            except Exception:
                logger.exception("Error in %s handler %r", event_name, sub.handler)
        return True
