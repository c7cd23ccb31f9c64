"""Event and command surface exposed to the rest of the application."""

import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Fired after any structural mutation; listeners re-pull the tree.
VAULT_CHANGED = "vault-changed"
# Fired after tabs, pins, the active tab or expansion changed.
WORKSPACE_CHANGED = "workspace-changed"
# Command fired by the UI: (id, type, new_title).
ITEM_RENAME = "item-rename"
# Fired after the workspace settings blob was written.
WORKSPACE_PERSISTED = "workspace-persisted"

Listener = Callable[..., Any]


class EventBus:
    """Minimal publish/subscribe hub owned by a single workspace."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        """Subscribe ``listener`` to ``event``."""
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """Unsubscribe a previously registered listener."""
        try:
            self._listeners[event].remove(listener)
        except ValueError:
            logger.debug("Listener not registered for %s", event)

    def emit(self, event: str, *args: Any) -> None:
        """Notify synchronous listeners.

        A listener error is logged and does not stop the remaining listeners.
        """
        for listener in list(self._listeners[event]):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for %s failed", event)

    async def dispatch(self, command: str, *args: Any) -> list[Any]:
        """Run every handler for ``command``, awaiting async ones in order.

        Unlike ``emit``, handler errors propagate to the caller.
        """
        results = []
        for handler in list(self._listeners[command]):
            result = handler(*args)
            if inspect.isawaitable(result):
                result = await result
            results.append(result)
        return results
