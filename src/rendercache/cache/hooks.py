"""Before/after observers around mutating cache operations."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from rendercache.types import HookEvent, HookResult

logger = logging.getLogger(__name__)

HookCallback = Callable[..., Any]


class HookDispatcher:
    """Ordered observers per event.

    A "before" observer vetoes the operation by returning ``HookResult.ABORT``
    or ``False``; anything else lets it continue. The first veto wins and the
    remaining observers are not called. "After" observers' return values are
    ignored. Observer exceptions propagate to the caller.
    """

    def __init__(self) -> None:
        self._before: dict[HookEvent, list[HookCallback]] = defaultdict(list)
        self._after: dict[HookEvent, list[HookCallback]] = defaultdict(list)

    def register_before(self, event: HookEvent | str, callback: HookCallback) -> None:
        self._before[HookEvent(event)].append(callback)

    def register_after(self, event: HookEvent | str, callback: HookCallback) -> None:
        self._after[HookEvent(event)].append(callback)

    def before(self, event: HookEvent, **payload: Any) -> bool:
        """Run "before" observers. Returns False if one of them vetoed."""
        for callback in list(self._before.get(event, [])):
            result = callback(**payload)
            if result is False or result == HookResult.ABORT:
                logger.debug(
                    "'%s' vetoed by %s (%s)",
                    event.value,
                    getattr(callback, "__name__", repr(callback)),
                    payload,
                )
                return False
        return True

    def after(self, event: HookEvent, **payload: Any) -> None:
        for callback in list(self._after.get(event, [])):
            callback(**payload)

    def clear(self) -> None:
        self._before.clear()
        self._after.clear()
