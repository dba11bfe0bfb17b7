"""Async action/filter hooks fired by the content store and page service.

Actions run callbacks for their side effects; filters thread a value
through every callback and return the result.

Usage:
    from mosaic.lib.hooks import hooks, action, REVALIDATE

    @action(REVALIDATE)
    async def purge_cdn(scope, key):
        await cdn.purge(f"{scope}:{key}")

    await hooks.do_action(REVALIDATE, "page", "home")
    view = await hooks.apply_filters(PAGE_VIEW, view)

The ``revalidate`` action is the cache-invalidation seam: it fires after
every successful write with a scope (``"content"``, ``"page"`` or
``"section"``) and a key naming what changed. Mosaic never caches by
itself.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    """A registered hook handler with priority."""

    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        """Call the handler, handling both sync and async callbacks."""
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Central registry for all hooks (actions and filters)."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    def add_action(
        self,
        hook_name: str,
        callback: Callable[..., Any],
        priority: int = 10,
    ) -> None:
        """Register an action callback. Lower priorities run first."""
        handler = HookHandler(priority=priority, callback=callback)
        self._actions[hook_name].append(handler)
        self._actions[hook_name].sort()

    def add_filter(
        self,
        hook_name: str,
        callback: Callable[..., T],
        priority: int = 10,
    ) -> None:
        """Register a filter callback. Lower priorities run first."""
        handler = HookHandler(priority=priority, callback=callback)
        self._filters[hook_name].append(handler)
        self._filters[hook_name].sort()

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove an action callback, returning True if it was registered."""
        return self._remove(self._actions, hook_name, callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove a filter callback, returning True if it was registered."""
        return self._remove(self._filters, hook_name, callback)

    @staticmethod
    def _remove(
        table: dict[str, list[HookHandler]],
        hook_name: str,
        callback: Callable[..., Any],
    ) -> bool:
        handlers = table.get(hook_name, [])
        for i, handler in enumerate(handlers):
            if handler.callback is callback:
                handlers.pop(i)
                return True
        return False

    def has_action(self, hook_name: str) -> bool:
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        return bool(self._filters.get(hook_name))

    async def do_action(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Execute all registered action callbacks in priority order."""
        from mosaic.lib.observability import span

        with span(f"hook.action:{hook_name}", hook_name=hook_name):
            for handler in list(self._actions.get(hook_name, [])):
                await handler.call(*args, **kwargs)

    async def apply_filters(self, hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
        """Pass ``value`` through every filter callback and return the result."""
        from mosaic.lib.observability import span

        with span(f"hook.filter:{hook_name}", hook_name=hook_name):
            for handler in list(self._filters.get(hook_name, [])):
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        """Clear all registered hooks. Useful for testing."""
        self._actions.clear()
        self._filters.clear()


# Global singleton registry
hooks = HookRegistry()


def action(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering a function as an action handler."""

    def decorator(func: Callable) -> Callable:
        hooks.add_action(hook_name, func, priority)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        return wrapper

    return decorator


def filter(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering a function as a filter handler."""

    def decorator(func: Callable) -> Callable:
        hooks.add_filter(hook_name, func, priority)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        return wrapper

    return decorator


# Actions
REVALIDATE = "revalidate"

BEFORE_ENTRY_SAVE = "before_entry_save"
AFTER_ENTRY_SAVE = "after_entry_save"
AFTER_ENTRY_DELETE = "after_entry_delete"
AFTER_ENTRY_STATUS_CHANGE = "after_entry_status_change"

BEFORE_PAGE_SAVE = "before_page_save"
AFTER_PAGE_SAVE = "after_page_save"
BEFORE_PAGE_DELETE = "before_page_delete"
AFTER_PAGE_DELETE = "after_page_delete"
AFTER_SECTIONS_CHANGE = "after_sections_change"

# Filters
ENTRY_VIEW = "entry_view"
PAGE_VIEW = "page_view"

# Revalidation scopes
SCOPE_CONTENT = "content"
SCOPE_PAGE = "page"
SCOPE_SECTION = "section"
