"""
Async support for wif.

Provides an ``async_wrap`` decorator that converts any blocking call into an
awaitable coroutine using :func:`asyncio.to_thread`. Orchestration code
running on an event loop can then issue independent network calls (live
state fetches, binding writes on different keys) in parallel, while the
canonical implementations stay synchronous.

Usage::

    from wif.base.async_support import async_wrap

    fetch = async_wrap(fetcher.fetch_state)
    states = await asyncio.gather(*(fetch(d) for d in descriptors))
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Coroutine, TypeVar

T = TypeVar("T")


def async_wrap(
    fn: Callable[..., T],
) -> Callable[..., Coroutine[Any, Any, T]]:
    """Return an async version of *fn* that runs it in a thread.

    The wrapper preserves the wrapped function's signature and docstring.

    Args:
        fn: A synchronous callable to wrap.

    Returns:
        An async callable with the same parameters and return type.
    """

    @functools.wraps(fn)
    async def _wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    return _wrapper


class AsyncMixin:
    """Mixin that auto-generates ``a<method>`` async variants.

    Subclass this to gain async versions of every public method that is not
    already a coroutine. The async methods are created once at class
    definition time.

    Example::

        class BindingManager(AsyncMixin):
            def create(self, binding: IAMBinding) -> BindingChange: ...
            # => await manager.acreate(binding) is now available
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for name in list(vars(cls)):
            if name.startswith("_"):
                continue
            attr = getattr(cls, name)
            if inspect.isfunction(attr) and not inspect.iscoroutinefunction(attr):
                async_name = f"a{name}"
                if not hasattr(cls, async_name):
                    setattr(cls, async_name, async_wrap(attr))
