"""Call sync or async callables uniformly.

Handlers, service providers, lifecycle hooks and error handlers can all
be ``def`` or ``async def``. The sync/async check lives here only::

    result = await invoke(handler, *args)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
