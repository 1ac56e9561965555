"""
Hook pipeline for the reactor agent.

Hooks are named callables attached around an agent's ``reply``, ``print``
and ``observe`` operations. ``pre_*`` hooks are called as
``fn(agent, kwargs)`` and may return a dict that is merged into the
operation's keyword arguments; ``post_*`` hooks are called as
``fn(agent, kwargs, output)`` and may return a replacement output. Hooks
may be plain functions or coroutines. A hook that raises is logged and
skipped; it never aborts the operation it decorates.
"""

import inspect
import threading
from collections import OrderedDict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .event_queue import EventQueue
from .utils import setup_logger

logger = setup_logger('reactor.hooks')


class HookType(Enum):
    """Points in an agent's life cycle where hooks run."""
    PRE_REPLY = "pre_reply"
    POST_REPLY = "post_reply"
    PRE_PRINT = "pre_print"
    POST_PRINT = "post_print"
    PRE_OBSERVE = "pre_observe"
    POST_OBSERVE = "post_observe"

    @property
    def is_pre(self) -> bool:
        return self.value.startswith("pre_")

    @classmethod
    def parse(cls, value: Union['HookType', str]) -> 'HookType':
        """
        Resolve a hook type from its enum member or string value.

        Raises:
            ValueError: If the value names no supported hook type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            supported = ", ".join(t.value for t in cls)
            raise ValueError(f"Unsupported hook type: {value}. Supported types: {supported}")


HookFn = Callable[..., Any]


class HookRegistry:
    """An ordered, thread-safe set of named hooks for each hook type."""

    def __init__(self):
        self._hooks: Dict[HookType, "OrderedDict[str, HookFn]"] = {
            hook_type: OrderedDict() for hook_type in HookType
        }
        self._lock = threading.Lock()

    def register(self, hook_type: Union[HookType, str], name: str, fn: HookFn) -> None:
        """
        Register a hook under a unique name.

        Registering an existing name replaces the hook and keeps its position.

        Raises:
            ValueError: If the hook type is unsupported or fn is not callable
        """
        hook_type = HookType.parse(hook_type)
        if not callable(fn):
            raise ValueError(f"Hook '{name}' must be callable")
        with self._lock:
            self._hooks[hook_type][name] = fn

    def remove(self, hook_type: Union[HookType, str], name: str) -> bool:
        hook_type = HookType.parse(hook_type)
        with self._lock:
            return self._hooks[hook_type].pop(name, None) is not None

    def clear(self, hook_type: Optional[Union[HookType, str]] = None) -> None:
        """Remove the hooks of one type, or of every type."""
        with self._lock:
            if hook_type is None:
                for hooks in self._hooks.values():
                    hooks.clear()
            else:
                self._hooks[HookType.parse(hook_type)].clear()

    def snapshot(self, hook_type: Union[HookType, str]) -> List[Tuple[str, HookFn]]:
        """Copy of the registered (name, hook) pairs in registration order."""
        hook_type = HookType.parse(hook_type)
        with self._lock:
            return list(self._hooks[hook_type].items())

    def names(self, hook_type: Union[HookType, str]) -> List[str]:
        return [name for name, _ in self.snapshot(hook_type)]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(hooks) for hooks in self._hooks.values())


async def _call_hook(fn: HookFn, *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _report_failure(hook_type: HookType, name: str, error: Exception,
                    event_queue: Optional[EventQueue]) -> None:
    logger.error(f"Hook '{name}' ({hook_type.value}) failed: {str(error)}")
    if event_queue is not None:
        event_queue.add_hook_error(hook_type.value, name, str(error))


async def run_pre_hooks(agent: Any, hook_type: HookType,
                        hooks: Sequence[Tuple[str, HookFn]],
                        kwargs: Dict[str, Any],
                        event_queue: Optional[EventQueue] = None) -> Dict[str, Any]:
    """
    Run ``pre_*`` hooks in order, merging any returned patch into the kwargs.

    Args:
        agent: The agent the hooks are attached to
        hook_type: The hook type being run, for error reporting
        hooks: (name, hook) pairs in invocation order
        kwargs: Keyword arguments of the decorated operation
        event_queue: Queue receiving HOOK_ERROR events

    Returns:
        The (possibly modified) keyword arguments
    """
    kwargs = dict(kwargs)
    for name, fn in hooks:
        try:
            patch = await _call_hook(fn, agent, dict(kwargs))
        except Exception as e:
            _report_failure(hook_type, name, e, event_queue)
            continue
        if isinstance(patch, dict):
            kwargs.update(patch)
        elif patch is not None:
            logger.warning(f"Hook '{name}' returned {type(patch).__name__}, expected a dict; ignored")
    return kwargs


async def run_post_hooks(agent: Any, hook_type: HookType,
                         hooks: Sequence[Tuple[str, HookFn]],
                         kwargs: Dict[str, Any], output: Any,
                         event_queue: Optional[EventQueue] = None) -> Any:
    """
    Run ``post_*`` hooks in order; a non-None return value replaces the output.

    Returns:
        The (possibly replaced) output
    """
    for name, fn in hooks:
        try:
            replacement = await _call_hook(fn, agent, dict(kwargs), output)
        except Exception as e:
            _report_failure(hook_type, name, e, event_queue)
            continue
        if replacement is not None:
            output = replacement
    return output
