"""
Base class for agents.

:class:`AgentBase` owns everything that is independent of how an agent
reasons: identity, the hook pipeline around ``reply``/``print``/``observe``,
the single in-flight reply task and its interruption, console output and
subscriber broadcasting. Subclasses implement :meth:`AgentBase._reply` and
:meth:`AgentBase._observe`.
"""

import asyncio
import threading
import uuid
from typing import Any, Dict, List, Optional, Union

from ..event_queue import EventQueue
from ..hooks import HookFn, HookRegistry, HookType, run_post_hooks, run_pre_hooks
from ..message import Msg, TextBlock, ThinkingBlock
from ..module import StateModule
from ..utils import setup_logger

INTERRUPT_MESSAGE = "Agent interrupted and ready for new input."

_class_registry_lock = threading.Lock()


class AgentBase(StateModule):
    """Abstract base class for agents."""

    def __init__(self, name: Optional[str] = None, event_queue: Optional[EventQueue] = None):
        """
        Initialize the agent.

        Args:
            name: The name of the agent, defaults to the class name
            event_queue: Queue receiving hook-error and interrupt events
        """
        self.id = str(uuid.uuid4())
        self.name = name or type(self).__name__
        self.event_queue = event_queue or EventQueue()
        self.disable_console_output = False
        self.logger = setup_logger('reactor.agent')

        self._instance_hooks = HookRegistry()
        self._stream_prefix: Dict[str, str] = {}
        self._subscribers: Dict[str, List['AgentBase']] = {}
        self._reply_task: Optional[asyncio.Task] = None
        self._reply_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @classmethod
    def _class_hook_registry(cls) -> HookRegistry:
        """The hook registry shared by every instance of exactly this class."""
        registry = cls.__dict__.get("_class_hooks")
        if registry is None:
            with _class_registry_lock:
                registry = cls.__dict__.get("_class_hooks")
                if registry is None:
                    registry = HookRegistry()
                    setattr(cls, "_class_hooks", registry)
        return registry

    @classmethod
    def register_class_hook(cls, hook_type: Union[HookType, str], name: str, fn: HookFn) -> None:
        """
        Register a hook for every instance of this agent class.

        Class hooks run before instance hooks of the same type.

        Raises:
            ValueError: If the hook type is unsupported
        """
        cls._class_hook_registry().register(hook_type, name, fn)

    @classmethod
    def remove_class_hook(cls, hook_type: Union[HookType, str], name: str) -> bool:
        return cls._class_hook_registry().remove(hook_type, name)

    @classmethod
    def clear_class_hooks(cls, hook_type: Optional[Union[HookType, str]] = None) -> None:
        cls._class_hook_registry().clear(hook_type)

    def register_instance_hook(self, hook_type: Union[HookType, str], name: str, fn: HookFn) -> None:
        """
        Register a hook for this agent only.

        Raises:
            ValueError: If the hook type is unsupported
        """
        self._instance_hooks.register(hook_type, name, fn)

    def remove_instance_hook(self, hook_type: Union[HookType, str], name: str) -> bool:
        return self._instance_hooks.remove(hook_type, name)

    def clear_instance_hooks(self, hook_type: Optional[Union[HookType, str]] = None) -> None:
        self._instance_hooks.clear(hook_type)

    def _hooks_for(self, hook_type: HookType) -> list:
        return (type(self)._class_hook_registry().snapshot(hook_type)
                + self._instance_hooks.snapshot(hook_type))

    async def _run_pre_hooks(self, hook_type: HookType, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        return await run_pre_hooks(self, hook_type, self._hooks_for(hook_type), kwargs,
                                   self.event_queue)

    async def _run_post_hooks(self, hook_type: HookType, kwargs: Dict[str, Any], output: Any) -> Any:
        return await run_post_hooks(self, hook_type, self._hooks_for(hook_type), kwargs, output,
                                    self.event_queue)

    # ------------------------------------------------------------------
    # Observe / reply
    # ------------------------------------------------------------------

    async def observe(self, msg: Union[Msg, List[Msg], None]) -> None:
        """Receive message(s) without generating a reply."""
        kwargs = await self._run_pre_hooks(HookType.PRE_OBSERVE, {"msg": msg})
        await self._observe(kwargs.get("msg"))
        await self._run_post_hooks(HookType.POST_OBSERVE, kwargs, None)

    async def _observe(self, msg: Union[Msg, List[Msg], None]) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not implement _observe")

    async def reply(self, x: Union[Msg, List[Msg], str, None] = None, **kwargs: Any) -> Msg:
        """
        Generate a reply to ``x``.

        Only one reply runs at a time: a new call interrupts the reply in
        flight and waits for it to settle before starting. The reply task,
        ``pre_reply`` hooks included, is interruptible from the moment this
        method is called.

        Args:
            x: Input message(s), or text wrapped into a user message
            **kwargs: Extra arguments passed to the reply implementation

        Returns:
            The reply message
        """
        previous = self._reply_task
        if previous is not None and not previous.done():
            self.logger.info(f"Agent {self.name} superseding in-flight reply {self._reply_id}")
            previous.cancel()
            await asyncio.wait({previous})

        # pre_reply patches are merged in place so post_reply hooks see them
        call_kwargs = {"x": x, **kwargs}
        self._reply_id = str(uuid.uuid4())
        task = asyncio.ensure_future(self._guarded_reply(call_kwargs))
        self._reply_task = task
        try:
            output = await task
        except asyncio.CancelledError:
            # A task cancelled before its first step never reaches _guarded_reply
            current = asyncio.current_task()
            cancelling = getattr(current, "cancelling", None)
            if not task.cancelled() or (cancelling is not None and cancelling()):
                raise
            output = await self.handle_interrupt()
        finally:
            if self._reply_task is task:
                self._reply_task = None

        if output.metadata and output.metadata.get("interrupted"):
            return output

        output = await self._run_post_hooks(HookType.POST_REPLY, call_kwargs, output)
        for hub_name in list(self._subscribers):
            await self.broadcast_to_subscribers(hub_name, output)
        return output

    async def _guarded_reply(self, kwargs: Dict[str, Any]) -> Msg:
        try:
            kwargs.update(await self._run_pre_hooks(HookType.PRE_REPLY, kwargs))
            return await self._reply(**kwargs)
        except asyncio.CancelledError:
            return await self.handle_interrupt()

    async def _reply(self, x: Union[Msg, List[Msg], str, None] = None, **kwargs: Any) -> Msg:
        raise NotImplementedError(f"{type(self).__name__} does not implement _reply")

    async def __call__(self, x: Union[Msg, List[Msg], str, None] = None, **kwargs: Any) -> Msg:
        return await self.reply(x, **kwargs)

    # ------------------------------------------------------------------
    # Interruption
    # ------------------------------------------------------------------

    @property
    def is_replying(self) -> bool:
        return self._reply_task is not None and not self._reply_task.done()

    async def interrupt(self, msg: Optional[Msg] = None) -> None:
        """
        Interrupt the current reply.

        Args:
            msg: Optional message observed before the reply is cancelled
        """
        if msg is not None:
            await self.observe(msg)
        task = self._reply_task
        if task is not None and not task.done():
            task.cancel()
            self.logger.info(f"Agent {self.name} reply task interrupted")

    async def handle_interrupt(self) -> Msg:
        """Build the message an interrupted reply resolves with."""
        self.event_queue.add_interrupt(self.name, metadata={"reply_id": self._reply_id})
        return Msg(self.name, INTERRUPT_MESSAGE, "assistant", metadata={"interrupted": True})

    # ------------------------------------------------------------------
    # Console output
    # ------------------------------------------------------------------

    async def print(self, msg: Msg, last: bool = True) -> None:
        """
        Display a message on the console.

        Messages may be printed repeatedly while they are being streamed;
        each call prints only what was not printed before for the same
        message id, and ``last=True`` ends the line.
        """
        if self.disable_console_output:
            return
        kwargs = await self._run_pre_hooks(HookType.PRE_PRINT, {"msg": msg, "last": last})
        self._print(kwargs["msg"], kwargs.get("last", True))
        await self._run_post_hooks(HookType.POST_PRINT, kwargs, None)

    def _print(self, msg: Msg, last: bool) -> None:
        pieces = []
        for block in msg.get_content_blocks():
            if isinstance(block, TextBlock) and block.text:
                pieces.append(block.text)
            elif isinstance(block, ThinkingBlock) and block.thinking:
                pieces.append(f"(thinking) {block.thinking}")
        text = "\n".join(pieces)

        printed = self._stream_prefix.get(msg.id)
        if printed is None:
            chunk = f"{self.name}: {text}" if text else ""
        elif text.startswith(printed):
            chunk = text[len(printed):]
        else:
            chunk = "\n" + text

        if last:
            if chunk or printed is not None:
                print(chunk)
            self._stream_prefix.pop(msg.id, None)
        elif chunk:
            print(chunk, end="", flush=True)
            self._stream_prefix[msg.id] = text

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def add_subscribers(self, hub_name: str, agents: List['AgentBase']) -> None:
        """Add agents that observe this agent's replies through a message hub."""
        subscribers = self._subscribers.setdefault(hub_name, [])
        for agent in agents:
            if agent is not self and agent not in subscribers:
                subscribers.append(agent)

    def reset_subscribers(self, hub_name: str, agents: List['AgentBase']) -> None:
        self._subscribers[hub_name] = [agent for agent in agents if agent is not self]

    def remove_subscribers(self, hub_name: str) -> None:
        self._subscribers.pop(hub_name, None)

    def get_subscribers(self, hub_name: str) -> List['AgentBase']:
        return list(self._subscribers.get(hub_name, []))

    async def broadcast_to_subscribers(self, hub_name: str, msg: Msg) -> None:
        """Have every subscriber of a hub observe ``msg`` concurrently."""
        subscribers = self._subscribers.get(hub_name)
        if not subscribers:
            return
        await asyncio.gather(*(agent.observe(msg) for agent in subscribers))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def state_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        self.id = state.get("id", self.id)
        self.name = state.get("name", self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, name={self.name!r})"
