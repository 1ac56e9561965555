"""
ReAct agent implementation.

The agent alternates between reasoning (asking the model what to do next)
and acting (running the tools the model asked for) until the model gives a
final answer, the iteration budget is spent, or the reply is interrupted.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..event_queue import EventQueue
from ..formatter import FormatterBase
from ..memory import InMemoryMemory, LongTermMemoryBase, MemoryBase
from ..message import Msg, ToolUseBlock
from ..model import ChatModelBase, ChatResponse
from ..tools import ToolResponse, Toolkit
from ..utils import truncate_text
from .base import AgentBase

FINISH_FUNCTION_NAME = "generate_response"
MAX_ITERS_MESSAGE = "Maximum iterations reached without completion."
LONG_TERM_MEMORY_MODES = ("agent_control", "static_control", "both")


class AgentState(Enum):
    """Phases of a reply."""
    IDLE = "idle"
    OBSERVING = "observing"
    REASONING = "reasoning"
    ACTING = "acting"
    FINISHED = "finished"
    INTERRUPTED = "interrupted"
    ERRORED = "errored"


class ReActAgent(AgentBase):
    """
    A reasoning-acting agent with API-based (optionally parallel) tool calling.

    The model finishes a reply either by calling the ``generate_response``
    function or by answering with text and no tool calls.
    """

    def __init__(
        self,
        name: str,
        sys_prompt: Optional[str],
        model: ChatModelBase,
        formatter: Optional[FormatterBase] = None,
        toolkit: Optional[Toolkit] = None,
        memory: Optional[MemoryBase] = None,
        long_term_memory: Optional[LongTermMemoryBase] = None,
        long_term_memory_mode: str = "both",
        parallel_tool_calls: bool = False,
        max_iters: int = 10,
        model_timeout: Optional[float] = None,
        event_queue: Optional[EventQueue] = None,
    ):
        """
        Initialize the ReAct agent.

        Args:
            name: The name of the agent
            sys_prompt: The system prompt, prepended to every model call
            model: The chat model used for reasoning
            formatter: Optional formatter used to validate and truncate the history
            toolkit: The tools the model may call
            memory: The memory used to store the dialogue history
            long_term_memory: Optional long-term memory
            long_term_memory_mode: "agent_control", "static_control" or "both"
            parallel_tool_calls: Execute the tool calls of one response concurrently
            max_iters: Maximum number of reasoning-acting iterations per reply
            model_timeout: Seconds a single model call may take, None for no limit
            event_queue: Queue receiving the agent's and toolkit's events

        Raises:
            ValueError: If long_term_memory_mode or max_iters is invalid
        """
        if long_term_memory_mode not in LONG_TERM_MEMORY_MODES:
            raise ValueError(f"Invalid long_term_memory_mode: {long_term_memory_mode}. "
                             f"Expected one of: {', '.join(LONG_TERM_MEMORY_MODES)}")
        if max_iters <= 0:
            raise ValueError(f"max_iters must be positive, got {max_iters}")

        if event_queue is None and toolkit is not None:
            event_queue = toolkit.event_queue
        super().__init__(name=name, event_queue=event_queue)
        self.sys_prompt = sys_prompt
        self.model = model
        self.formatter = formatter
        self.toolkit = toolkit or Toolkit(event_queue=self.event_queue)
        self.memory = memory if memory is not None else InMemoryMemory()
        self.long_term_memory = long_term_memory
        self.long_term_memory_mode = long_term_memory_mode
        self.parallel_tool_calls = parallel_tool_calls
        self.max_iters = max_iters
        self.model_timeout = model_timeout
        self._state = AgentState.IDLE

        self.static_control = (long_term_memory is not None
                               and long_term_memory_mode in ("static_control", "both"))
        self.agent_control = (long_term_memory is not None
                              and long_term_memory_mode in ("agent_control", "both"))

        self._register_finish_function()
        if self.agent_control:
            self._register_long_term_memory_tools()

        self.logger.info(f"Initialized ReActAgent '{name}' with model {model.model_name}, "
                         f"max_iters={max_iters}, parallel_tool_calls={parallel_tool_calls}")

    @property
    def state(self) -> AgentState:
        return self._state

    def _set_state(self, state: AgentState) -> None:
        if state != self._state:
            self.logger.debug(f"Agent {self.name}: {self._state.value} -> {state.value}")
        self._state = state

    # ------------------------------------------------------------------
    # Tool registration
    # ------------------------------------------------------------------

    def _register_finish_function(self) -> None:
        if self.toolkit.has_tool(FINISH_FUNCTION_NAME):
            return
        self.toolkit.register_tool(
            FINISH_FUNCTION_NAME,
            self.generate_response,
            description="Generate the final response to the user. Call this when the task is complete.",
            parameters={
                "type": "object",
                "properties": {
                    "response": {"type": "string", "description": "The final response to the user"}
                },
                "required": ["response"],
            },
        )

    def generate_response(self, response: str = "", **kwargs: Any) -> ToolResponse:
        """The finish function: its argument is the agent's final answer."""
        return ToolResponse.success(response)

    def _register_long_term_memory_tools(self) -> None:
        self.toolkit.register_tool(
            "retrieve_from_memory",
            self.retrieve_from_memory,
            description="Search long-term memory for information relevant to a query.",
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "What to look for"},
                    "limit": {"type": "integer", "description": "Maximum number of results"},
                },
                "required": ["query"],
            },
        )
        self.toolkit.register_tool(
            "record_to_memory",
            self.record_to_memory,
            description="Save a piece of information to long-term memory.",
            parameters={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "The information to remember"},
                    "key": {"type": "string", "description": "Optional key to store it under"},
                },
                "required": ["content"],
            },
        )

    def retrieve_from_memory(self, query: str, limit: int = 5) -> ToolResponse:
        results = self.long_term_memory.search(query, limit=limit)
        if not results:
            return ToolResponse.success(f"No long-term memory found for: {query}")
        lines = [f"- {item['key']}: {item['value']}" for item in results]
        return ToolResponse.success("\n".join(lines))

    def record_to_memory(self, content: str, key: Optional[str] = None) -> ToolResponse:
        key = key or f"{self.name}:{len(self.long_term_memory.get_all_keys()) + 1}"
        self.long_term_memory.store(key, content, {"agent": self.name, "source": "agent_control"})
        return ToolResponse.success(f"Recorded to long-term memory under '{key}'")

    # ------------------------------------------------------------------
    # Observe / reply
    # ------------------------------------------------------------------

    async def _observe(self, msg: Union[Msg, List[Msg], None]) -> None:
        if msg is None:
            return
        self.memory.add(msg)
        self.logger.debug(f"Agent {self.name} observed {1 if isinstance(msg, Msg) else len(msg)} message(s)")

    async def _reply(self, x: Union[Msg, List[Msg], str, None] = None, **kwargs: Any) -> Msg:
        self._set_state(AgentState.OBSERVING)
        if isinstance(x, str):
            x = Msg("user", x, "user")
        if x is not None:
            await self.observe(x)

        query = self._query_text(x)
        context = self._retrieve_static_context(query) if self.static_control else None

        for iteration in range(self.max_iters):
            self._set_state(AgentState.REASONING)
            self.logger.debug(f"Agent {self.name} reasoning-acting iteration {iteration + 1}")

            try:
                response = await self._reason(iteration, context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                return self._error_reply(e)

            msg = Msg(self.name, response.content, "assistant", invocation_id=response.id)
            tool_calls = msg.get_content_blocks("tool_use")
            text = msg.get_text_content()
            self.event_queue.add_reasoning(text, [call.name for call in tool_calls],
                                           metadata={"iteration": iteration + 1})

            finish_call = next((call for call in tool_calls if call.name == FINISH_FUNCTION_NAME), None)
            if finish_call is not None:
                return await self._finish(self._finish_message(finish_call, text), query)

            if not tool_calls and text:
                return await self._finish(msg, query)

            if tool_calls:
                self._set_state(AgentState.ACTING)
                if text:
                    await self.print(msg)
                results = await self.toolkit.execute_tool_calls(tool_calls, parallel=self.parallel_tool_calls)
                # Stored as a pair so an interrupt never leaves a call without its results
                self.memory.add([msg, Msg(self.name, results, "assistant")])
            else:
                self.logger.warning(f"Agent {self.name} got an empty response at iteration {iteration + 1}")
                self.memory.add(msg)

        self.logger.warning(f"Agent {self.name} reached max_iters={self.max_iters} without completion")
        self._set_state(AgentState.FINISHED)
        return Msg(self.name, MAX_ITERS_MESSAGE, "assistant", metadata={"max_iters_reached": True})

    async def _reason(self, iteration: int, context: Optional[str]) -> ChatResponse:
        """Call the model once with the current history and tool schemas."""
        history = self._build_history(context)
        tools = self.toolkit.get_tool_schemas()
        self.event_queue.add_model_call(self.model.model_name, iteration + 1)

        call = self.model.call(history, tools=tools or None, tool_choice="auto" if tools else None)
        if self.model_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.model_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Model call timed out after {self.model_timeout} seconds")

    def _build_history(self, context: Optional[str]) -> List[Msg]:
        history = []
        if self.sys_prompt:
            history.append(Msg("system", self.sys_prompt, "system"))
        if context:
            history.append(Msg("system", context, "system"))
        history.extend(self.memory.get_messages())

        if self.formatter is not None:
            history = self.formatter.truncate_messages(history)
            self.formatter.validate_messages(history)
        return history

    def _finish_message(self, finish_call: ToolUseBlock, text: Optional[str]) -> Msg:
        response = finish_call.input.get("response")
        if response is None:
            response = text or ""
        elif not isinstance(response, str):
            response = json.dumps(response, ensure_ascii=False)
        return Msg(self.name, response, "assistant", metadata={"finish_function": FINISH_FUNCTION_NAME})

    async def _finish(self, msg: Msg, query: Optional[str]) -> Msg:
        self.memory.add(msg)
        if self.static_control:
            self._record_static(query, msg)
        self._set_state(AgentState.FINISHED)
        self.event_queue.add_final_response(msg.get_text_content(), metadata={"agent": self.name})
        await self.print(msg)
        return msg

    def _error_reply(self, error: Exception) -> Msg:
        self.logger.error(f"Error in reasoning-acting loop for agent {self.name}: {error}")
        self._set_state(AgentState.ERRORED)
        return Msg(
            self.name,
            f"Error in reasoning-acting loop: {error}",
            "assistant",
            metadata={"error": True, "error_type": type(error).__name__, "error_message": str(error)},
        )

    async def handle_interrupt(self) -> Msg:
        msg = await super().handle_interrupt()
        self.memory.add(msg)
        self._set_state(AgentState.INTERRUPTED)
        return msg

    # ------------------------------------------------------------------
    # Static long-term memory
    # ------------------------------------------------------------------

    @staticmethod
    def _query_text(x: Union[Msg, List[Msg], None]) -> Optional[str]:
        if isinstance(x, list):
            x = x[-1] if x else None
        return x.get_text_content() if isinstance(x, Msg) else None

    def _retrieve_static_context(self, query: Optional[str]) -> Optional[str]:
        if not query:
            return None
        try:
            results = self.long_term_memory.search(query, limit=5)
        except Exception as e:
            self.logger.error(f"Error retrieving from long-term memory: {e}")
            return None
        if not results:
            return None
        self.logger.debug(f"Retrieved {len(results)} long-term memory entries for agent {self.name}")
        lines = [f"- {item['key']}: {truncate_text(item['value'], 500)}" for item in results]
        return "Relevant information from long-term memory:\n" + "\n".join(lines)

    def _record_static(self, query: Optional[str], msg: Msg) -> None:
        try:
            self.long_term_memory.store(
                msg.id,
                f"Q: {query or ''}\nA: {msg.get_text_content() or ''}",
                {"agent": self.name, "source": "static_control", "timestamp": msg.timestamp},
            )
        except Exception as e:
            self.logger.error(f"Error recording to long-term memory: {e}")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def state_dict(self) -> Dict[str, Any]:
        state = super().state_dict()
        state.update({
            "sys_prompt": self.sys_prompt,
            "max_iters": self.max_iters,
            "parallel_tool_calls": self.parallel_tool_calls,
            "long_term_memory_mode": self.long_term_memory_mode,
            "memory": self.memory.state_dict(),
        })
        return state

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        super().load_state_dict(state)
        self.sys_prompt = state.get("sys_prompt", self.sys_prompt)
        self.max_iters = state.get("max_iters", self.max_iters)
        self.parallel_tool_calls = state.get("parallel_tool_calls", self.parallel_tool_calls)
        if "memory" in state:
            self.memory.load_state_dict(state["memory"])

    def reset(self) -> None:
        self.memory.clear()
        self._set_state(AgentState.IDLE)
