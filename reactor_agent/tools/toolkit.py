"""
Tool registry and dispatcher for the reactor agent.

The toolkit owns the set of tools a model may call, produces their
function-calling schemas, and executes tool calls with a timeout. Every
failure mode (unknown tool, exception, timeout) is turned into an error
:class:`ToolResponse` so that it can be fed back to the model; only
cancellation propagates.
"""

import asyncio
import functools
import inspect
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..event_queue import EventQueue
from ..message import TextBlock, ToolResultBlock, ToolUseBlock
from ..utils import setup_logger, truncate_text
from .builtin import BUILTIN_TOOLS
from .response import ToolFunction, ToolResponse


class Toolkit:
    """
    Registry for tools available to the agent.

    This class manages the registration and lookup of tools, as well as
    their execution, sequentially or in parallel.

    Sync tools run on the toolkit's own thread pool. A sync tool that
    times out cannot be stopped: its error response is returned at once
    while the thread finishes in the background, without holding up the
    shutdown of the event loop's default executor. Call :meth:`close` to
    release the pool.
    """

    def __init__(self, execution_timeout: float = 30.0, enable_async: bool = True,
                 event_queue: Optional[EventQueue] = None, max_workers: Optional[int] = None):
        """
        Initialize the toolkit.

        Args:
            execution_timeout: Seconds a single tool call may take
            enable_async: Run calls as timeout-bounded tasks; when False,
                calls run inline on the event loop without a timeout
            event_queue: Queue receiving tool input/output events
            max_workers: Size of the thread pool running sync tools
        """
        self.execution_timeout = execution_timeout
        self.enable_async = enable_async
        self.event_queue = event_queue or EventQueue()
        self._tools: Dict[str, ToolFunction] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="reactor-tool")
        self.logger = setup_logger('reactor.toolkit')

        for tool in BUILTIN_TOOLS:
            self.register_function(tool)

    def register_tool(self, name: str, func: Callable[..., Any], description: str = "",
                      parameters: Optional[Dict[str, Any]] = None) -> None:
        """
        Register a tool, replacing any tool with the same name.

        Args:
            name: Unique tool name
            func: Sync or async callable taking the tool input as keyword arguments
            description: What the tool does
            parameters: JSON-schema object describing the input
        """
        self.register_function(ToolFunction.build(name, func, description, parameters))

    def register_function(self, tool: ToolFunction) -> None:
        """Register a prepared :class:`ToolFunction`."""
        with self._lock:
            replaced = tool.name in self._tools
            self._tools[tool.name] = tool
        if replaced:
            self.logger.info(f"Replaced tool: {tool.name}")
        else:
            self.logger.debug(f"Registered tool: {tool.name}")

    def remove_tool(self, name: str) -> bool:
        with self._lock:
            removed = self._tools.pop(name, None) is not None
        if removed:
            self.logger.debug(f"Removed tool: {name}")
        return removed

    def has_tool(self, name: str) -> bool:
        with self._lock:
            return name in self._tools

    def get_tool(self, name: str) -> Optional[ToolFunction]:
        with self._lock:
            return self._tools.get(name)

    def get_tool_names(self) -> List[str]:
        with self._lock:
            return list(self._tools.keys())

    def get_tool_schema(self, name: str) -> Optional[Dict[str, Any]]:
        tool = self.get_tool(name)
        return tool.schema if tool else None

    def get_tool_schemas(self) -> List[Dict[str, Any]]:
        """Function-calling schemas for every registered tool, in registration order."""
        with self._lock:
            tools = list(self._tools.values())
        return [tool.schema for tool in tools]

    def clear_tools(self) -> None:
        """Remove every tool, built-ins included."""
        with self._lock:
            self._tools.clear()
        self.logger.info("Cleared all tools")

    def close(self) -> None:
        """Release the sync-tool thread pool without waiting for running tools."""
        self._executor.shutdown(wait=False)

    async def execute_tool(self, name: str, tool_input: Optional[Dict[str, Any]] = None) -> ToolResponse:
        """
        Execute a tool by name.

        Args:
            name: Name of the tool to execute
            tool_input: Keyword arguments for the tool

        Returns:
            The tool's response, or an error response if the tool is
            unknown, raised, or exceeded the execution timeout
        """
        tool = self.get_tool(name)
        if tool is None:
            self.logger.warning(f"Tool not found: {name}")
            response = ToolResponse.error(f"Tool not found: {name}")
            self._record_output(name, response)
            return response

        tool_input = dict(tool_input or {})
        self.event_queue.add_tool_input(tool_name=name, tool_args=tool_input,
                                        metadata={"tool_name": name})
        self.logger.info(f"Executing tool {name} with input: {truncate_text(tool_input)}")

        try:
            if self.enable_async:
                result = await asyncio.wait_for(self._invoke(tool, tool_input),
                                                timeout=self.execution_timeout)
            else:
                result = await self._invoke_inline(tool, tool_input)
            response = self._to_response(result)
        except asyncio.CancelledError:
            self.logger.info(f"Tool {name} cancelled")
            raise
        except asyncio.TimeoutError:
            self.logger.error(f"Tool {name} timed out after {self.execution_timeout} seconds")
            response = ToolResponse.error(
                f"Tool execution timed out after {self.execution_timeout} seconds")
        except Exception as e:
            self.logger.error(f"Tool {name} failed: {str(e)}")
            response = ToolResponse.error(f"Tool execution failed: {str(e)}")

        self._record_output(name, response)
        return response

    async def execute_tool_calls(self, tool_calls: Sequence[ToolUseBlock],
                                 parallel: bool = False) -> List[ToolResultBlock]:
        """
        Execute a batch of tool calls.

        Args:
            tool_calls: Tool-use blocks from a model response
            parallel: Run the calls concurrently instead of one after another

        Returns:
            One result block per call, in call order, each carrying its call id
        """
        if not tool_calls:
            return []

        if parallel:
            # gather returns results in argument order whatever the completion order
            responses = await asyncio.gather(
                *(self.execute_tool(call.name, call.input) for call in tool_calls))
        else:
            responses = []
            for call in tool_calls:
                responses.append(await self.execute_tool(call.name, call.input))

        return [
            ToolResultBlock(id=call.id, output=self._result_output(response), name=call.name)
            for call, response in zip(tool_calls, responses)
        ]

    async def _invoke(self, tool: ToolFunction, tool_input: Dict[str, Any]) -> Any:
        """Run a tool as an awaitable: coroutines directly, sync callables on the tool pool."""
        if inspect.iscoroutinefunction(tool.func):
            result = await tool.func(**tool_input)
        else:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(self._executor, functools.partial(tool.func, **tool_input))
        return await self._resolve(result)

    async def _invoke_inline(self, tool: ToolFunction, tool_input: Dict[str, Any]) -> Any:
        return await self._resolve(tool.func(**tool_input))

    async def _resolve(self, result: Any) -> Any:
        """Await coroutine results and drain async generators of streaming tools."""
        if inspect.isawaitable(result):
            result = await result
        if inspect.isasyncgen(result):
            last = None
            async for chunk in result:
                last = chunk
                if isinstance(chunk, ToolResponse) and chunk.is_final:
                    break
            if isinstance(last, ToolResponse) and not last.is_final:
                last = ToolResponse(content=last.content, metadata=last.metadata)
            return last
        return result

    @staticmethod
    def _to_response(result: Any) -> ToolResponse:
        if isinstance(result, ToolResponse):
            return result
        return ToolResponse.success(result)

    @staticmethod
    def _result_output(response: ToolResponse) -> Any:
        content = response.content
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return [TextBlock(text=item) if isinstance(item, str) else item for item in content]
        return str(content)

    def _record_output(self, name: str, response: ToolResponse) -> None:
        self.event_queue.add_tool_output(
            tool_name=name,
            success=not response.is_error,
            data=None if response.is_error else response.content,
            error=response.metadata.get("error_message") if response.is_error else None,
            metadata={"tool_name": name}
        )
