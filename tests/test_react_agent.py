import asyncio

import pytest

from reactor_agent.agent import (
    FINISH_FUNCTION_NAME,
    INTERRUPT_MESSAGE,
    MAX_ITERS_MESSAGE,
    AgentState,
    ReActAgent,
)
from reactor_agent.event_queue import EventType
from reactor_agent.formatter import OpenAIFormatter
from reactor_agent.memory import DictLongTermMemory
from reactor_agent.message import Msg, ToolUseBlock
from reactor_agent.model import ChatResponse
from reactor_agent.tools import Toolkit

from tests.conftest import ScriptedModel, text_response, tool_response

pytestmark = pytest.mark.asyncio


def make_agent(model, **kwargs):
    agent = ReActAgent("bot", "You are a test bot.", model, **kwargs)
    agent.disable_console_output = True
    return agent


class TestFinishing:

    async def test_text_without_tool_calls_finishes(self):
        model = ScriptedModel([text_response("done")])
        agent = make_agent(model)

        reply = await agent.reply(Msg("user", "hi", "user"))

        assert reply.get_text_content() == "done"
        assert reply.role == "assistant"
        assert reply.name == "bot"
        assert len(model.calls) == 1
        assert agent.memory.size() == 2
        assert agent.state == AgentState.FINISHED

    async def test_string_input_is_wrapped_as_user_message(self):
        agent = make_agent(ScriptedModel([text_response("ok")]))
        await agent.reply("plain text")
        first = agent.memory.get_first_message()
        assert first.role == "user"
        assert first.get_text_content() == "plain text"

    async def test_reply_observes_its_input_once(self):
        agent = make_agent(ScriptedModel([text_response("done")]))
        observed = []
        agent.register_instance_hook("pre_observe", "record", lambda a, k: observed.append(k["msg"]))

        await agent.reply("hi")

        assert len(observed) == 1
        assert observed[0].get_text_content() == "hi"
        assert agent.memory.get_first_message() == observed[0]

    async def test_model_sees_system_prompt_memory_and_tools(self):
        model = ScriptedModel([text_response("done")])
        agent = make_agent(model)
        await agent.reply("hi")

        call = model.calls[0]
        assert call["messages"][0].role == "system"
        assert call["messages"][0].get_text_content() == "You are a test bot."
        assert call["messages"][-1].get_text_content() == "hi"
        assert call["tool_choice"] == "auto"
        names = [schema["function"]["name"] for schema in call["tools"]]
        assert FINISH_FUNCTION_NAME in names

    async def test_finish_function_wins_and_other_calls_are_not_executed(self):
        executed = []
        toolkit = Toolkit()
        toolkit.register_tool("side_effect", lambda: executed.append("ran") or "ran")

        model = ScriptedModel([tool_response(
            ToolUseBlock(id="1", name="side_effect"),
            ToolUseBlock(id="2", name=FINISH_FUNCTION_NAME, input={"response": "final answer"}),
            text="thinking out loud",
        )])
        agent = make_agent(model, toolkit=toolkit)

        reply = await agent.reply("go")

        assert reply.get_text_content() == "final answer"
        assert executed == []
        assert len(model.calls) == 1
        assert agent.memory.get_last_message() == reply

    async def test_finish_function_is_registered_once(self):
        toolkit = Toolkit()
        make_agent(ScriptedModel([text_response("a")]), toolkit=toolkit)
        make_agent(ScriptedModel([text_response("b")]), toolkit=toolkit)
        assert toolkit.get_tool_names().count(FINISH_FUNCTION_NAME) == 1

    async def test_max_iters_returns_sentinel_without_storing_it(self):
        model = ScriptedModel([tool_response(ToolUseBlock(id="c1", name="echo", input={"message": "x"}))])
        agent = make_agent(model, max_iters=3)

        reply = await agent.reply("loop forever")

        assert reply.get_text_content() == MAX_ITERS_MESSAGE
        assert reply.metadata == {"max_iters_reached": True}
        assert len(model.calls) == 3
        # user message plus a tool-use message and a result message per iteration
        assert agent.memory.size() == 7
        assert reply not in agent.memory.get_messages()

    async def test_empty_response_is_stored_and_loop_continues(self):
        model = ScriptedModel([ChatResponse(content=[]), text_response("second try")])
        agent = make_agent(model)

        reply = await agent.reply("hi")

        assert reply.get_text_content() == "second try"
        assert len(model.calls) == 2
        assert agent.memory.size() == 3


class TestActing:

    async def test_tool_results_are_fed_back_to_the_model(self):
        model = ScriptedModel([
            tool_response(ToolUseBlock(id="call-1", name="echo", input={"message": "pong"})),
            text_response("echoed"),
        ])
        agent = make_agent(model)

        reply = await agent.reply("ping")

        assert reply.get_text_content() == "echoed"
        messages = agent.memory.get_messages()
        assert len(messages) == 4
        result_msg = messages[2]
        assert result_msg.role == "assistant"
        result = result_msg.get_content_blocks("tool_result")[0]
        assert result.id == "call-1"
        assert result.output == "pong"
        assert model.calls[1]["messages"][-1] == result_msg

    async def test_parallel_tool_results_keep_call_order(self):
        async def slow(label):
            await asyncio.sleep(0.1)
            return label

        async def fast(label):
            return label

        def failing(label):
            raise RuntimeError("nope")

        toolkit = Toolkit()
        toolkit.register_tool("slow", slow)
        toolkit.register_tool("fast", fast)
        toolkit.register_tool("failing", failing)

        model = ScriptedModel([
            tool_response(
                ToolUseBlock(id="a", name="slow", input={"label": "A"}),
                ToolUseBlock(id="b", name="failing", input={"label": "B"}),
                ToolUseBlock(id="c", name="fast", input={"label": "C"}),
            ),
            text_response("all done"),
        ])
        agent = make_agent(model, toolkit=toolkit, parallel_tool_calls=True)

        await agent.reply("run them")

        results = agent.memory.get_messages()[2].get_content_blocks("tool_result")
        assert [r.id for r in results] == ["a", "b", "c"]
        assert results[0].output == "A"
        assert "Tool execution failed: nope" in results[1].output
        assert results[2].output == "C"

    async def test_unknown_tool_error_is_returned_to_the_model(self):
        model = ScriptedModel([
            tool_response(ToolUseBlock(id="x", name="teleport")),
            text_response("could not teleport"),
        ])
        agent = make_agent(model)

        reply = await agent.reply("go")

        assert reply.get_text_content() == "could not teleport"
        result = agent.memory.get_messages()[2].get_content_blocks("tool_result")[0]
        assert "Tool not found: teleport" in result.output


class TestErrors:

    async def test_model_error_produces_error_reply(self):
        model = ScriptedModel([RuntimeError("service down")])
        agent = make_agent(model)

        reply = await agent.reply("hi")

        assert reply.metadata["error"] is True
        assert reply.metadata["error_type"] == "RuntimeError"
        assert reply.metadata["error_message"] == "service down"
        assert agent.state == AgentState.ERRORED
        assert agent.memory.size() == 1

    async def test_model_timeout_produces_error_reply(self):
        model = ScriptedModel([text_response("too late")], delay=1.0)
        agent = make_agent(model, model_timeout=0.05)

        reply = await agent.reply("hi")

        assert reply.metadata["error_type"] == "TimeoutError"
        assert agent.state == AgentState.ERRORED

    async def test_invalid_construction_arguments(self):
        model = ScriptedModel([text_response("x")])
        with pytest.raises(ValueError):
            ReActAgent("bot", None, model, long_term_memory_mode="sometimes")
        with pytest.raises(ValueError):
            ReActAgent("bot", None, model, max_iters=0)


class TestInterruption:

    async def test_interrupt_during_tool_execution(self):
        started = asyncio.Event()

        async def slow_tool():
            started.set()
            await asyncio.sleep(5)
            return "finished"

        toolkit = Toolkit()
        toolkit.register_tool("slow_tool", slow_tool)
        model = ScriptedModel([tool_response(ToolUseBlock(id="s", name="slow_tool"))])
        agent = make_agent(model, toolkit=toolkit)

        task = asyncio.create_task(agent.reply("start"))
        await asyncio.wait_for(started.wait(), timeout=2)
        assert agent.is_replying

        stop = Msg("user", "stop", "user")
        await agent.interrupt(stop)
        reply = await asyncio.wait_for(task, timeout=2)

        assert reply.metadata == {"interrupted": True}
        assert reply.get_text_content() == INTERRUPT_MESSAGE
        assert agent.state == AgentState.INTERRUPTED
        assert not agent.is_replying
        messages = agent.memory.get_messages()
        assert messages[-2] == stop
        assert messages[-1] == reply
        assert agent.event_queue.get_latest_event(EventType.INTERRUPT) is not None

    async def test_interrupt_before_reply_task_first_runs(self):
        model = ScriptedModel([text_response("never")])
        agent = make_agent(model)

        reply, _ = await asyncio.gather(agent.reply("hi"), agent.interrupt())

        assert reply.metadata == {"interrupted": True}
        assert reply.get_text_content() == INTERRUPT_MESSAGE
        assert model.calls == []
        assert agent.state == AgentState.INTERRUPTED
        assert not agent.is_replying

    async def test_interrupt_during_pre_reply_hooks(self):
        model = ScriptedModel([text_response("never")])
        agent = make_agent(model)
        started = asyncio.Event()

        async def slow_hook(a, kwargs):
            started.set()
            await asyncio.sleep(5)

        agent.register_instance_hook("pre_reply", "slow", slow_hook)

        task = asyncio.create_task(agent.reply("hi"))
        await asyncio.wait_for(started.wait(), timeout=2)
        await agent.interrupt()
        reply = await asyncio.wait_for(task, timeout=2)

        assert reply.metadata == {"interrupted": True}
        assert model.calls == []

    async def test_interrupt_during_tools_leaves_no_unpaired_tool_call(self):
        started = asyncio.Event()

        async def slow_tool():
            started.set()
            await asyncio.sleep(5)

        toolkit = Toolkit()
        toolkit.register_tool("slow_tool", slow_tool)
        model = ScriptedModel([tool_response(ToolUseBlock(id="s", name="slow_tool"), text="working")])
        agent = make_agent(model, toolkit=toolkit)

        task = asyncio.create_task(agent.reply("start"))
        await asyncio.wait_for(started.wait(), timeout=2)
        await agent.interrupt(Msg("user", "stop", "user"))
        await asyncio.wait_for(task, timeout=2)

        messages = agent.memory.get_messages()
        assert not any(m.has_content_blocks("tool_use") for m in messages)
        formatted = OpenAIFormatter(max_tokens=-1).format(messages)
        assert not any("tool_calls" in m for m in formatted)
        assert [m["role"] for m in formatted] == ["user", "user", "assistant"]

    async def test_interrupt_without_reply_is_a_no_op(self):
        agent = make_agent(ScriptedModel([text_response("x")]))
        await agent.interrupt()
        assert agent.memory.size() == 0
        assert agent.state == AgentState.IDLE

    async def test_new_reply_supersedes_running_reply(self):
        async def slow_first(messages):
            await asyncio.sleep(5)
            return text_response("first")

        model = ScriptedModel([slow_first, text_response("second")])
        agent = make_agent(model)

        first = asyncio.create_task(agent.reply("one"))
        await asyncio.sleep(0.05)
        second = await agent.reply("two")
        first_reply = await asyncio.wait_for(first, timeout=2)

        assert first_reply.metadata == {"interrupted": True}
        assert second.get_text_content() == "second"
        assert agent.memory.get_last_message() == second

    async def test_post_reply_hooks_skip_interrupted_replies(self):
        async def slow(messages):
            await asyncio.sleep(5)
            return text_response("never")

        agent = make_agent(ScriptedModel([slow]))
        seen = []
        agent.register_instance_hook("post_reply", "record", lambda a, k, out: seen.append(out))

        task = asyncio.create_task(agent.reply("hi"))
        await asyncio.sleep(0.05)
        await agent.interrupt()
        await asyncio.wait_for(task, timeout=2)
        assert seen == []


class TestLongTermMemory:

    async def test_agent_control_registers_memory_tools(self):
        agent = make_agent(ScriptedModel([text_response("x")]),
                           long_term_memory=DictLongTermMemory(),
                           long_term_memory_mode="agent_control")
        assert agent.agent_control and not agent.static_control
        assert agent.toolkit.has_tool("retrieve_from_memory")
        assert agent.toolkit.has_tool("record_to_memory")

    async def test_static_control_does_not_register_tools(self):
        agent = make_agent(ScriptedModel([text_response("x")]),
                           long_term_memory=DictLongTermMemory(),
                           long_term_memory_mode="static_control")
        assert agent.static_control and not agent.agent_control
        assert not agent.toolkit.has_tool("record_to_memory")

    async def test_without_long_term_memory_both_modes_are_off(self):
        agent = make_agent(ScriptedModel([text_response("x")]))
        assert not agent.static_control
        assert not agent.agent_control

    async def test_static_control_injects_context_and_records_reply(self):
        long_term = DictLongTermMemory()
        long_term.store("tea", "The user prefers green tea")
        model = ScriptedModel([text_response("Green tea it is")])
        agent = make_agent(model, long_term_memory=long_term, long_term_memory_mode="static_control")

        reply = await agent.reply("What tea should I drink?")

        context = model.calls[0]["messages"][1]
        assert context.role == "system"
        assert "The user prefers green tea" in context.get_text_content()
        assert long_term.retrieve(reply.id) == "Q: What tea should I drink?\nA: Green tea it is"

    async def test_agent_control_tools_read_and_write(self):
        long_term = DictLongTermMemory()
        model = ScriptedModel([
            tool_response(ToolUseBlock(id="r", name="record_to_memory",
                                       input={"content": "birthday is in May", "key": "birthday"})),
            tool_response(ToolUseBlock(id="q", name="retrieve_from_memory", input={"query": "birthday"})),
            text_response("Your birthday is in May"),
        ])
        agent = make_agent(model, long_term_memory=long_term, long_term_memory_mode="agent_control")

        await agent.reply("remember my birthday")

        assert long_term.retrieve("birthday") == "birthday is in May"
        lookup = agent.memory.get_messages()[4].get_content_blocks("tool_result")[0]
        assert "birthday is in May" in lookup.output


class TestCollaboration:

    async def test_subscribers_observe_replies(self):
        speaker = make_agent(ScriptedModel([text_response("hello everyone")]))
        listener = make_agent(ScriptedModel([text_response("unused")]))

        speaker.add_subscribers("room", [listener, speaker, listener])
        assert speaker.get_subscribers("room") == [listener]

        reply = await speaker.reply("say hi")
        assert listener.memory.get_last_message() == reply

        speaker.remove_subscribers("room")
        await speaker.reply("again")
        assert listener.memory.size() == 1

    async def test_agent_shares_toolkit_event_queue(self):
        toolkit = Toolkit()
        agent = make_agent(ScriptedModel([text_response("x")]), toolkit=toolkit)
        assert agent.event_queue is toolkit.event_queue

        await agent.reply("hi")
        assert agent.event_queue.get_latest_event(EventType.MODEL_CALL) is not None
        assert agent.event_queue.get_latest_event(EventType.FINAL_RESPONSE).data["solution"] == "x"

    async def test_state_dict_round_trip(self):
        agent = make_agent(ScriptedModel([text_response("remembered")]))
        await agent.reply("hi")

        clone = make_agent(ScriptedModel([text_response("x")]))
        clone.load_state_dict(agent.state_dict())

        assert clone.id == agent.id
        assert [m.id for m in clone.memory.get_messages()] == [m.id for m in agent.memory.get_messages()]

        clone.reset()
        assert clone.memory.is_empty()
        assert clone.state == AgentState.IDLE
