"""Tests for the expense agent's function-calling loop, using a fake chat session."""

import asyncio
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from genui_expenses.agents import (
    AgentError,
    ExpenseAgent,
    build_system_instruction,
    function_calls,
    reply_text,
    to_function_declaration,
    to_plain,
)
from genui_expenses.audit import AuditLogger
from genui_expenses.models import AuditEventType
from genui_expenses.services.storage import InMemoryAuditStorage
from genui_expenses.tools import ToolAdapter


def call(name, /, **args):
    return SimpleNamespace(function_call=SimpleNamespace(name=name, args=args), text="")


def text(value):
    return SimpleNamespace(function_call=None, text=value)


def response(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


class FakeChat:
    """Replays scripted responses and records what was sent."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.sent = []

    async def send_message_async(self, content):
        self.sent.append(content)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeModel:

    def __init__(self, *responses):
        self.chats = []
        self.responses = responses

    def start_chat(self):
        chat = FakeChat(self.responses)
        self.chats.append(chat)
        return chat


class StrictChat(FakeChat):
    """Rejects a user message while the last model turn still awaits function responses."""

    def __init__(self, responses):
        super().__init__(responses)
        self.awaiting = False

    async def send_message_async(self, content):
        if self.awaiting and isinstance(content, str):
            raise google_exceptions.InvalidArgument("function response parts expected")
        self.sent.append(content)
        item = self.responses.pop(0)
        self.awaiting = bool(function_calls(item))
        return item


class StrictModel:
    """Hands out strict chats that draw from one shared script."""

    def __init__(self, *responses):
        self.chats = []
        self.responses = list(responses)

    def start_chat(self):
        chat = StrictChat([])
        chat.responses = self.responses
        self.chats.append(chat)
        return chat


@pytest.fixture
def storage():
    return InMemoryAuditStorage()


@pytest.fixture
def adapter(ledger, host):
    return ToolAdapter(ledger=ledger, host=host)


def make_agent(adapter, storage, *responses, max_tool_rounds=8):
    return ExpenseAgent(
        adapter,
        model=FakeModel(*responses),
        audit_logger=AuditLogger(storage),
        max_tool_rounds=max_tool_rounds,
    )


class TestResponseHelpers:

    def test_function_calls_in_order(self):
        reply = response(text("ok"), call("a", x=1), call("b"))
        assert function_calls(reply) == [("a", {"x": 1}), ("b", {})]

    def test_reply_text_joins_text_parts(self):
        assert reply_text(response(text("Added "), text("coffee."))) == "Added coffee."

    def test_no_candidates(self):
        with pytest.raises(AgentError):
            function_calls(SimpleNamespace(candidates=[]))

    def test_to_plain_converts_nested_containers(self):
        assert to_plain({"a": ({"b": 1},), "c": "text"}) == {"a": [{"b": 1}], "c": "text"}

    def test_function_declaration_conversion(self, adapter):
        declarations = {d["name"]: d for d in adapter.declarations()}

        add_expense = to_function_declaration(declarations["addExpense"])
        get_all = to_function_declaration(declarations["getAllExpenses"])

        assert add_expense.name == "addExpense"
        assert list(add_expense.parameters.required) == ["title", "amount", "categoryId"]
        assert "amount" in add_expense.parameters.properties
        assert get_all.name == "getAllExpenses"

    def test_system_instruction_lists_catalog(self):
        instruction = build_system_instruction("- TotalWidget: total")
        assert "- TotalWidget: total" in instruction
        assert "{catalog}" not in instruction
        assert "  - Food & Drink: #4CAF50" in instruction


class TestToolLoop:
    """Function calls run sequentially through the adapter."""

    def test_plain_answer(self, adapter, storage):
        agent = make_agent(adapter, storage, response(text("Hello!")))

        reply = asyncio.run(agent.send("hi"))

        assert reply.text == "Hello!"
        assert reply.tool_calls == []
        assert not reply.truncated

    def test_calls_run_in_order_and_results_go_back(self, adapter, ledger, storage):
        agent = make_agent(
            adapter, storage,
            response(
                call("addCategory", name="Food & Drink", color="#4CAF50"),
                call("findCategoryByName", name="Food & Drink"),
            ),
            response(text("Done, added Food & Drink.")),
        )

        reply = asyncio.run(agent.send("make a food category"))

        assert [c.name for c in reply.tool_calls] == ["addCategory", "findCategoryByName"]
        assert reply.tool_calls[1].result["found"] is True
        assert reply.text == "Done, added Food & Drink."
        assert len(ledger.categories) == 1

        chat = agent._get_chat()
        assert chat.sent[0] == "make a food category"
        sent_parts = chat.sent[1]
        assert [p.function_response.name for p in sent_parts] == ["addCategory", "findCategoryByName"]

    def test_multiple_rounds(self, adapter, ledger, storage):
        agent = make_agent(
            adapter, storage,
            response(call("addCategory", name="Food", color="green")),
            response(call("getAllExpenses")),
            response(text("All set.")),
        )

        reply = asyncio.run(agent.send("food"))

        assert [c.name for c in reply.tool_calls] == ["addCategory", "getAllExpenses"]
        assert reply.text == "All set."

    def test_tool_errors_are_sent_back_to_the_model(self, adapter, storage):
        agent = make_agent(
            adapter, storage,
            response(call("launchRocket")),
            response(text("Sorry, I can't do that.")),
        )

        reply = asyncio.run(agent.send("launch"))

        assert reply.tool_calls[0].failed
        assert reply.text == "Sorry, I can't do that."

    def test_round_limit_truncates(self, adapter, storage):
        model = StrictModel(
            response(call("getAllExpenses")),
            response(call("getAllExpenses")),
            response(text("I stopped looking; you have no expenses so far.")),
            response(text("Hello again.")),
        )
        agent = ExpenseAgent(adapter, model=model, max_tool_rounds=1)

        reply = asyncio.run(agent.send("loop forever"))

        assert reply.truncated
        assert len(reply.tool_calls) == 1
        assert reply.text == "I stopped looking; you have no expenses so far."
        pending = model.chats[0].sent[2]
        assert pending[0].function_response.name == "getAllExpenses"
        assert "error" in to_plain(pending[0].function_response.response)

        follow_up = asyncio.run(agent.send("hi"))

        assert follow_up.text == "Hello again."
        assert not follow_up.truncated

    def test_round_limit_resets_chat_when_model_keeps_calling(self, adapter, storage):
        model = StrictModel(
            response(call("getAllExpenses")),
            response(call("getAllExpenses")),
            response(call("getAllExpenses")),
            response(text("Fresh start.")),
        )
        agent = ExpenseAgent(adapter, model=model, max_tool_rounds=1)

        reply = asyncio.run(agent.send("loop forever"))
        follow_up = asyncio.run(agent.send("hi"))

        assert reply.truncated
        assert follow_up.text == "Fresh start."
        assert len(model.chats) == 2

    def test_audit_trail_shares_correlation_id(self, adapter, storage):
        agent = make_agent(
            adapter, storage,
            response(call("getAllExpenses")),
            response(text("Nothing yet.")),
        )

        asyncio.run(agent.send("what did I spend?"))

        events = list(reversed(asyncio.run(storage.get_recent_events())))
        assert [e.event_type for e in events] == [
            AuditEventType.MESSAGE_RECEIVED,
            AuditEventType.RESPONSE_GENERATED,
        ]
        assert events[0].correlation_id == events[1].correlation_id
        assert events[1].details["tool_calls"] == ["getAllExpenses"]

    def test_reset_starts_new_chat(self, adapter, storage):
        agent = make_agent(adapter, storage, response(text("one")))
        first = agent._get_chat()
        agent.reset()
        assert agent._get_chat() is not first


class TestFailures:

    def test_transport_error_propagates(self, adapter, storage):
        agent = make_agent(adapter, storage, google_exceptions.ServiceUnavailable("down"))

        with pytest.raises(google_exceptions.ServiceUnavailable):
            asyncio.run(agent.send("hi"))

        events = asyncio.run(storage.get_recent_events())
        assert events[0].event_type == AuditEventType.EXTERNAL_SERVICE_ERROR

    def test_empty_reply_raises_agent_error(self, adapter, storage):
        agent = make_agent(adapter, storage, SimpleNamespace(candidates=None))

        with pytest.raises(AgentError):
            asyncio.run(agent.send("hi"))
