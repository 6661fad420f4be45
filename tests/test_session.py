"""Tests for the client-side assistant session."""
import asyncio
import json

import httpx

from app import main
from client.models import Role
from client.notebook import Notebook
from client.session import APOLOGY, AssistantSession, SessionState
from client.storage import NotebookStorage

API_URL = "http://testserver/api/chat"


class ChunkStream(httpx.AsyncByteStream):
    """Response body that yields fixed byte chunks, optionally then fails."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def make_session(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AssistantSession(api_url=API_URL, client=client)


def streaming_handler(chunks, requests, error=None):
    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(
            200,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            stream=ChunkStream(chunks, error=error),
        )

    return handler


def test_accumulates_fragments_into_one_assistant_message():
    requests = []
    session = make_session(streaming_handler([b"You ", b"said ", b'"Hi".'], requests))
    updates = []

    final = asyncio.run(
        session.ask("What did I say?", on_update=lambda m: updates.append(m.text))
    )

    assert final.text == 'You said "Hi".'
    assert final.role is Role.ASSISTANT
    assert updates == ["You ", "You said ", 'You said "Hi".']
    assert [m.role for m in session.messages] == [Role.USER, Role.ASSISTANT]
    assert session.messages[-1] == final
    assert session.state is SessionState.IDLE


def test_request_carries_both_logs_without_placeholder(tmp_path):
    requests = []
    session = make_session(streaming_handler([b"first"], requests))
    notebook = Notebook(NotebookStorage(tmp_path))
    notebook.send("Hi")

    asyncio.run(session.ask("One?", notebook))
    asyncio.run(session.ask("  Two?  ", notebook))

    assert len(requests) == 2
    second = requests[1]
    assert second["userQuestion"] == "Two?"
    assert second["messages"] == [
        {"type": "sent", "text": "Hi", "timestamp": notebook.messages[0].timestamp}
    ]
    assert second["aiMessages"] == [
        {"role": "user", "text": "One?"},
        {"role": "assistant", "text": "first"},
        {"role": "user", "text": "Two?"},
    ]


def test_split_multibyte_characters_are_decoded_whole():
    requests = []
    data = "café ☕".encode("utf-8")
    chunks = [data[:4], data[4:7], data[7:]]
    session = make_session(streaming_handler(chunks, requests))

    final = asyncio.run(session.ask("coffee?"))

    assert final.text == "café ☕"


def test_empty_reply_is_kept_empty():
    session = make_session(streaming_handler([], []))

    final = asyncio.run(session.ask("anything?"))

    assert final.text == ""
    assert session.state is SessionState.IDLE


def test_mid_stream_failure_replaces_partial_text_with_apology():
    requests = []
    error = httpx.ReadError("connection reset")
    session = make_session(streaming_handler([b"partial answer"], requests, error))
    seen = []

    final = asyncio.run(session.ask("Q?", on_update=lambda m: seen.append(m.text)))

    assert seen == ["partial answer"]
    assert final.text == APOLOGY
    assert session.messages[-1].text == APOLOGY
    assert not session.is_busy


def test_error_status_shows_apology():
    def handler(request):
        return httpx.Response(500, json={"error": "API key not configured"})

    session = make_session(handler)

    final = asyncio.run(session.ask("Q?"))

    assert final.text == APOLOGY
    assert session.state is SessionState.IDLE


def test_transport_error_shows_apology():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    session = make_session(handler)

    final = asyncio.run(session.ask("Q?"))

    assert final.text == APOLOGY
    assert len(session.messages) == 2
    assert not session.is_busy


def test_blank_question_is_ignored():
    requests = []
    session = make_session(streaming_handler([b"x"], requests))

    assert asyncio.run(session.ask("   ")) is None
    assert session.messages == ()
    assert requests == []


def test_question_while_busy_is_a_noop():
    requests = []
    nested = {}
    holder = {}

    async def handler(request):
        requests.append(json.loads(request.content))
        session = holder["session"]
        nested["busy"] = session.is_busy
        nested["log"] = session.messages
        nested["result"] = await session.ask("Second?")
        nested["log_after"] = session.messages
        return httpx.Response(200, stream=ChunkStream([b"answer"]))

    session = make_session(handler)
    holder["session"] = session

    final = asyncio.run(session.ask("First?"))

    assert nested["busy"] is True
    assert nested["result"] is None
    assert nested["log_after"] == nested["log"]
    assert len(requests) == 1
    assert final.text == "answer"
    assert [m.text for m in session.messages] == ["First?", "answer"]


def test_streams_through_the_relay(api_key, monkeypatch, fake_llm_class, tmp_path):
    llm = fake_llm_class(["You ", "said ", '"Hi".'])
    monkeypatch.setattr(main, "build_llm", lambda settings=None: llm)
    notebook = Notebook(NotebookStorage(tmp_path))
    notebook.send("Hi")

    async def run():
        transport = httpx.ASGITransport(app=main.app)
        async with httpx.AsyncClient(transport=transport) as client:
            session = AssistantSession(api_url=API_URL, client=client)
            return await session.ask("What did I say?", notebook)

    final = asyncio.run(run())

    assert final.text == 'You said "Hi".'
    assert "User (sent): Hi" in llm.prompts[0]
    assert 'The user is now asking you: "What did I say?"' in llm.prompts[0]


def test_invalid_url_shows_apology():
    session = AssistantSession(api_url="http://[::1/api/chat")

    final = asyncio.run(session.ask("Q?"))

    assert final.text == APOLOGY
    assert [m.text for m in session.messages] == ["Q?", APOLOGY]
    assert session.state is SessionState.IDLE


def test_failing_update_callback_shows_apology():
    session = make_session(streaming_handler([b"a", b"b"], []))

    def on_update(message):
        raise ValueError("render failed")

    final = asyncio.run(session.ask("Q?", on_update=on_update))

    assert final.text == APOLOGY
    assert not session.is_busy


def test_relay_failure_mid_stream_ends_with_apology(api_key, monkeypatch, fake_llm_class):
    llm = fake_llm_class(["partial "], error=RuntimeError("backend down"))
    monkeypatch.setattr(main, "build_llm", lambda settings=None: llm)

    async def run():
        transport = httpx.ASGITransport(app=main.app)
        async with httpx.AsyncClient(transport=transport) as client:
            session = AssistantSession(api_url=API_URL, client=client)
            final = await session.ask("Q?")
            return session, final

    session, final = asyncio.run(run())

    assert final.text == APOLOGY
    assert "partial " not in [m.text for m in session.messages]
    assert session.messages[-1] == final
    assert session.state is SessionState.IDLE
    assert llm.prompts
