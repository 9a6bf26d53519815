import json

import pytest

from visitsync.live_handler import LiveTranscriptionHandler
from visitsync.models.session import SessionStatus
from visitsync.services.recording_session import RecordingSessionController


async def stream(*messages):
    for message in messages:
        yield message


async def broken_stream(*messages):
    for message in messages:
        yield message
    raise ConnectionError("transport dropped")


def make_handler():
    ended = []
    controller = RecordingSessionController(on_session_ended=ended.append)
    return LiveTranscriptionHandler(controller), controller, ended


@pytest.mark.asyncio
async def test_full_session_from_json_messages():
    handler, controller, ended = make_handler()

    session_id = await handler.handle_stream(stream(
        json.dumps({"type": "session_started", "session_id": "abc"}),
        json.dumps({"type": "transcript_fragment", "text": "Hello", "is_partial": True, "timestamp": 1.0}),
        json.dumps({"type": "transcript_fragment", "text": "Hello there", "is_partial": False, "timestamp": 2.0}),
        json.dumps({"type": "session_ended"}),
        json.dumps({"type": "transcript_fragment", "text": "after end"}),
    ))

    assert session_id == "abc"
    assert ended == ["abc"]
    assert controller.session.get_full_transcript() == "Hello there"


@pytest.mark.asyncio
async def test_dict_messages_are_accepted():
    handler, controller, ended = make_handler()

    await handler.handle_stream(stream(
        {"type": "session_started", "session_id": "abc"},
        {"type": "session_ended"},
    ))

    assert ended == ["abc"]


@pytest.mark.asyncio
async def test_invalid_and_unknown_messages_are_skipped():
    handler, controller, ended = make_handler()

    await handler.handle_stream(stream(
        "not json",
        json.dumps(["not", "an", "object"]),
        json.dumps({"type": "audio_chunk"}),
        json.dumps({"type": "session_started"}),
        json.dumps({"type": "session_started", "session_id": "abc"}),
        json.dumps({"type": "transcript_fragment"}),
        json.dumps({"type": "session_ended"}),
    ))

    assert ended == ["abc"]
    assert controller.session.transcript_fragments == []


@pytest.mark.asyncio
async def test_stream_closing_while_recording_ends_session():
    handler, controller, ended = make_handler()

    session_id = await handler.handle_stream(stream(
        {"type": "session_started", "session_id": "abc"},
        {"type": "transcript_fragment", "text": "partial", "is_partial": True},
    ))

    assert session_id == "abc"
    assert ended == ["abc"]
    assert controller.status is SessionStatus.ENDED


@pytest.mark.asyncio
async def test_stream_error_while_recording_ends_session():
    handler, controller, ended = make_handler()

    session_id = await handler.handle_stream(broken_stream(
        {"type": "session_started", "session_id": "abc"},
    ))

    assert session_id == "abc"
    assert ended == ["abc"]


@pytest.mark.asyncio
async def test_stream_without_session_returns_none():
    handler, controller, ended = make_handler()

    assert await handler.handle_stream(stream({"type": "session_ended"})) is None
    assert ended == []
    assert controller.status is SessionStatus.IDLE


@pytest.mark.asyncio
async def test_undecodable_bytes_do_not_end_the_session():
    handler, controller, ended = make_handler()

    session_id = await handler.handle_stream(stream(
        {"type": "session_started", "session_id": "abc"},
        b"\xff\xfe not utf8",
        {"type": "transcript_fragment", "text": "hello", "is_partial": False},
        {"type": "session_ended"},
    ))

    assert session_id == "abc"
    assert ended == ["abc"]
    assert controller.session.get_full_transcript() == "hello"
