import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import openai

from trailplan import llm
from trailplan.llm import GenerationFailure, build_prompt, request_itinerary


def _stub_client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def _reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_trek_prompt_encodes_single_closed_day(trek_request):
    prompt = build_prompt(trek_request)

    assert "1-day trek trip" in prompt
    assert "Paris, France" in prompt
    assert "2025-06-01" in prompt
    assert "between 5 and 15 km" in prompt
    assert "at least 3 different points" in prompt
    assert "No point may be in water" in prompt
    assert "closed loop" in prompt
    assert '"day": 1' in prompt
    assert '"day": 2' not in prompt
    assert "on foot" in prompt


def test_bike_prompt_checks_each_day_independently(bike_request):
    prompt = build_prompt(bike_request)

    assert "2-day bike trip" in prompt
    assert "Day 1: a 10-60 km route." in prompt
    assert "Day 2: a 10-60 km route." in prompt
    assert "EACH DAY" in prompt
    assert "up to 120 km over 2 days" in prompt
    assert "last point of day 2" in prompt
    assert '"day": 2' in prompt
    assert "by bicycle" in prompt


def test_prompt_describes_output_shape(trek_request):
    prompt = build_prompt(trek_request)

    for key in ('"days"', '"cities"', '"coordinates"', '"distances"', '"totalDistance"', '"estimatedTime"'):
        assert key in prompt


def test_request_itinerary_returns_raw_text(monkeypatch, trek_request):
    create = AsyncMock(return_value=_reply('Here it is: {"days": []}'))
    monkeypatch.setattr(llm, "_get_client", lambda: _stub_client(create))

    raw = asyncio.run(request_itinerary(trek_request))

    assert raw == 'Here it is: {"days": []}'
    create.assert_awaited_once()
    messages = create.await_args.kwargs["messages"]
    assert messages[-1]["role"] == "user"
    assert "Paris, France" in messages[-1]["content"]


def test_request_itinerary_without_api_key(monkeypatch, trek_request):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    result = asyncio.run(request_itinerary(trek_request))

    assert isinstance(result, GenerationFailure)
    assert "OPENAI_API_KEY" in result.reason


def test_request_itinerary_model_error_becomes_failure(monkeypatch, trek_request):
    create = AsyncMock(side_effect=openai.OpenAIError("service unavailable"))
    monkeypatch.setattr(llm, "_get_client", lambda: _stub_client(create))

    result = asyncio.run(request_itinerary(trek_request))

    assert isinstance(result, GenerationFailure)
    assert "OpenAIError" in result.reason


def test_request_itinerary_empty_reply_becomes_failure(monkeypatch, trek_request):
    create = AsyncMock(return_value=_reply(""))
    monkeypatch.setattr(llm, "_get_client", lambda: _stub_client(create))

    result = asyncio.run(request_itinerary(trek_request))

    assert isinstance(result, GenerationFailure)


def test_client_is_built_per_request_from_config(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("TRAILPLAN_LLM_BASE_URL", "https://api.groq.com/openai/v1")

    first = llm._get_client()
    second = llm._get_client()

    # each asyncio.run gets its own connection pool
    assert first is not second
    assert str(first.base_url).startswith("https://api.groq.com/openai/v1")


def test_request_itinerary_survives_separate_event_loops(monkeypatch, trek_request):
    create = AsyncMock(return_value=_reply('{"days": []}'))
    monkeypatch.setattr(llm, "_get_client", lambda: _stub_client(create))

    first = asyncio.run(request_itinerary(trek_request))
    second = asyncio.run(request_itinerary(trek_request))

    assert first == second == '{"days": []}'
    assert create.await_count == 2
