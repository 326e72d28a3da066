"""Tests for follow-up change classification."""

from unittest.mock import AsyncMock, patch

import pytest
from google.genai import errors

from trip_planner.data.models import FIRST_WAVE, SpecialistKind
from trip_planner.orchestration.classification import (
    GeminiAspectClassifier,
    KeywordAspectClassifier,
)
from trip_planner.utils.rate_limiting import RateLimitConfig, rate_limit_manager


@pytest.mark.parametrize(
    "user_input,expected",
    [
        ("prefer boutique hotels", {SpecialistKind.HOTELS}),
        ("nonstop flights only", {SpecialistKind.FLIGHTS}),
        ("we love museums", {SpecialistKind.ACTIVITIES}),
        (
            "cheaper flights and a nicer hotel",
            {SpecialistKind.FLIGHTS, SpecialistKind.HOTELS},
        ),
        ("thanks!", set()),
    ],
)
async def test_keyword_classification(user_input, expected):
    assert await KeywordAspectClassifier().classify(user_input) == expected


@pytest.mark.parametrize(
    "user_input",
    ["make it 7 days", "a week instead", "we are 3 people now", "change destination to Rome"],
)
async def test_whole_trip_changes_affect_every_first_wave_kind(user_input):
    assert await KeywordAspectClassifier().classify(user_input) == set(FIRST_WAVE)


async def test_keywords_match_word_starts_only():
    assert await KeywordAspectClassifier().classify("a party downtown") == set()


async def test_custom_keyword_table():
    classifier = KeywordAspectClassifier({SpecialistKind.DESTINATION: ("beach",)})
    assert await classifier.classify("somewhere with a beach") == {
        SpecialistKind.DESTINATION
    }


async def test_gemini_classification(mock_gemini_client):
    classifier = GeminiAspectClassifier(api_key="test", client=mock_gemini_client)

    assert await classifier.classify("prefer boutique hotels") == {SpecialistKind.HOTELS}

    call = mock_gemini_client.aio.models.generate_content.call_args
    assert call.kwargs["model"] == "gemini-2.0-flash"


async def test_gemini_ignores_second_wave_names(mock_gemini_client):
    mock_gemini_client.aio.models.generate_content.return_value.text = (
        'Sections: ["flights", "budget"]'
    )
    classifier = GeminiAspectClassifier(api_key="test", client=mock_gemini_client)

    assert await classifier.classify("cheaper flights") == {SpecialistKind.FLIGHTS}


async def test_gemini_unparseable_answer_reruns_everything(mock_gemini_client):
    mock_gemini_client.aio.models.generate_content.return_value.text = "hotels, I think"
    classifier = GeminiAspectClassifier(api_key="test", client=mock_gemini_client)

    assert await classifier.classify("whatever") == set(FIRST_WAVE)


async def test_gemini_outage_reruns_everything(mock_gemini_client):
    mock_gemini_client.aio.models.generate_content.side_effect = ConnectionError("down")
    classifier = GeminiAspectClassifier(api_key="test", client=mock_gemini_client)

    assert await classifier.classify("prefer boutique hotels") == set(FIRST_WAVE)
    assert mock_gemini_client.aio.models.generate_content.call_count == 2


@pytest.fixture
def fast_gemini_limiter():
    original = rate_limit_manager.limiters.get("gemini")
    rate_limit_manager.register_service(
        RateLimitConfig(
            service_name="gemini",
            requests_per_minute=600,
            max_retries=3,
            min_wait_seconds=0.0,
            max_wait_seconds=0.0,
        )
    )
    yield
    if original is None:
        rate_limit_manager.limiters.pop("gemini", None)
    else:
        rate_limit_manager.limiters["gemini"] = original


async def test_gemini_calls_go_through_rate_limiter(mock_gemini_client):
    async def passthrough(service_name, func):
        return await func()

    limiter = AsyncMock(side_effect=passthrough)
    classifier = GeminiAspectClassifier(api_key="test", client=mock_gemini_client)

    with patch("trip_planner.orchestration.classification.with_rate_limit", limiter):
        assert await classifier.classify("prefer boutique hotels") == {
            SpecialistKind.HOTELS
        }

    assert limiter.call_args.args[0] == "gemini"


async def test_gemini_overload_is_retried_by_limiter(mock_gemini_client, fast_gemini_limiter):
    answer = mock_gemini_client.aio.models.generate_content.return_value
    overloaded = errors.APIError(
        503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
    )
    mock_gemini_client.aio.models.generate_content.side_effect = [overloaded, answer]
    classifier = GeminiAspectClassifier(api_key="test", client=mock_gemini_client)

    assert await classifier.classify("prefer boutique hotels") == {SpecialistKind.HOTELS}
    assert mock_gemini_client.aio.models.generate_content.call_count == 2
