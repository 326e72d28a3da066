"""
Change classification for follow-up turns.

A classifier reads one user input and reports which first-wave specialists
it affects. Budget and Itinerary always re-run, so they are never reported.
"""

import json
import re
from typing import Protocol

from google import genai
from google.genai import errors, types

from trip_planner.data.models import FIRST_WAVE, SpecialistKind
from trip_planner.utils.error_handling import APIError, TripPlannerError, with_retry
from trip_planner.utils.logging import AgentLogger, get_logger
from trip_planner.utils.rate_limiting import with_rate_limit

logger = get_logger(__name__)


class AspectClassifier(Protocol):
    """Decides which first-wave specialists a user input makes stale."""

    async def classify(self, user_input: str) -> set[SpecialistKind]: ...


KEYWORDS: dict[SpecialistKind, tuple[str, ...]] = {
    SpecialistKind.FLIGHTS: (
        "flight", "fly", "airline", "airport", "nonstop", "non-stop", "layover",
        "depart", "from ",
    ),
    SpecialistKind.HOTELS: (
        "hotel", "stay", "room", "boutique", "hostel", "luxury", "accommodation",
        "lodging", "night",
    ),
    SpecialistKind.ACTIVITIES: (
        "activit", "museum", "tour", "food", "art", "history", "hiking", "park",
        "sightseeing", "interest", "walk",
    ),
    SpecialistKind.DESTINATION: ("destination", "instead", "visit", "city", "country"),
}

# Changes to who travels, where, or for how long affect every first-wave kind
_WHOLE_TRIP = re.compile(
    r"\b(\d+[-\s]?days?|week|people|travel(?:l)?ers|instead|change (?:the )?destination)\b",
    re.IGNORECASE,
)


class KeywordAspectClassifier:
    """Keyword table classifier used when no model is configured."""

    def __init__(self, keywords: dict[SpecialistKind, tuple[str, ...]] | None = None):
        self.keywords = keywords or KEYWORDS

    async def classify(self, user_input: str) -> set[SpecialistKind]:
        if _WHOLE_TRIP.search(user_input):
            return set(FIRST_WAVE)
        lowered = user_input.lower()
        return {
            kind
            for kind, words in self.keywords.items()
            if any(re.search(rf"\b{re.escape(word)}", lowered) for word in words)
        }


CLASSIFIER_PROMPT = """You route follow-up messages in a trip-planning conversation.
Given the user's message, answer with a JSON array naming which of these plan
sections must be recomputed: "flights", "hotels", "activities", "destination".
Answer [] if none are affected. Answer with the JSON array only."""


class GeminiAspectClassifier:
    """Model-backed classifier; falls back to every first-wave kind on failure."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        client: genai.Client | None = None,
    ):
        self.model = model
        self.logger = AgentLogger("Aspect Classifier")
        self.client = client or genai.Client(api_key=api_key)

    async def classify(self, user_input: str) -> set[SpecialistKind]:
        try:
            answer = await self._call_model(user_input)
            return self._parse(answer)
        except (TripPlannerError, ValueError) as e:
            logger.warning(f"Aspect classification failed, re-running all: {e!s}")
            return set(FIRST_WAVE)

    @with_retry(max_attempts=2, min_wait_seconds=0.5, max_wait_seconds=2.0)
    async def _call_model(self, user_input: str) -> str:
        contents = [
            types.Content(role="user", parts=[types.Part.from_text(text=user_input)])
        ]
        config = types.GenerateContentConfig(
            temperature=0.0,
            max_output_tokens=64,
            system_instruction=CLASSIFIER_PROMPT,
        )
        self.logger.log_llm_input(
            self.model, [{"role": "user", "text": user_input}], temperature=0.0
        )

        async def request():
            try:
                return await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
            except errors.APIError as e:
                raise APIError(
                    f"Gemini request failed: {e!s}",
                    service_name="gemini",
                    status_code=e.code,
                    original_error=e,
                ) from e

        try:
            response = await with_rate_limit("gemini", request)
        except APIError:
            raise
        except Exception as e:
            raise APIError(
                f"Gemini request failed: {e!s}", service_name="gemini", original_error=e
            ) from e
        self.logger.log_llm_output(self.model, response.text)
        return response.text or ""

    def _parse(self, answer: str) -> set[SpecialistKind]:
        """Read the JSON array out of the model's answer."""
        match = re.search(r"\[.*?\]", answer, re.DOTALL)
        if not match:
            raise ValueError(f"No JSON array in model answer: {answer!r}")
        names = json.loads(match.group(0))
        first_wave = {kind.value: kind for kind in FIRST_WAVE}
        return {first_wave[name] for name in names if name in first_wave}
