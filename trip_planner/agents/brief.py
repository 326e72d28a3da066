"""
Trip brief extraction.

Specialists read the goal and every turn input through a TripBrief: the
destination, length, budget and preferences the user has stated so far.
Later inputs override earlier scalar values; interests accumulate.
"""

import re
from dataclasses import dataclass, field

DEFAULT_TRIP_DAYS = 3

_CURRENCY_WORDS = {
    "$": "USD",
    "usd": "USD",
    "dollars": "USD",
    "€": "EUR",
    "eur": "EUR",
    "euros": "EUR",
    "£": "GBP",
    "gbp": "GBP",
    "pounds": "GBP",
}

_NOT_PLACES = {
    "I",
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
    "Plan",
}

_HOTEL_STYLES = {
    "boutique": "boutique",
    "luxury": "luxury",
    "upscale": "luxury",
    "five-star": "luxury",
    "hostel": "hostel",
    "cheap hotel": "hostel",
    "chain hotel": "chain",
}

_INTERESTS = {
    "museum": "museums",
    "art": "museums",
    "gallery": "museums",
    "food": "food",
    "culinary": "food",
    "restaurant": "food",
    "history": "history",
    "historic": "history",
    "walk": "walking",
    "hiking": "outdoors",
    "park": "outdoors",
    "garden": "outdoors",
    "outdoor": "outdoors",
    "sightseeing": "sightseeing",
    "landmark": "sightseeing",
}

_PLACE = r"([A-Z][\w'-]+(?:\s+[A-Z][\w'-]+)*)"
_DESTINATION_PATTERNS = (
    re.compile(rf"\b(?:to|in|visit|visiting|around)\s+{_PLACE}"),
    re.compile(rf"{_PLACE}\s+(?:trip|vacation|holiday|getaway|itinerary)\b"),
)
_ORIGIN_PATTERN = re.compile(rf"\bfrom\s+{_PLACE}")
_DAYS_PATTERN = re.compile(r"(\d+)[-\s]?(day|days|night|nights)\b", re.IGNORECASE)
_WEEK_PATTERN = re.compile(r"\b(?:a|one)\s+week\b", re.IGNORECASE)
_BUDGET_PATTERNS = (
    re.compile(r"([$€£])\s?(\d[\d,]*(?:\.\d+)?)"),
    re.compile(r"(\d[\d,]*(?:\.\d+)?)\s?(usd|eur|gbp|dollars|euros|pounds|€|£)\b", re.IGNORECASE),
    re.compile(r"budget(?:\s+(?:of|is|to))?\s+(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE),
)
_TRAVELERS_PATTERN = re.compile(
    r"(\d+)\s+(?:people|persons|travelers|travellers|adults|guests)\b", re.IGNORECASE
)


def _to_amount(text: str) -> float:
    return float(text.replace(",", ""))


@dataclass
class TripBrief:
    """What the user has asked for so far."""

    destination: str | None = None
    origin: str | None = None
    days: int | None = None
    budget: float | None = None
    currency: str = "USD"
    travelers: int = 1
    hotel_style: str | None = None
    nonstop_only: bool = False
    interests: list[str] = field(default_factory=list)

    @property
    def trip_days(self) -> int:
        return self.days or DEFAULT_TRIP_DAYS

    @property
    def nights(self) -> int:
        return max(1, self.trip_days - 1)

    def absorb(self, text: str) -> None:
        """Update the brief with whatever a single input states."""
        for pattern in _DESTINATION_PATTERNS:
            match = next(
                (m for m in pattern.finditer(text) if m.group(1) not in _NOT_PLACES),
                None,
            )
            if match:
                self.destination = match.group(1)
                break

        origin = _ORIGIN_PATTERN.search(text)
        if origin and origin.group(1) not in _NOT_PLACES:
            self.origin = origin.group(1)

        days = _DAYS_PATTERN.search(text)
        if days:
            count = int(days.group(1))
            self.days = count + 1 if days.group(2).lower().startswith("night") else count
        elif _WEEK_PATTERN.search(text):
            self.days = 7

        self._absorb_budget(text)

        travelers = _TRAVELERS_PATTERN.search(text)
        if travelers:
            self.travelers = max(1, int(travelers.group(1)))
        elif re.search(r"\b(?:for two|couple|my partner|my wife|my husband)\b", text, re.IGNORECASE):
            self.travelers = 2

        lowered = text.lower()
        for keyword, style in _HOTEL_STYLES.items():
            if keyword in lowered:
                self.hotel_style = style
        if "nonstop" in lowered or "non-stop" in lowered or "direct flight" in lowered:
            self.nonstop_only = True
        for keyword, interest in _INTERESTS.items():
            if re.search(rf"\b{keyword}", lowered) and interest not in self.interests:
                self.interests.append(interest)

    def _absorb_budget(self, text: str) -> None:
        symbol, amount, word = _BUDGET_PATTERNS
        match = symbol.search(text)
        if match:
            self.currency = _CURRENCY_WORDS[match.group(1)]
            self.budget = _to_amount(match.group(2))
            return
        match = amount.search(text)
        if match:
            self.currency = _CURRENCY_WORDS[match.group(2).lower()]
            self.budget = _to_amount(match.group(1))
            return
        match = word.search(text)
        if match:
            self.budget = _to_amount(match.group(1))


def build_brief(texts: tuple[str, ...] | list[str]) -> TripBrief:
    """Fold the goal and turn inputs, oldest first, into a TripBrief."""
    brief = TripBrief()
    for text in texts:
        brief.absorb(text)
    return brief
