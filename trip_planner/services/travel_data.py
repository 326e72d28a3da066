"""
Structured travel-data collaborator.

Specialists query flights, hotels and activities by city through the
TravelDataSource interface. TravelDataAPI talks to the HTTP service;
StaticTravelData serves a built-in catalog for local runs and tests.
"""

from typing import Any, Protocol

from trip_planner.utils.logging import get_logger
from trip_planner.utils.rate_limiting import APIClient

logger = get_logger(__name__)


class TravelDataSource(Protocol):
    """Query interface for structured travel inventory."""

    async def search_flights(
        self, destination: str, origin: str | None = None, travelers: int = 1
    ) -> list[dict[str, Any]]: ...

    async def search_hotels(
        self, destination: str, nights: int, style: str | None = None
    ) -> list[dict[str, Any]]: ...

    async def search_activities(
        self, destination: str, interests: list[str] | None = None
    ) -> list[dict[str, Any]]: ...


class TravelDataAPI(APIClient):
    """HTTP client for the travel-data service."""

    def __init__(self, base_url: str, api_key: str | None = None):
        super().__init__(service_name="travel_data", base_url=base_url, api_key=api_key)

    async def search_flights(
        self, destination: str, origin: str | None = None, travelers: int = 1
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"destination": destination, "travelers": travelers}
        if origin:
            params["origin"] = origin
        response = await self.request("GET", "/flights", params=params)
        return response.get("results", [])

    async def search_hotels(
        self, destination: str, nights: int, style: str | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"destination": destination, "nights": nights}
        if style:
            params["style"] = style
        response = await self.request("GET", "/hotels", params=params)
        return response.get("results", [])

    async def search_activities(
        self, destination: str, interests: list[str] | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"destination": destination}
        if interests:
            params["interests"] = ",".join(interests)
        response = await self.request("GET", "/activities", params=params)
        return response.get("results", [])


STATIC_CATALOG: dict[str, dict[str, list[dict[str, Any]]]] = {
    "paris": {
        "flights": [
            {
                "id": "PAR-AF1",
                "airline": "Air France",
                "price": 720.0,
                "nonstop": True,
                "duration_minutes": 445,
                "depart": "18:30",
                "arrive": "07:55",
            },
            {
                "id": "PAR-DL2",
                "airline": "Delta",
                "price": 640.0,
                "nonstop": False,
                "duration_minutes": 610,
                "depart": "16:05",
                "arrive": "10:15",
            },
            {
                "id": "PAR-UA3",
                "airline": "United",
                "price": 685.0,
                "nonstop": True,
                "duration_minutes": 460,
                "depart": "21:40",
                "arrive": "11:20",
            },
        ],
        "hotels": [
            {
                "id": "PAR-H1",
                "name": "Hotel des Grands Boulevards",
                "style": "boutique",
                "nightly_rate": 215.0,
                "rating": 4.6,
                "neighborhood": "2nd arrondissement",
            },
            {
                "id": "PAR-H2",
                "name": "Novotel Paris Centre Tour Eiffel",
                "style": "chain",
                "nightly_rate": 165.0,
                "rating": 4.1,
                "neighborhood": "15th arrondissement",
            },
            {
                "id": "PAR-H3",
                "name": "Le Pavillon de la Reine",
                "style": "luxury",
                "nightly_rate": 540.0,
                "rating": 4.8,
                "neighborhood": "Le Marais",
            },
            {
                "id": "PAR-H4",
                "name": "Generator Paris",
                "style": "hostel",
                "nightly_rate": 60.0,
                "rating": 4.0,
                "neighborhood": "10th arrondissement",
            },
        ],
        "activities": [
            {"id": "PAR-A1", "name": "Louvre Museum", "category": "museums", "price": 22.0, "duration_hours": 3},
            {"id": "PAR-A2", "name": "Eiffel Tower summit", "category": "sightseeing", "price": 36.0, "duration_hours": 2},
            {"id": "PAR-A3", "name": "Seine river cruise", "category": "sightseeing", "price": 18.0, "duration_hours": 1},
            {"id": "PAR-A4", "name": "Musee d'Orsay", "category": "museums", "price": 16.0, "duration_hours": 3},
            {"id": "PAR-A5", "name": "Montmartre walking tour", "category": "walking", "price": 25.0, "duration_hours": 2},
            {"id": "PAR-A6", "name": "Le Marais food tour", "category": "food", "price": 95.0, "duration_hours": 3},
            {"id": "PAR-A7", "name": "Versailles day trip", "category": "history", "price": 70.0, "duration_hours": 6},
            {"id": "PAR-A8", "name": "Luxembourg Gardens picnic", "category": "outdoors", "price": 0.0, "duration_hours": 2},
        ],
    },
    "tokyo": {
        "flights": [
            {
                "id": "TYO-JL1",
                "airline": "Japan Airlines",
                "price": 1180.0,
                "nonstop": True,
                "duration_minutes": 780,
                "depart": "11:00",
                "arrive": "15:10",
            },
            {
                "id": "TYO-UA2",
                "airline": "United",
                "price": 990.0,
                "nonstop": False,
                "duration_minutes": 925,
                "depart": "09:15",
                "arrive": "17:40",
            },
        ],
        "hotels": [
            {
                "id": "TYO-H1",
                "name": "Hotel Gracery Shinjuku",
                "style": "chain",
                "nightly_rate": 150.0,
                "rating": 4.3,
                "neighborhood": "Shinjuku",
            },
            {
                "id": "TYO-H2",
                "name": "Hoshinoya Tokyo",
                "style": "luxury",
                "nightly_rate": 720.0,
                "rating": 4.9,
                "neighborhood": "Otemachi",
            },
            {
                "id": "TYO-H3",
                "name": "Trunk Hotel",
                "style": "boutique",
                "nightly_rate": 380.0,
                "rating": 4.6,
                "neighborhood": "Shibuya",
            },
        ],
        "activities": [
            {"id": "TYO-A1", "name": "Tsukiji outer market breakfast", "category": "food", "price": 30.0, "duration_hours": 2},
            {"id": "TYO-A2", "name": "Senso-ji and Asakusa", "category": "history", "price": 0.0, "duration_hours": 2},
            {"id": "TYO-A3", "name": "teamLab Planets", "category": "museums", "price": 28.0, "duration_hours": 2},
            {"id": "TYO-A4", "name": "Shibuya and Harajuku walk", "category": "walking", "price": 0.0, "duration_hours": 3},
        ],
    },
}


class StaticTravelData:
    """Travel-data source serving the built-in catalog."""

    def __init__(self, catalog: dict[str, dict[str, list[dict[str, Any]]]] | None = None):
        self.catalog = catalog if catalog is not None else STATIC_CATALOG

    def _section(self, destination: str, section: str) -> list[dict[str, Any]]:
        city = self.catalog.get(destination.strip().lower(), {})
        results = [dict(entry) for entry in city.get(section, [])]
        logger.debug(f"Static {section} lookup for {destination}: {len(results)} results")
        return results

    async def search_flights(
        self, destination: str, origin: str | None = None, travelers: int = 1
    ) -> list[dict[str, Any]]:
        return self._section(destination, "flights")

    async def search_hotels(
        self, destination: str, nights: int, style: str | None = None
    ) -> list[dict[str, Any]]:
        return self._section(destination, "hotels")

    async def search_activities(
        self, destination: str, interests: list[str] | None = None
    ) -> list[dict[str, Any]]:
        return self._section(destination, "activities")
