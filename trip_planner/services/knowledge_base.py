"""
Semantic knowledge-retrieval collaborator.

The destination specialist asks free-text questions about a place and gets
back ranked passages.
"""

from typing import Any, Protocol

from trip_planner.utils.rate_limiting import APIClient


class KnowledgeSource(Protocol):
    """Retrieve destination facts by free-text query."""

    async def retrieve(self, query: str, limit: int = 5) -> list[dict[str, Any]]: ...


class KnowledgeBaseAPI(APIClient):
    """HTTP client for the knowledge-retrieval service."""

    def __init__(self, base_url: str, api_key: str | None = None):
        super().__init__(
            service_name="knowledge_base", base_url=base_url, api_key=api_key
        )

    async def retrieve(self, query: str, limit: int = 5) -> list[dict[str, Any]]:
        response = await self.request(
            "POST", "/retrieve", json_data={"query": query, "limit": limit}
        )
        return response.get("passages", [])


STATIC_FACTS: dict[str, list[dict[str, Any]]] = {
    "paris": [
        {"title": "Getting around", "text": "The Metro covers the city; a Navigo Easy card loads carnets of t+ tickets.", "score": 0.92},
        {"title": "Museum pass", "text": "The Paris Museum Pass covers the Louvre, Orsay and Versailles; most museums close one day a week.", "score": 0.88},
        {"title": "Tipping", "text": "Service is included in restaurant bills; rounding up is customary.", "score": 0.74},
        {"title": "Currency", "text": "France uses the euro; cards are accepted almost everywhere.", "score": 0.7},
    ],
    "tokyo": [
        {"title": "Getting around", "text": "A Suica or Pasmo card works on every train and subway line.", "score": 0.93},
        {"title": "Cash", "text": "Many small restaurants still take cash only; 7-Eleven ATMs accept foreign cards.", "score": 0.81},
        {"title": "Etiquette", "text": "Tipping is not expected and can cause confusion.", "score": 0.72},
    ],
}


class StaticKnowledgeBase:
    """Knowledge source answering from built-in destination notes."""

    def __init__(self, facts: dict[str, list[dict[str, Any]]] | None = None):
        self.facts = facts if facts is not None else STATIC_FACTS

    async def retrieve(self, query: str, limit: int = 5) -> list[dict[str, Any]]:
        lowered = query.lower()
        for city, passages in self.facts.items():
            if city in lowered:
                ranked = sorted(passages, key=lambda p: p.get("score", 0), reverse=True)
                return [dict(p) for p in ranked[:limit]]
        return []
