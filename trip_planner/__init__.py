"""
Multi-turn trip planning orchestrator.

This package coordinates specialist agents that research flights, hotels,
activities, destination facts, budget and itinerary, and merges their
outputs into a single plan that persists across stateless requests.
"""

__version__ = "0.1.0"
