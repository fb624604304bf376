"""
Recipe suggestions for a planned meal, looked up on TheMealDB.

The calendar only proxies the lookup: the first match is returned with
TheMealDB's own field names, nothing is cached or stored.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests

from .errors import NotFoundError, RecipeLookupError, ValidationError
from .settings import DEFAULT_RECIPE_API_URL, Settings

logger = logging.getLogger(__name__)

RECIPE_FIELDS = (
    "idMeal",
    "strMeal",
    "strCategory",
    "strArea",
    "strInstructions",
    "strMealThumb",
    "strSource",
    "strYoutube",
)

Recipe = Dict[str, Optional[str]]


# PUBLIC_INTERFACE
class RecipeClient(ABC):
    """External service that suggests a recipe for a meal name."""

    @abstractmethod
    def lookup(self, meal: str) -> Recipe:
        """
        Return the best match for ``meal``.

        Raises NotFoundError when nothing matches and RecipeLookupError when
        the service cannot be reached or answers with garbage.
        """


class MealDBRecipeClient(RecipeClient):
    def __init__(
        self,
        base_url: str = DEFAULT_RECIPE_API_URL,
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, meal: str) -> Recipe:
        query = (meal or "").strip()
        if not query:
            raise ValidationError("meal name required")

        try:
            r = self.session.get(f"{self.base_url}/search.php", params={"s": query}, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Recipe lookup request failed: %s", exc)
            raise RecipeLookupError("Recipe lookup failed") from exc

        if not r.ok:
            logger.warning("Recipe lookup rejected: %s %s", r.status_code, r.text[:200])
            raise RecipeLookupError(f"Recipe lookup failed: {r.status_code}")

        try:
            payload = r.json()
        except ValueError as exc:
            raise RecipeLookupError("Recipe lookup failed: response was not JSON") from exc

        # TheMealDB answers {"meals": null} when nothing matches
        meals = payload.get("meals") if isinstance(payload, dict) else None
        first = meals[0] if isinstance(meals, list) and meals else None
        if not isinstance(first, dict) or not first.get("strMeal"):
            raise NotFoundError(query, kind="Recipe")

        logger.debug("Recipe found query=%s meal=%s", query, first.get("strMeal"))
        return {key: _as_text(first.get(key)) for key in RECIPE_FIELDS}


def _as_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# PUBLIC_INTERFACE
def get_recipe_client(settings: Settings) -> RecipeClient:
    """Return the recipe client configured by RECIPE_API_URL / RECIPE_TIMEOUT_SECONDS."""
    return MealDBRecipeClient(settings.recipe_api_url, timeout=settings.recipe_timeout_seconds)
