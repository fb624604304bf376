from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Request

from ..recipes import RecipeClient
from ..schemas import RecipeOut

router = APIRouter(
    prefix="/api/recipe",
    tags=["recipes"],
)


def get_recipe_client(request: Request) -> RecipeClient:
    """
    Dependency returning the recipe client built once at application startup.
    """
    return request.app.state.recipes


# PUBLIC_INTERFACE
@router.get(
    "/{meal}",
    response_model=RecipeOut,
    summary="Suggest Recipe",
    description="Look up a recipe for a meal name (usually a chore title) on TheMealDB.",
    responses={
        200: {"description": "Best matching recipe"},
        404: {"description": "No recipe matches the meal name"},
        502: {"description": "Recipe service unavailable"},
    },
)
def suggest_recipe(
    meal: str = Path(..., description="Meal name to search for"),
    recipes: RecipeClient = Depends(get_recipe_client),
) -> RecipeOut:
    """
    Return the first recipe whose name matches ``meal``.
    """
    return RecipeOut(**recipes.lookup(meal))
