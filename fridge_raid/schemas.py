"""Pydantic schemas for API request/response validation."""

from pydantic import BaseModel, Field
from typing import Optional

from .matcher import MAX_RESULT_LIMIT
from .models import CatalogModel, Ingredient, IngredientCategory, MatchResult, Recipe


# --- Catalog Schemas ---

class IngredientListResponse(CatalogModel):
    count: int
    ingredients: list[Ingredient]


class RecipeListResponse(CatalogModel):
    count: int
    recipes: list[Recipe]


class CategoryOption(BaseModel):
    value: str
    label: str


# --- Matching Schemas ---

class MatchRequest(CatalogModel):
    """Stateless match request."""
    owned_ids: list[str] = []
    include_essentials: bool = True
    query: Optional[str] = None
    category: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_RESULT_LIMIT)


class MatchListResponse(CatalogModel):
    count: int
    results: list[MatchResult]


# --- Session Schemas ---

class SessionCreate(CatalogModel):
    include_essentials: bool = True


class SessionResponse(CatalogModel):
    id: str
    selected_ids: list[str]
    include_essentials: bool
    custom_ingredients: list[Ingredient]
    last_ai_recipe: Optional[Recipe] = None


class EssentialsUpdate(CatalogModel):
    include_essentials: bool


class ToggleResponse(CatalogModel):
    ingredient_id: str
    selected: bool


class CustomIngredientCreate(CatalogModel):
    name: str = Field(min_length=1, max_length=50)
    category: IngredientCategory = IngredientCategory.VEGGIE


# --- AI Schemas ---

class AIRecipeRequest(CatalogModel):
    """Request body for a stateless AI recipe suggestion."""
    ingredients: list[str] = Field(min_length=1)


class AIRecipeResponse(CatalogModel):
    recipe: Recipe
    ingredients_used: list[str]
    reference_recipe_ids: list[str]
    gemini_used: bool
