"""Catalog records: ingredients, recipes and match results."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional
import enum


class IngredientCategory(str, enum.Enum):
    """Shelf an ingredient is grouped under."""
    VEGGIE = "veggie"
    MEAT = "meat"
    SEAFOOD = "seafood"
    DAIRY = "dairy"
    SEASONING = "seasoning"
    GRAIN = "grain"


class Difficulty(str, enum.Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class CatalogModel(BaseModel):
    """Base for records stored as camelCase JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Ingredient(CatalogModel):
    """
    Something a user can have in the fridge.

    Essential ingredients (salt, soy sauce, garlic...) are pantry staples
    that are assumed to be at hand and never count toward a match score.
    """
    id: str
    name: str
    category: IngredientCategory
    is_essential: bool = False
    is_popular: bool = False  # Quick-access grouping only
    is_custom: bool = False
    emoji: Optional[str] = None
    image_url: Optional[str] = None


class RecipeIngredient(CatalogModel):
    """An ingredient line of a recipe, referencing Ingredient.id."""
    id: str
    amount: str = "적당량"
    required: bool = True


class Recipe(CatalogModel):
    id: str
    title: str
    description: str = ""
    cooking_time_minutes: int = 30
    difficulty: Difficulty = Difficulty.MEDIUM
    image_url: str = ""
    ingredients: list[RecipeIngredient] = []
    instructions: Optional[list[str]] = None
    category: Optional[str] = None
    calories: Optional[float] = None
    serving_size: Optional[int] = None
    carbohydrates: Optional[float] = None
    fat: Optional[float] = None
    protein: Optional[float] = None

    def ingredient_ids(self) -> list[str]:
        return [ri.id for ri in self.ingredients]

    def __repr__(self):
        return f"<Recipe(id='{self.id}', title='{self.title}')>"


class MatchResult(CatalogModel):
    """How well a recipe fits the ingredients a user owns."""
    recipe: Recipe
    match_percentage: float
    missing_count: int
    owned_ingredient_ids: list[str]
    missing_ingredient_ids: list[str]
