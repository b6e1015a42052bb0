"""Static recipe catalog loading and lookup."""

import json
import logging
import os
from functools import lru_cache
from typing import Optional

from .models import Ingredient, Recipe

logger = logging.getLogger(__name__)

# Catalog directory - override to serve a freshly built catalog
CATALOG_DIR = os.environ.get(
    "CATALOG_DIR", os.path.join(os.path.dirname(__file__), "data")
)

INGREDIENTS_FILE = "ingredients.json"
RECIPES_FILE = "recipes.json"

# Reserved for ingredients created during a session
CUSTOM_ID_PREFIX = "custom-"


class CatalogError(ValueError):
    """Raised when catalog data is inconsistent."""


class Catalog:
    """
    Immutable set of ingredient definitions and recipes.

    Loaded once at startup. Recipes may reference ingredient ids that are
    not defined; those are tolerated and treated as non-essential.
    """

    def __init__(self, ingredients: list[Ingredient], recipes: list[Recipe]):
        self.ingredients = list(ingredients)
        self.recipes = list(recipes)
        self.ingredient_map: dict[str, Ingredient] = {}
        for ing in self.ingredients:
            if ing.id in self.ingredient_map:
                raise CatalogError(f"Duplicate ingredient id: {ing.id}")
            if ing.id.startswith(CUSTOM_ID_PREFIX):
                raise CatalogError(
                    f"Ingredient id '{ing.id}' uses the reserved '{CUSTOM_ID_PREFIX}' prefix"
                )
            self.ingredient_map[ing.id] = ing

        self.recipe_map: dict[str, Recipe] = {}
        for recipe in self.recipes:
            if recipe.id in self.recipe_map:
                raise CatalogError(f"Duplicate recipe id: {recipe.id}")
            self.recipe_map[recipe.id] = recipe

        self.essential_ids = frozenset(
            ing.id for ing in self.ingredients if ing.is_essential
        )

    def get_ingredient(self, ingredient_id: str) -> Optional[Ingredient]:
        return self.ingredient_map.get(ingredient_id)

    def get_recipe(self, recipe_id: str) -> Optional[Recipe]:
        return self.recipe_map.get(recipe_id)

    def display_name(self, ingredient_id: str) -> str:
        """Ingredient name, or the raw id when it is not in the catalog."""
        ing = self.ingredient_map.get(ingredient_id)
        return ing.name if ing else ingredient_id

    def unknown_ingredient_ids(self) -> dict[str, list[str]]:
        """Map of recipe id -> ingredient ids missing from the catalog."""
        unknown = {}
        for recipe in self.recipes:
            missing = [
                ri.id for ri in recipe.ingredients if ri.id not in self.ingredient_map
            ]
            if missing:
                unknown[recipe.id] = missing
        return unknown

    def recipe_categories(self) -> list[str]:
        """Distinct recipe categories in catalog order."""
        seen = []
        for recipe in self.recipes:
            if recipe.category and recipe.category not in seen:
                seen.append(recipe.category)
        return seen


def _read_json(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise CatalogError(f"{path} must contain a JSON array")
    return data


def load_catalog(directory: Optional[str] = None) -> Catalog:
    """Load ingredients.json and recipes.json from a catalog directory."""
    directory = directory or CATALOG_DIR
    ingredients = [
        Ingredient.model_validate(raw)
        for raw in _read_json(os.path.join(directory, INGREDIENTS_FILE))
    ]
    recipes = [
        Recipe.model_validate(raw)
        for raw in _read_json(os.path.join(directory, RECIPES_FILE))
    ]
    catalog = Catalog(ingredients, recipes)

    for recipe_id, missing in catalog.unknown_ingredient_ids().items():
        logger.warning(
            "Recipe %s references unknown ingredients: %s", recipe_id, ", ".join(missing)
        )
    logger.info(
        "Loaded catalog from %s: %d ingredients, %d recipes",
        directory, len(catalog.ingredients), len(catalog.recipes)
    )
    return catalog


@lru_cache(maxsize=1)
def _default_catalog() -> Catalog:
    return load_catalog()


def get_catalog() -> Catalog:
    """Dependency that provides the process-wide catalog."""
    return _default_catalog()
