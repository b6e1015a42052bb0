"""
Recipe matching and ranking.

Given the ingredients a user owns, scores every catalog recipe by the share
of its non-essential ingredients the user has. Pantry staples never count
toward the score, so a recipe is not "75% ready" just because the user has
salt, sugar and soy sauce.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .models import Ingredient, MatchResult, Recipe

DEFAULT_RESULT_LIMIT = 8
SEARCH_RESULT_LIMIT = 50
MAX_RESULT_LIMIT = 200

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class RecipeFilters:
    """Free-text and category filters applied before scoring."""
    query: Optional[str] = None
    category: Optional[str] = None

    @property
    def text_query(self) -> Optional[str]:
        if self.query is None:
            return None
        stripped = self.query.strip()
        return stripped or None

    @property
    def category_filter(self) -> Optional[str]:
        if not self.category or self.category.lower() == ALL_CATEGORIES:
            return None
        return self.category

    @property
    def is_searching(self) -> bool:
        return self.text_query is not None

    @property
    def is_filtered(self) -> bool:
        return self.is_searching or self.category_filter is not None


def effective_owned_ids(
    owned_ids: Iterable[str],
    include_essentials: bool,
    ingredient_lookup: Mapping[str, Ingredient],
) -> set[str]:
    """Owned ids plus, optionally, every essential ingredient."""
    effective = set(owned_ids)
    if include_essentials:
        effective.update(
            ing_id for ing_id, ing in ingredient_lookup.items() if ing.is_essential
        )
    return effective


def matches_filters(recipe: Recipe, filters: RecipeFilters) -> bool:
    query = filters.text_query
    if query is not None:
        needle = query.lower()
        in_title = needle in recipe.title.lower()
        in_ingredients = any(needle in ri.id.lower() for ri in recipe.ingredients)
        if not (in_title or in_ingredients):
            return False

    category = filters.category_filter
    if category is not None:
        if not recipe.category:
            return False
        # "Main Dish" also covers "Main Dish (Meat)"
        if not recipe.category.startswith(category):
            return False

    return True


def _is_essential(ingredient_id: str, ingredient_lookup: Mapping[str, Ingredient]) -> bool:
    ing = ingredient_lookup.get(ingredient_id)
    return bool(ing and ing.is_essential)


def score_recipe(
    recipe: Recipe,
    effective_owned: set[str],
    ingredient_lookup: Mapping[str, Ingredient],
) -> tuple[MatchResult, int, int]:
    """
    Score a single recipe without applying any gate.

    Returns the match result together with the non-essential total and the
    non-essential match count so callers can apply the relevance gate.
    """
    owned = []
    missing = []
    non_essential_total = 0
    non_essential_match = 0

    for ri in recipe.ingredients:
        essential = _is_essential(ri.id, ingredient_lookup)
        if not essential:
            non_essential_total += 1
        if ri.id in effective_owned:
            owned.append(ri.id)
            if not essential:
                non_essential_match += 1
        else:
            missing.append(ri.id)

    total = len(recipe.ingredients)
    if non_essential_total > 0:
        percentage = non_essential_match / non_essential_total * 100
    elif total > 0:
        # Recipe made only of pantry staples
        percentage = len(owned) / total * 100
    else:
        percentage = 0.0

    result = MatchResult(
        recipe=recipe,
        match_percentage=percentage,
        missing_count=len(missing),
        owned_ingredient_ids=owned,
        missing_ingredient_ids=missing,
    )
    return result, non_essential_total, non_essential_match


def rank(
    owned_ids: Iterable[str],
    include_essentials: bool,
    catalog: Iterable[Recipe],
    ingredient_lookup: Mapping[str, Ingredient],
    filters: Optional[RecipeFilters] = None,
    limit: Optional[int] = None,
) -> list[MatchResult]:
    """
    Rank catalog recipes against the ingredients a user owns.

    Args:
        owned_ids: Ingredient ids the user selected
        include_essentials: Treat every essential ingredient as owned
        catalog: Recipes to consider
        ingredient_lookup: Ingredient id -> definition (static and custom)
        filters: Optional text query and category filter
        limit: Maximum results; defaults to SEARCH_RESULT_LIMIT when a
            filter is active and DEFAULT_RESULT_LIMIT otherwise

    Returns:
        Match results, best first
    """
    filters = filters or RecipeFilters()
    effective = effective_owned_ids(owned_ids, include_essentials, ingredient_lookup)
    searching = filters.is_searching

    results = []
    for recipe in catalog:
        if not matches_filters(recipe, filters):
            continue

        result, non_essential_total, non_essential_match = score_recipe(
            recipe, effective, ingredient_lookup
        )

        # Owning only pantry staples does not make a recipe relevant,
        # but an explicit search still surfaces it by name.
        if non_essential_total > 0 and non_essential_match == 0 and not searching:
            continue

        if result.match_percentage > 0 or searching:
            results.append(result)

    query = filters.text_query

    def sort_key(result: MatchResult):
        title_hit = bool(query) and query in result.recipe.title
        return (not title_hit, -result.match_percentage, result.missing_count)

    results.sort(key=sort_key)

    if limit is None:
        limit = SEARCH_RESULT_LIMIT if filters.is_filtered else DEFAULT_RESULT_LIMIT
    return results[:limit]
