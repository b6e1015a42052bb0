"""
Per-user session state.

A session owns the ingredient selection, the essentials toggle, the custom
ingredients typed in by the user and the last AI-generated recipe. Nothing
here is persisted; sessions live as long as the process.
"""

import itertools
import logging
import uuid
from typing import Iterator, Optional

from .catalog import CUSTOM_ID_PREFIX, Catalog
from .matcher import RecipeFilters, rank
from .models import Ingredient, IngredientCategory, MatchResult, Recipe

logger = logging.getLogger(__name__)


class CustomIngredientRegistry:
    """
    Ingredients the user entered by hand.

    Ids are `custom-<n>` with a counter that never repeats within the
    registry, so they cannot collide with catalog ids or with each other.
    """

    def __init__(self):
        self._items: dict[str, Ingredient] = {}
        self._counter = itertools.count(1)

    def add(self, name: str, category: IngredientCategory) -> Ingredient:
        name = name.strip()
        if not name:
            raise ValueError("Ingredient name must not be empty")
        ingredient = Ingredient(
            id=f"{CUSTOM_ID_PREFIX}{next(self._counter)}",
            name=name,
            category=IngredientCategory(category),
            emoji="✨",
            is_custom=True,
        )
        self._items[ingredient.id] = ingredient
        return ingredient

    def remove(self, ingredient_id: str) -> Optional[Ingredient]:
        return self._items.pop(ingredient_id, None)

    def get(self, ingredient_id: str) -> Optional[Ingredient]:
        return self._items.get(ingredient_id)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, ingredient_id) -> bool:
        return ingredient_id in self._items

    def __iter__(self) -> Iterator[Ingredient]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


class Session:
    """Selection state for one user."""

    def __init__(self, session_id: Optional[str] = None, include_essentials: bool = True):
        self.id = session_id or uuid.uuid4().hex
        # Insertion-ordered; the AI chef gets names in selection order
        self._selected: dict[str, None] = {}
        self.include_essentials = include_essentials
        self.custom = CustomIngredientRegistry()
        self.last_ai_recipe: Optional[Recipe] = None
        self._ai_token = 0

    # --- Selection ---

    @property
    def selected_ids(self) -> list[str]:
        """Selected ingredient ids, oldest selection first."""
        return list(self._selected)

    def add_custom_ingredient(self, name: str, category: IngredientCategory) -> Ingredient:
        """Register a custom ingredient and select it right away."""
        ingredient = self.custom.add(name, category)
        self._selected[ingredient.id] = None
        return ingredient

    def remove_custom_ingredient(self, ingredient_id: str) -> Ingredient:
        ingredient = self.custom.remove(ingredient_id)
        if ingredient is None:
            raise KeyError(ingredient_id)
        self._selected.pop(ingredient_id, None)
        return ingredient

    def toggle(self, ingredient_id: str, catalog: Catalog) -> bool:
        """
        Flip selection of an ingredient.

        Deselecting a custom ingredient forgets it entirely.

        Returns:
            True if the ingredient is now selected
        """
        if ingredient_id in self._selected:
            self.deselect(ingredient_id)
            return False
        if catalog.get_ingredient(ingredient_id) is None and ingredient_id not in self.custom:
            raise KeyError(ingredient_id)
        self._selected[ingredient_id] = None
        return True

    def deselect(self, ingredient_id: str) -> None:
        self._selected.pop(ingredient_id, None)
        if ingredient_id in self.custom:
            self.custom.remove(ingredient_id)

    def reset(self) -> None:
        self._selected.clear()
        self.custom.clear()

    # --- Derived views ---

    def ingredient_lookup(self, catalog: Catalog) -> dict[str, Ingredient]:
        lookup = dict(catalog.ingredient_map)
        for ing in self.custom:
            lookup[ing.id] = ing
        return lookup

    def selected_names(self, catalog: Catalog) -> list[str]:
        """Display names of the selection, in the order it was made."""
        lookup = self.ingredient_lookup(catalog)
        names = []
        for ing_id in self._selected:
            ing = lookup.get(ing_id)
            names.append(ing.name if ing else ing_id)
        return names

    def matches(
        self,
        catalog: Catalog,
        filters: Optional[RecipeFilters] = None,
        limit: Optional[int] = None,
    ) -> list[MatchResult]:
        return rank(
            self.selected_ids,
            self.include_essentials,
            catalog.recipes,
            self.ingredient_lookup(catalog),
            filters,
            limit,
        )

    # --- AI requests ---

    def begin_ai_request(self) -> int:
        """Start an AI request; any earlier in-flight request is superseded."""
        self._ai_token += 1
        return self._ai_token

    def is_current_ai_request(self, token: int) -> bool:
        return token == self._ai_token

    def complete_ai_request(self, token: int, recipe: Recipe) -> bool:
        """Store an AI result unless a newer request was started meanwhile."""
        if not self.is_current_ai_request(token):
            logger.info("Discarding superseded AI result for session %s", self.id)
            return False
        self.last_ai_recipe = recipe
        return True


class SessionStore:
    """In-memory sessions keyed by id."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def create(self, include_essentials: bool = True) -> Session:
        session = Session(include_essentials=include_essentials)
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Session:
        return self._sessions[session_id]

    def delete(self, session_id: str) -> None:
        del self._sessions[session_id]

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


session_store = SessionStore()


def get_session_store() -> SessionStore:
    """Dependency that provides the process-wide session store."""
    return session_store
