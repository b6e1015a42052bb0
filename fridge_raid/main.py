"""
Fridge Raid API

Recommends Korean recipes from the ingredients you already have, with an
optional Gemini-powered AI chef for when nothing in the catalog fits.
"""

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.concurrency import run_in_threadpool
from typing import Optional
import logging

from .app_logging import configure_logging
from .catalog import Catalog, get_catalog
from .matcher import MAX_RESULT_LIMIT, RecipeFilters, rank
from .models import IngredientCategory
from .session import Session, SessionStore, get_session_store
from . import schemas
from . import gemini_service

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Fridge Raid",
    description="Find Korean recipes you can cook with what is already in your fridge",
    version="1.0.0"
)

# Values match Recipe.category; filtering is by prefix so "Main Dish" includes "Main Dish (Meat)"
RECIPE_CATEGORY_OPTIONS = [
    ("All", "전체 보기"),
    ("Main Dish (Meat)", "🥩 메인요리 (고기)"),
    ("Main Dish", "🍳 메인요리 (기타)"),
    ("Soup/Stew", "🍲 국/찌개/전골"),
    ("Rice/Porridge", "🍚 밥/죽"),
    ("Side Dish", "🥗 밑반찬 (나물/볶음)"),
    ("Side Dish (Pickled)", "🥬 장아찌/젓갈"),
    ("Kimchi", "🌶️ 김치/깍두기"),
    ("Dessert", "🍰 디저트/간식"),
]


def _get_session(store: SessionStore, session_id: str) -> Session:
    try:
        return store.get(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")


def _session_response(session: Session) -> schemas.SessionResponse:
    return schemas.SessionResponse(
        id=session.id,
        selected_ids=session.selected_ids,
        include_essentials=session.include_essentials,
        custom_ingredients=list(session.custom),
        last_ai_recipe=session.last_ai_recipe,
    )


async def _generate_recipe(names: list[str], catalog: Catalog) -> schemas.AIRecipeResponse:
    """Run the AI chef off the event loop and map its failures to HTTP errors."""
    try:
        recipe = await run_in_threadpool(gemini_service.suggest_recipe, names, catalog.recipes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except gemini_service.RecipeGenerationError as e:
        logger.error("AI recipe generation failed: %s", e)
        raise HTTPException(status_code=502, detail=f"AI recipe generation failed: {e}")

    references = gemini_service.find_reference_recipes(names, catalog.recipes)
    return schemas.AIRecipeResponse(
        recipe=recipe,
        ingredients_used=names,
        reference_recipe_ids=[r.id for r in references],
        gemini_used=gemini_service.is_configured(),
    )


# --- Health Check ---

@app.get("/api/health")
async def health_check(catalog: Catalog = Depends(get_catalog)):
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "gemini_configured": gemini_service.is_configured(),
        "recipe_count": len(catalog.recipes),
        "ingredient_count": len(catalog.ingredients)
    }


# --- Catalog Endpoints ---

@app.get("/api/ingredients", response_model=schemas.IngredientListResponse)
async def list_ingredients(
    category: Optional[IngredientCategory] = None,
    popular_only: bool = False,
    catalog: Catalog = Depends(get_catalog)
):
    """List catalog ingredients, optionally filtered by category or popularity."""
    ingredients = catalog.ingredients
    if category:
        ingredients = [i for i in ingredients if i.category == category]
    if popular_only:
        ingredients = [i for i in ingredients if i.is_popular]
    return schemas.IngredientListResponse(count=len(ingredients), ingredients=ingredients)


@app.get("/api/recipes", response_model=schemas.RecipeListResponse)
async def list_recipes(
    category: Optional[str] = None,
    catalog: Catalog = Depends(get_catalog)
):
    """List catalog recipes, optionally restricted to a category (prefix match)."""
    filters = RecipeFilters(category=category)
    category_filter = filters.category_filter
    recipes = [
        r for r in catalog.recipes
        if category_filter is None or (r.category or "").startswith(category_filter)
    ]
    return schemas.RecipeListResponse(count=len(recipes), recipes=recipes)


@app.get("/api/recipes/{recipe_id}", response_model=schemas.Recipe)
async def get_recipe(recipe_id: str, catalog: Catalog = Depends(get_catalog)):
    """Get a specific recipe by ID."""
    recipe = catalog.get_recipe(recipe_id)
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe


@app.get("/api/recipe-categories", response_model=list[schemas.CategoryOption])
async def list_recipe_categories():
    """Options for the recipe category filter."""
    return [
        schemas.CategoryOption(value=value, label=label)
        for value, label in RECIPE_CATEGORY_OPTIONS
    ]


# --- Matching ---

@app.post("/api/match", response_model=schemas.MatchListResponse)
async def match_recipes(
    request: schemas.MatchRequest,
    catalog: Catalog = Depends(get_catalog)
):
    """
    Rank recipes for a set of owned ingredients.

    Stateless: custom ingredients are only known inside a session.
    """
    results = rank(
        request.owned_ids,
        request.include_essentials,
        catalog.recipes,
        catalog.ingredient_map,
        RecipeFilters(query=request.query, category=request.category),
        request.limit,
    )
    return schemas.MatchListResponse(count=len(results), results=results)


# --- Session Endpoints ---

@app.post("/api/sessions", response_model=schemas.SessionResponse)
async def create_session(
    request: Optional[schemas.SessionCreate] = None,
    store: SessionStore = Depends(get_session_store)
):
    """Start a new selection session."""
    include_essentials = request.include_essentials if request else True
    session = store.create(include_essentials=include_essentials)
    return _session_response(session)


@app.get("/api/sessions/{session_id}", response_model=schemas.SessionResponse)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _session_response(_get_session(store, session_id))


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Discard a session and everything selected in it."""
    _get_session(store, session_id)
    store.delete(session_id)
    return {"deleted": True, "id": session_id}


@app.put("/api/sessions/{session_id}/essentials", response_model=schemas.SessionResponse)
async def set_essentials(
    session_id: str,
    update: schemas.EssentialsUpdate,
    store: SessionStore = Depends(get_session_store)
):
    """Turn the "I have basic seasonings" toggle on or off."""
    session = _get_session(store, session_id)
    session.include_essentials = update.include_essentials
    return _session_response(session)


@app.post(
    "/api/sessions/{session_id}/ingredients/{ingredient_id}/toggle",
    response_model=schemas.ToggleResponse
)
async def toggle_ingredient(
    session_id: str,
    ingredient_id: str,
    store: SessionStore = Depends(get_session_store),
    catalog: Catalog = Depends(get_catalog)
):
    """
    Select or deselect an ingredient.

    Deselecting a custom ingredient removes it from the session entirely.
    """
    session = _get_session(store, session_id)
    try:
        selected = session.toggle(ingredient_id, catalog)
    except KeyError:
        raise HTTPException(status_code=404, detail="Ingredient not found")
    return schemas.ToggleResponse(ingredient_id=ingredient_id, selected=selected)


@app.post("/api/sessions/{session_id}/custom-ingredients", response_model=schemas.Ingredient)
async def add_custom_ingredient(
    session_id: str,
    request: schemas.CustomIngredientCreate,
    store: SessionStore = Depends(get_session_store)
):
    """Add an ingredient that is not in the catalog; it is selected right away."""
    session = _get_session(store, session_id)
    try:
        return session.add_custom_ingredient(request.name, request.category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/sessions/{session_id}/custom-ingredients/{ingredient_id}")
async def remove_custom_ingredient(
    session_id: str,
    ingredient_id: str,
    store: SessionStore = Depends(get_session_store)
):
    session = _get_session(store, session_id)
    try:
        session.remove_custom_ingredient(ingredient_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Custom ingredient not found")
    return {"deleted": True, "id": ingredient_id}


@app.post("/api/sessions/{session_id}/reset", response_model=schemas.SessionResponse)
async def reset_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Clear the selection and forget custom ingredients."""
    session = _get_session(store, session_id)
    session.reset()
    return _session_response(session)


@app.get("/api/sessions/{session_id}/matches", response_model=schemas.MatchListResponse)
async def session_matches(
    session_id: str,
    q: Optional[str] = None,
    category: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_RESULT_LIMIT),
    store: SessionStore = Depends(get_session_store),
    catalog: Catalog = Depends(get_catalog)
):
    """Ranked recipes for the session's current selection."""
    session = _get_session(store, session_id)
    results = session.matches(catalog, RecipeFilters(query=q, category=category), limit)
    return schemas.MatchListResponse(count=len(results), results=results)


# --- AI Chef Endpoints ---

@app.post("/api/sessions/{session_id}/ai-recipe", response_model=schemas.AIRecipeResponse)
async def session_ai_recipe(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    catalog: Catalog = Depends(get_catalog)
):
    """
    Ask the AI chef for a recipe using the session's selected ingredients.

    Uses Gemini when GEMINI_API_KEY is set, the recipe database otherwise.
    A newer request for the same session supersedes this one.
    """
    session = _get_session(store, session_id)
    names = session.selected_names(catalog)
    if not names:
        raise HTTPException(status_code=400, detail="Select at least one ingredient first.")

    token = session.begin_ai_request()
    result = await _generate_recipe(names, catalog)
    if not session.complete_ai_request(token, result.recipe):
        raise HTTPException(status_code=409, detail="Superseded by a newer AI request")
    return result


@app.post("/api/ai/recipe", response_model=schemas.AIRecipeResponse)
async def ai_recipe(
    request: schemas.AIRecipeRequest,
    catalog: Catalog = Depends(get_catalog)
):
    """Ask the AI chef for a recipe from a list of ingredient names."""
    names = [n.strip() for n in request.ingredients if n.strip()]
    if not names:
        raise HTTPException(status_code=400, detail="Provide at least one ingredient name.")
    return await _generate_recipe(names, catalog)
