"""
Pytest configuration and fixtures for testing.

Provides a small fixed catalog, a fresh session store and a test client
wired to both for each test.
"""

import pytest
from fastapi.testclient import TestClient

from fridge_raid import gemini_service
from fridge_raid.catalog import Catalog, get_catalog
from fridge_raid.main import app
from fridge_raid.models import Ingredient, Recipe
from fridge_raid.session import SessionStore, get_session_store


INGREDIENTS = [
    {"id": "kimchi", "name": "김치", "category": "veggie", "isPopular": True},
    {"id": "pork_belly", "name": "삼겹살", "category": "meat", "isPopular": True},
    {"id": "tofu", "name": "두부", "category": "veggie"},
    {"id": "egg", "name": "계란", "category": "dairy", "isPopular": True},
    {"id": "rice", "name": "밥", "category": "grain"},
    {"id": "garlic", "name": "다진마늘", "category": "seasoning", "isEssential": True},
    {"id": "salt", "name": "소금", "category": "seasoning", "isEssential": True},
    {"id": "soy_sauce", "name": "간장", "category": "seasoning", "isEssential": True},
    {"id": "sugar", "name": "설탕", "category": "seasoning", "isEssential": True},
]


def _recipe(recipe_id, title, ingredient_ids, category=None, **extra):
    return {
        "id": recipe_id,
        "title": title,
        "description": f"{title} 설명",
        "cookingTimeMinutes": 20,
        "difficulty": "Easy",
        "imageUrl": f"/images/{recipe_id}.jpg",
        "ingredients": [{"id": i, "amount": "적당량", "required": True} for i in ingredient_ids],
        "instructions": [f"{title} 만들기"],
        "category": category,
        **extra,
    }


RECIPES = [
    _recipe("kimchi_stew", "김치찌개", ["kimchi", "pork_belly", "garlic"], "Soup/Stew", calories=380),
    _recipe("kimchi_fried_rice", "김치볶음밥", ["kimchi", "rice", "egg", "soy_sauce"], "Rice/Porridge"),
    _recipe("pork_bbq", "삼겹살구이", ["pork_belly", "salt"], "Main Dish (Meat)"),
    _recipe("tofu_jorim", "두부조림", ["tofu", "soy_sauce", "sugar"], "Side Dish"),
    _recipe("sauce", "양념장", ["soy_sauce", "sugar", "garlic"], "Side Dish"),
    _recipe("empty", "빈 레시피", []),
    _recipe("mystery", "수상한 요리", ["dragon_fruit", "kimchi"], "Main Dish"),
    _recipe("gh_bibim", "비빔국수", ["김치", "소면"], "Main Dish"),
]


def build_catalog() -> Catalog:
    return Catalog(
        [Ingredient.model_validate(i) for i in INGREDIENTS],
        [Recipe.model_validate(r) for r in RECIPES],
    )


@pytest.fixture
def catalog():
    """The small test catalog."""
    return build_catalog()


@pytest.fixture(autouse=True)
def no_gemini_key(monkeypatch):
    """Never talk to Gemini unless a test opts in."""
    monkeypatch.setattr(gemini_service, "GEMINI_API_KEY", None)


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def client(catalog, session_store):
    """Create a test client with the catalog and session store overridden."""
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_session_store] = lambda: session_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    """Create a session through the API."""
    response = client.post("/api/sessions", json={})
    return response.json()["id"]


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stand-in for genai.GenerativeModel that records prompts."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return FakeResponse(self.text)


@pytest.fixture
def fake_gemini(monkeypatch):
    """Configure a fake Gemini key; returns a function that installs a fake model."""
    monkeypatch.setattr(gemini_service, "GEMINI_API_KEY", "test-key")

    def install(text=None, error=None):
        model = FakeModel(text=text, error=error)
        monkeypatch.setattr(gemini_service, "get_model", lambda: model)
        return model

    return install
