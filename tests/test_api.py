"""
Unit tests for the REST API endpoints.

Tests all API endpoints of the fridge raid recipe recommender.
"""

import json


class TestHealthCheck:
    """Tests for the health check endpoint."""

    def test_health_check(self, client):
        """Test that health check returns healthy status."""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["gemini_configured"] is False
        assert data["recipe_count"] == 8
        assert data["ingredient_count"] == 9


class TestIngredients:
    """Tests for listing catalog ingredients."""

    def test_list_ingredients(self, client):
        """Test listing all ingredients with camelCase fields."""
        response = client.get("/api/ingredients")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 9
        garlic = next(i for i in data["ingredients"] if i["id"] == "garlic")
        assert garlic["isEssential"] is True
        assert garlic["isCustom"] is False

    def test_filter_by_category(self, client):
        """Test filtering ingredients by shelf category."""
        response = client.get("/api/ingredients?category=seasoning")

        assert response.status_code == 200
        ids = {i["id"] for i in response.json()["ingredients"]}
        assert ids == {"garlic", "salt", "soy_sauce", "sugar"}

    def test_popular_only(self, client):
        """Test the quick-access popular grouping."""
        response = client.get("/api/ingredients?popular_only=true")

        ids = [i["id"] for i in response.json()["ingredients"]]
        assert ids == ["kimchi", "pork_belly", "egg"]

    def test_invalid_category(self, client):
        """Test that an unknown category is rejected."""
        response = client.get("/api/ingredients?category=candy")

        assert response.status_code == 422


class TestRecipes:
    """Tests for browsing catalog recipes."""

    def test_list_recipes(self, client):
        """Test listing every recipe."""
        response = client.get("/api/recipes")

        assert response.status_code == 200
        assert response.json()["count"] == 8

    def test_filter_by_category_prefix(self, client):
        """Test that "Main Dish" includes "Main Dish (Meat)"."""
        response = client.get("/api/recipes", params={"category": "Main Dish"})

        ids = [r["id"] for r in response.json()["recipes"]]
        assert ids == ["pork_bbq", "mystery", "gh_bibim"]

    def test_category_all(self, client):
        """Test that "All" does not filter."""
        response = client.get("/api/recipes", params={"category": "All"})

        assert response.json()["count"] == 8

    def test_get_recipe(self, client):
        """Test getting a specific recipe."""
        response = client.get("/api/recipes/kimchi_stew")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "김치찌개"
        assert data["cookingTimeMinutes"] == 20
        assert data["imageUrl"] == "/images/kimchi_stew.jpg"
        assert data["ingredients"][0] == {"id": "kimchi", "amount": "적당량", "required": True}

    def test_get_nonexistent_recipe(self, client):
        """Test getting a recipe that doesn't exist."""
        response = client.get("/api/recipes/nope")

        assert response.status_code == 404

    def test_recipe_categories(self, client):
        """Test the category filter options."""
        response = client.get("/api/recipe-categories")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["value"] == "All"
        assert {"Main Dish", "Main Dish (Meat)", "Soup/Stew"} <= {c["value"] for c in data}


class TestMatch:
    """Tests for stateless matching."""

    def test_match(self, client):
        """Test ranking recipes for owned ingredients."""
        response = client.post("/api/match", json={"ownedIds": ["kimchi"]})

        assert response.status_code == 200
        data = response.json()
        assert [r["recipe"]["id"] for r in data["results"]] == [
            "sauce", "kimchi_stew", "mystery", "kimchi_fried_rice"
        ]
        stew = data["results"][1]
        assert stew["matchPercentage"] == 50
        assert stew["missingCount"] == 1
        assert stew["missingIngredientIds"] == ["pork_belly"]
        assert stew["ownedIngredientIds"] == ["kimchi", "garlic"]

    def test_match_snake_case_body(self, client):
        """Test that field names are accepted as well as aliases."""
        response = client.post("/api/match", json={"owned_ids": ["kimchi"], "include_essentials": False})

        assert response.status_code == 200
        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert "sauce" not in ids

    def test_match_search(self, client):
        """Test that a search surfaces zero-score recipes."""
        response = client.post("/api/match", json={"ownedIds": [], "query": "김치찌개"})

        results = response.json()["results"]
        assert [r["recipe"]["id"] for r in results] == ["kimchi_stew"]
        assert results[0]["matchPercentage"] == 0

    def test_match_category(self, client):
        """Test category filtering during matching."""
        response = client.post(
            "/api/match",
            json={"ownedIds": ["pork_belly", "kimchi"], "category": "Main Dish"}
        )

        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert ids == ["pork_bbq", "mystery"]

    def test_match_limit(self, client):
        """Test limiting the number of results."""
        response = client.post("/api/match", json={"ownedIds": ["kimchi"], "limit": 1})

        assert response.json()["count"] == 1

    def test_match_invalid_limit(self, client):
        """Test that limits outside 1..200 are rejected."""
        for limit in (0, 201):
            response = client.post("/api/match", json={"ownedIds": ["kimchi"], "limit": limit})

            assert response.status_code == 422


class TestSessions:
    """Tests for session lifecycle."""

    def test_create_session(self, client):
        """Test creating a session with defaults."""
        response = client.post("/api/sessions", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["id"]
        assert data["selectedIds"] == []
        assert data["includeEssentials"] is True
        assert data["customIngredients"] == []
        assert data["lastAiRecipe"] is None

    def test_create_session_without_body(self, client):
        """Test creating a session with no request body."""
        response = client.post("/api/sessions")

        assert response.status_code == 200
        assert response.json()["includeEssentials"] is True

    def test_create_session_without_essentials(self, client):
        """Test starting with the essentials toggle off."""
        response = client.post("/api/sessions", json={"includeEssentials": False})

        assert response.json()["includeEssentials"] is False

    def test_get_session(self, client, session_id):
        """Test getting a session by id."""
        response = client.get(f"/api/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json()["id"] == session_id

    def test_get_nonexistent_session(self, client):
        """Test getting a session that doesn't exist."""
        response = client.get("/api/sessions/nope")

        assert response.status_code == 404

    def test_delete_session(self, client, session_id):
        """Test deleting a session."""
        response = client.delete(f"/api/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json() == {"deleted": True, "id": session_id}
        assert client.get(f"/api/sessions/{session_id}").status_code == 404

    def test_delete_nonexistent_session(self, client):
        """Test deleting a session that doesn't exist."""
        response = client.delete("/api/sessions/nope")

        assert response.status_code == 404

    def test_set_essentials(self, client, session_id):
        """Test turning the essentials toggle off."""
        response = client.put(
            f"/api/sessions/{session_id}/essentials",
            json={"includeEssentials": False}
        )

        assert response.status_code == 200
        assert response.json()["includeEssentials"] is False


class TestSessionSelection:
    """Tests for selecting ingredients within a session."""

    def test_toggle_ingredient(self, client, session_id):
        """Test selecting then deselecting an ingredient."""
        url = f"/api/sessions/{session_id}/ingredients/kimchi/toggle"

        response = client.post(url)
        assert response.status_code == 200
        assert response.json() == {"ingredientId": "kimchi", "selected": True}
        assert client.get(f"/api/sessions/{session_id}").json()["selectedIds"] == ["kimchi"]

        response = client.post(url)
        assert response.json()["selected"] is False
        assert client.get(f"/api/sessions/{session_id}").json()["selectedIds"] == []

    def test_toggle_unknown_ingredient(self, client, session_id):
        """Test that unknown ingredients cannot be selected."""
        response = client.post(f"/api/sessions/{session_id}/ingredients/dragon_fruit/toggle")

        assert response.status_code == 404

    def test_toggle_in_unknown_session(self, client):
        """Test toggling in a session that doesn't exist."""
        response = client.post("/api/sessions/nope/ingredients/kimchi/toggle")

        assert response.status_code == 404

    def test_add_custom_ingredient(self, client, session_id):
        """Test adding a custom ingredient; it is selected right away."""
        response = client.post(
            f"/api/sessions/{session_id}/custom-ingredients",
            json={"name": "트러플 오일", "category": "seasoning"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "custom-1"
        assert data["name"] == "트러플 오일"
        assert data["isCustom"] is True
        assert data["isEssential"] is False
        assert data["emoji"] == "✨"

        session = client.get(f"/api/sessions/{session_id}").json()
        assert session["selectedIds"] == ["custom-1"]
        assert session["customIngredients"][0]["name"] == "트러플 오일"

    def test_add_custom_ingredient_default_category(self, client, session_id):
        """Test that the category defaults to veggie."""
        response = client.post(
            f"/api/sessions/{session_id}/custom-ingredients",
            json={"name": "고수"}
        )

        assert response.json()["category"] == "veggie"

    def test_add_blank_custom_ingredient(self, client, session_id):
        """Test that whitespace-only names are rejected."""
        response = client.post(
            f"/api/sessions/{session_id}/custom-ingredients",
            json={"name": "   "}
        )

        assert response.status_code == 400

    def test_add_empty_custom_ingredient(self, client, session_id):
        """Test that empty names fail validation."""
        response = client.post(
            f"/api/sessions/{session_id}/custom-ingredients",
            json={"name": ""}
        )

        assert response.status_code == 422

    def test_deselecting_custom_removes_it(self, client, session_id):
        """Test that toggling a custom ingredient off forgets it."""
        client.post(f"/api/sessions/{session_id}/custom-ingredients", json={"name": "고수"})

        response = client.post(f"/api/sessions/{session_id}/ingredients/custom-1/toggle")

        assert response.json()["selected"] is False
        session = client.get(f"/api/sessions/{session_id}").json()
        assert session["customIngredients"] == []
        assert client.post(
            f"/api/sessions/{session_id}/ingredients/custom-1/toggle"
        ).status_code == 404

    def test_remove_custom_ingredient(self, client, session_id):
        """Test removing a custom ingredient."""
        client.post(f"/api/sessions/{session_id}/custom-ingredients", json={"name": "고수"})

        response = client.delete(f"/api/sessions/{session_id}/custom-ingredients/custom-1")

        assert response.status_code == 200
        assert response.json() == {"deleted": True, "id": "custom-1"}
        assert client.get(f"/api/sessions/{session_id}").json()["selectedIds"] == []

    def test_remove_nonexistent_custom_ingredient(self, client, session_id):
        """Test removing a custom ingredient that doesn't exist."""
        response = client.delete(f"/api/sessions/{session_id}/custom-ingredients/custom-9")

        assert response.status_code == 404

    def test_reset(self, client, session_id):
        """Test clearing the selection and custom ingredients."""
        client.post(f"/api/sessions/{session_id}/ingredients/kimchi/toggle")
        client.post(f"/api/sessions/{session_id}/custom-ingredients", json={"name": "고수"})

        response = client.post(f"/api/sessions/{session_id}/reset")

        assert response.status_code == 200
        data = response.json()
        assert data["selectedIds"] == []
        assert data["customIngredients"] == []


class TestSessionMatches:
    """Tests for matching against a session's selection."""

    def select(self, client, session_id, *ingredient_ids):
        for ingredient_id in ingredient_ids:
            client.post(f"/api/sessions/{session_id}/ingredients/{ingredient_id}/toggle")

    def test_matches(self, client, session_id):
        """Test ranked results for the selection."""
        self.select(client, session_id, "kimchi")

        response = client.get(f"/api/sessions/{session_id}/matches")

        assert response.status_code == 200
        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert ids == ["sauce", "kimchi_stew", "mystery", "kimchi_fried_rice"]

    def test_matches_follow_essentials_toggle(self, client, session_id):
        """Test that turning essentials off changes the ranking."""
        self.select(client, session_id, "kimchi")
        client.put(f"/api/sessions/{session_id}/essentials", json={"includeEssentials": False})

        response = client.get(f"/api/sessions/{session_id}/matches")

        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert ids == ["mystery", "kimchi_stew", "kimchi_fried_rice"]

    def test_matches_search(self, client, session_id):
        """Test searching from an empty selection."""
        response = client.get(f"/api/sessions/{session_id}/matches", params={"q": "김치찌개"})

        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert ids == ["kimchi_stew"]

    def test_matches_category(self, client, session_id):
        """Test category filtering."""
        self.select(client, session_id, "kimchi", "pork_belly")

        response = client.get(
            f"/api/sessions/{session_id}/matches", params={"category": "Main Dish"}
        )

        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert ids == ["pork_bbq", "mystery"]

    def test_matches_limit(self, client, session_id):
        """Test limiting, and that limits outside 1..200 are rejected."""
        self.select(client, session_id, "kimchi")
        url = f"/api/sessions/{session_id}/matches"

        assert client.get(url, params={"limit": 2}).json()["count"] == 2
        assert client.get(url, params={"limit": 0}).status_code == 422
        assert client.get(url, params={"limit": 201}).status_code == 422
        assert client.get(url, params={"limit": 200}).status_code == 200

    def test_matches_empty_selection(self, client, session_id):
        """Test that only all-staple recipes show up with nothing selected."""
        response = client.get(f"/api/sessions/{session_id}/matches")

        ids = [r["recipe"]["id"] for r in response.json()["results"]]
        assert ids == ["sauce"]

    def test_matches_unknown_session(self, client):
        """Test matching in a session that doesn't exist."""
        response = client.get("/api/sessions/nope/matches")

        assert response.status_code == 404


class TestAIRecipe:
    """Tests for the AI chef endpoints."""

    GENERATED = {
        "title": "김치 삼겹살 볶음",
        "description": "김치와 삼겹살을 함께 볶은 요리",
        "cookingTimeMinutes": 15,
        "difficulty": "Easy",
        "calories": 550,
        "servingSize": 2,
        "ingredients": [
            {"id": "김치", "amount": "1컵", "required": True},
            {"id": "삼겹살", "amount": "200g", "required": True},
        ],
        "instructions": ["삼겹살을 굽는다", "김치를 넣고 볶는다"],
    }

    def test_requires_selection(self, client, session_id):
        """Test that an empty selection is rejected."""
        response = client.post(f"/api/sessions/{session_id}/ai-recipe")

        assert response.status_code == 400

    def test_fallback_without_gemini(self, client, session_id):
        """Test the database fallback when no API key is set."""
        client.post(f"/api/sessions/{session_id}/ingredients/kimchi/toggle")

        response = client.post(f"/api/sessions/{session_id}/ai-recipe")

        assert response.status_code == 200
        data = response.json()
        assert data["geminiUsed"] is False
        assert data["ingredientsUsed"] == ["김치"]
        assert data["referenceRecipeIds"] == ["kimchi_stew", "kimchi_fried_rice", "gh_bibim"]
        recipe = data["recipe"]
        assert recipe["title"] == "김치찌개"
        assert recipe["id"].startswith("ai_")
        assert recipe["description"].startswith("[DB 추천]")

        session = client.get(f"/api/sessions/{session_id}").json()
        assert session["lastAiRecipe"]["id"] == recipe["id"]

    def test_custom_ingredient_names_are_used(self, client, session_id):
        """Test that custom ingredients reach the AI chef by name."""
        client.post(f"/api/sessions/{session_id}/custom-ingredients", json={"name": "트러플"})

        response = client.post(f"/api/sessions/{session_id}/ai-recipe")

        data = response.json()
        assert data["ingredientsUsed"] == ["트러플"]
        assert data["recipe"]["title"] == "[AI] 트러플 스페셜 요리"

    def test_with_gemini(self, client, session_id, fake_gemini):
        """Test a Gemini-generated recipe; names follow selection order."""
        model = fake_gemini(text=json.dumps(self.GENERATED, ensure_ascii=False))
        client.post(f"/api/sessions/{session_id}/ingredients/pork_belly/toggle")
        client.post(f"/api/sessions/{session_id}/ingredients/kimchi/toggle")

        response = client.post(f"/api/sessions/{session_id}/ai-recipe")

        assert response.status_code == 200
        data = response.json()
        assert data["geminiUsed"] is True
        assert data["ingredientsUsed"] == ["삼겹살", "김치"]
        assert data["recipe"]["title"] == "김치 삼겹살 볶음"
        assert data["recipe"]["imageUrl"] == "/ai_chef_special.png"
        assert model.prompts[0].endswith("User ingredients: 삼겹살, 김치")

    def test_gemini_failure(self, client, session_id, fake_gemini):
        """Test that Gemini errors become 502 and leave the session untouched."""
        fake_gemini(text="not json")
        client.post(f"/api/sessions/{session_id}/ingredients/kimchi/toggle")

        response = client.post(f"/api/sessions/{session_id}/ai-recipe")

        assert response.status_code == 502
        assert client.get(f"/api/sessions/{session_id}").json()["lastAiRecipe"] is None

    def test_stateless_ai_recipe(self, client):
        """Test the stateless AI endpoint."""
        response = client.post("/api/ai/recipe", json={"ingredients": [" 두부 ", ""]})

        assert response.status_code == 200
        data = response.json()
        assert data["ingredientsUsed"] == ["두부"]
        assert data["recipe"]["title"] == "두부조림"

    def test_stateless_requires_ingredients(self, client):
        """Test that at least one non-blank name is required."""
        assert client.post("/api/ai/recipe", json={"ingredients": []}).status_code == 422
        assert client.post("/api/ai/recipe", json={"ingredients": ["  "]}).status_code == 400
