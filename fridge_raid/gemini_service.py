"""
Gemini AI chef: synthesizes one recipe from the user's ingredients.

Requires GEMINI_API_KEY environment variable to be set. Without it the
service answers from the local catalog instead.
"""

import itertools
import json
import logging
import os
import time
from typing import Optional

import google.generativeai as genai
from pydantic import ValidationError

from .models import Difficulty, Recipe, RecipeIngredient

logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-flash-latest")

# Every AI recipe is shown with the same illustration
AI_IMAGE_URL = "/ai_chef_special.png"

REFERENCE_LIMIT = 3
TITLE_MATCH_BONUS = 2

FALLBACK_DESCRIPTION_PREFIX = "[DB 추천] DB에서 찾은 레시피입니다: "

SYSTEM_PROMPT = """
You are a creative and practical Korean home cook (한식 셰프) specializing in "Fridge Breaking" (냉장고 파먹기).
Your goal is to suggest ONE delicious recipe that uses ONLY the user's provided ingredients plus basic pantry staples.

CRITICAL RULES:
1. Prioritize user ingredients: the recipe MUST be centered around the provided ingredients.
2. No shopping trips: do NOT suggest dishes that need MAIN ingredients the user does not have
   (no meat -> no Bulgogi, no kimchi -> no Kimchi Stew).
3. Pantry staples you may assume:
   - Seasonings: salt, sugar, pepper, soy sauce, gochujang, doenjang, vinegar, sesame oil, cooking oil
   - Aromatics: minced garlic, green onion (optional)
   - Basics: cooked rice, water
4. If the ingredients are sparse, suggest a simple side dish (banchan), a rice bowl (deopbap) or a snack
   rather than forcing a complex main dish.
5. If the combination is unusual, invent a fusion dish and explain why it works.

REFERENCE RECIPES:
You may be given reference recipes from our database.
- Use them ONLY if they closely match the user's ingredients.
- Ignore them if they need ingredients the user does not have.

Write the recipe in natural, appetizing Korean with an encouraging, practical tone.

IMPORTANT: Respond ONLY with valid JSON in this exact format, without markdown fences:
{
  "title": "Recipe title (Korean)",
  "description": "Short description of why this fits the ingredients",
  "cookingTimeMinutes": 20,
  "difficulty": "Easy" | "Medium" | "Hard",
  "calories": 450,
  "servingSize": 2,
  "ingredients": [
    {"id": "ingredient name", "amount": "quantity", "required": true}
  ],
  "instructions": [
    "Step 1...",
    "Step 2..."
  ]
}
"""

FALLBACK_INSTRUCTIONS = [
    "{ingredients}을(를) 먹기 좋게 손질합니다.",
    "달궈진 팬에 기름을 두르고 재료를 볶습니다.",
    "간장과 설탕으로 간을 맞추고 푹 익힙니다.",
    "맛있게 드세요!",
]

# Fields the model is not trusted with; category and macros come from the catalog tooling
_DROPPED_FIELDS = ("category", "carbohydrates", "fat", "protein")

_id_counter = itertools.count(1)


class RecipeGenerationError(Exception):
    """Raised when the AI chef could not produce a recipe."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


def is_configured() -> bool:
    """Check if Gemini API is configured."""
    return GEMINI_API_KEY is not None and len(GEMINI_API_KEY) > 0


def get_model():
    """Get the Gemini model instance."""
    if not is_configured():
        raise ValueError("GEMINI_API_KEY environment variable is not set")
    genai.configure(api_key=GEMINI_API_KEY)
    return genai.GenerativeModel(GEMINI_MODEL)


def new_recipe_id() -> str:
    """Fresh id for a generated recipe, unique within the process."""
    return f"ai_{int(time.time() * 1000)}_{next(_id_counter)}"


def find_reference_recipes(
    ingredient_names: list[str],
    recipes: list[Recipe],
    limit: int = REFERENCE_LIMIT,
) -> list[Recipe]:
    """
    Pick catalog recipes that best cover the given ingredient names.

    A recipe earns a point per name that overlaps one of its ingredient ids
    (either way round) and a bonus per name that appears in its title.
    """
    if not ingredient_names:
        return []

    scored = []
    for index, recipe in enumerate(recipes):
        ids = recipe.ingredient_ids()
        score = 0
        for name in ingredient_names:
            if any(name in ri or ri in name for ri in ids):
                score += 1
            if name in recipe.title:
                score += TITLE_MATCH_BONUS
        if score > 0:
            scored.append((score, index, recipe))

    scored.sort(key=lambda item: (-item[0], item[1]))
    return [recipe for _, _, recipe in scored[:limit]]


def build_prompt(ingredient_names: list[str], references: list[Recipe]) -> str:
    context = ""
    if references:
        reference_data = [
            {
                "title": r.title,
                "ingredients": r.ingredient_ids(),
                "instructions": r.instructions,
                "calories": r.calories,
            }
            for r in references
        ]
        context = (
            "\n\n[Reference Recipes from Database]\n"
            + json.dumps(reference_data, ensure_ascii=False, indent=2)
        )
    return f"{SYSTEM_PROMPT}{context}\n\nUser ingredients: {', '.join(ingredient_names)}"


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences Gemini sometimes wraps JSON in."""
    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]
    return text.strip()


def parse_recipe_response(text: str) -> Recipe:
    """Turn the model's raw text into a Recipe with a fresh id."""
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise RecipeGenerationError(f"Failed to parse Gemini response: {e}", text) from e

    if not isinstance(data, dict):
        raise RecipeGenerationError("Gemini response is not a JSON object", text)

    for field in _DROPPED_FIELDS:
        data.pop(field, None)
    data["id"] = new_recipe_id()
    data["imageUrl"] = AI_IMAGE_URL
    data.pop("image_url", None)

    try:
        return Recipe.model_validate(data)
    except ValidationError as e:
        raise RecipeGenerationError(f"Gemini returned an invalid recipe: {e}", text) from e


def fallback_recipe(ingredient_names: list[str], references: list[Recipe]) -> Recipe:
    """Answer without Gemini: best catalog match, or a simple stir-fry."""
    if references:
        best = references[0]
        return best.model_copy(
            update={
                "id": new_recipe_id(),
                "description": f"{FALLBACK_DESCRIPTION_PREFIX}{best.description}",
            },
            deep=True,
        )

    return Recipe(
        id=new_recipe_id(),
        title=f"[AI] {ingredient_names[0]} 스페셜 요리",
        description="AI 셰프가 당신의 냉장고 재료로 즉석에서 만든 특별한 레시피입니다.",
        cooking_time_minutes=20,
        difficulty=Difficulty.EASY,
        image_url=AI_IMAGE_URL,
        ingredients=[
            RecipeIngredient(id=name, amount="적당량", required=True)
            for name in ingredient_names
        ],
        instructions=[
            step.format(ingredients=", ".join(ingredient_names))
            for step in FALLBACK_INSTRUCTIONS
        ],
        calories=500,
        serving_size=1,
    )


def suggest_recipe(ingredient_names: list[str], recipes: list[Recipe]) -> Recipe:
    """
    Generate one recipe for the given ingredient names.

    Args:
        ingredient_names: Display names of the ingredients the user has
        recipes: Catalog recipes used as grounding references

    Returns:
        The suggested recipe

    Raises:
        ValueError: No ingredient names were given
        RecipeGenerationError: Gemini failed or returned unusable output
    """
    if not ingredient_names:
        raise ValueError("At least one ingredient is required")

    references = find_reference_recipes(ingredient_names, recipes)

    if not is_configured():
        logger.warning("No Gemini API key configured, answering from the recipe database")
        return fallback_recipe(ingredient_names, references)

    prompt = build_prompt(ingredient_names, references)
    try:
        response = get_model().generate_content(prompt)
        text = response.text
    except Exception as e:
        logger.error("Gemini request failed: %s", e)
        raise RecipeGenerationError(f"Gemini request failed: {e}") from e

    if not text or not text.strip():
        raise RecipeGenerationError("Gemini returned an empty response")

    logger.debug("Gemini raw response: %s", text)
    return parse_recipe_response(text)
