"""
Catalog preparation: turn raw recipe source data into catalog recipes.

Covers ingredient name mapping, heuristic category and nutrition estimates,
title/ingredient reconciliation and duplicate removal. All functions are
pure; fetching and file I/O live in recipe_sources and cli.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import quote

from .models import Difficulty, Ingredient, Recipe, RecipeIngredient

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT = "적당량"
DEFAULT_IMAGE_URL = "/ai_chef_special.png"

FOODSAFETY_ID_PREFIX = "api_"
GITHUB_ID_PREFIX = "gh_"
GITHUB_IMAGE_BASE_URL = "https://raw.githubusercontent.com/dhchoi-lazy/korean-cuisine/main/"

MAX_MANUAL_STEPS = 20

# Korean ingredient name -> canonical ingredient id.
# Order matters for substring lookups: the first key contained in a raw
# name wins, so more specific names come before generic ones.
NAME_TO_ID = {
    "배추김치": "kimchi",
    "김치": "kimchi",
    "삼겹살": "pork_belly",
    "목살": "pork_shoulder",
    "다짐육": "minced_pork",
    "돼지고기": "pork_belly",  # generic pork defaults to belly
    "쇠고기": "beef",
    "소고기": "beef",
    "훈제오리": "smoked_duck",
    "닭고기": "chicken",
    "닭": "chicken",
    "스팸": "spam",
    "햄": "spam",
    "계란": "egg",
    "달걀": "egg",
    "참치캔": "tuna_can",
    "참치": "tuna_can",
    "멸치육수": "anchovy",
    "멸치": "anchovy",
    "오징어": "squid",
    "어묵": "fish_cake",
    "새우": "shrimp",
    "광어": "flatfish",
    "삼치": "spanish_mackerel",
    "양파": "onion",
    "대파": "green_onion",
    "파": "green_onion",
    "다진마늘": "garlic",
    "마늘": "garlic",
    "감자": "potato",
    "당근": "carrot",
    "애호박": "zucchini",
    "호박": "zucchini",
    "콩나물": "bean_sprout",
    "두부": "tofu",
    "표고버섯": "mushroom",
    "버섯": "mushroom",
    "오이": "cucumber",
    "시금치": "spinach",
    "양배추": "cabbage",
    "양상추": "lettuce",
    "브로콜리": "broccoli",
    "컬리플라워": "cauliflower",
    "강낭콩": "kidney_bean",
    "무": "radish",
    "고추장": "gochujang",
    "진간장": "soy_sauce",
    "국간장": "soy_sauce",
    "간장": "soy_sauce",
    "설탕": "sugar",
    "참기름": "sesame_oil",
    "소금": "salt",
    "후추": "pepper",
    "고춧가루": "gochugaru",
    "된장": "doenjang",
    "식초": "vinegar",
    "식용유": "cooking_oil",
    "떡볶이떡": "rice_cake",
    "떡": "rice_cake",
    "소면": "noodle",
    "국수": "noodle",
    "라면": "ramen",
    "밥": "rice",
    "쌀": "rice",
    "우유": "milk",
    "치즈": "cheese",
}

# Names that stand for a family of ids; any of them satisfies a title mention
SHARED_NAME_IDS = {
    "돼지고기": ("pork_belly", "pork_shoulder", "minced_pork"),
    "참치": ("tuna_can",),
}


@dataclass(frozen=True)
class CategoryRule:
    """Keyword rule: first rule whose keywords hit decides category and macros."""
    category: str
    title_keywords: tuple[str, ...]
    calories: float
    carbohydrates: float
    fat: float
    protein: float
    ingredient_keywords: tuple[str, ...] = ()

    def matches(self, title: str, ingredients_text: str) -> bool:
        return any(k in title for k in self.title_keywords) or any(
            k in ingredients_text for k in self.ingredient_keywords
        )


CATEGORY_RULES = (
    CategoryRule("Kimchi", ("김치", "깍두기", "겉절이"), 40, 8, 0, 2),
    CategoryRule("Rice/Porridge", ("밥", "죽", "덮밥"), 400, 75, 5, 8),
    CategoryRule("Soup/Stew", ("찌개", "국", "탕", "전골"), 250, 15, 12, 15),
    CategoryRule(
        "Main Dish (Meat)",
        ("불고기", "갈비", "육", "닭", "치킨", "삼겹", "돼지", "오리", "보쌈", "제육"),
        600, 10, 35, 40,
        ingredient_keywords=("고기",),
    ),
    CategoryRule("Main Dish", ("생선", "구이", "조림", "찜"), 400, 20, 20, 30),
    CategoryRule("Side Dish", ("나물", "무침", "볶음"), 100, 10, 6, 4),
    CategoryRule("Side Dish (Pickled)", ("장아찌", "젓갈"), 50, 10, 1, 2),
)

DEFAULT_RULE = CategoryRule("Side Dish", (), 150, 10, 5, 5)

_INGREDIENT_PART = re.compile(r"^([^(0-9]+)(?:[( ](.*))?$")
_STEP_NUMBER = re.compile(r"^\d+\.\s*")


def map_ingredient_name(raw_name: str, name_to_id: Optional[dict] = None) -> Optional[str]:
    """Map a source ingredient name to a catalog id: exact match, then substring."""
    name_to_id = NAME_TO_ID if name_to_id is None else name_to_id
    raw_name = raw_name.strip()
    if not raw_name:
        return None
    if raw_name in name_to_id:
        return name_to_id[raw_name]
    for key, ingredient_id in name_to_id.items():
        if key in raw_name:
            return ingredient_id
    return None


def parse_ingredient_string(text: Optional[str], name_to_id: Optional[dict] = None) -> list[RecipeIngredient]:
    """
    Parse a free-text ingredient list such as "돼지고기(50g), 김치 1/4포기".

    Unmapped names are dropped with a warning; an id appears at most once.
    """
    ingredients: list[RecipeIngredient] = []
    if not text:
        return ingredients

    seen = set()
    for part in re.split(r"[,\n]", text):
        part = part.strip()
        if not part:
            continue
        match = _INGREDIENT_PART.match(part)
        if not match:
            logger.warning("Could not parse ingredient entry '%s'", part)
            continue
        raw_name = match.group(1).strip()
        amount = match.group(2).replace(")", "").strip() if match.group(2) else ""

        ingredient_id = map_ingredient_name(raw_name, name_to_id)
        if ingredient_id is None:
            logger.warning("No ingredient id for '%s'", raw_name)
            continue
        if ingredient_id in seen:
            continue
        seen.add(ingredient_id)
        ingredients.append(
            RecipeIngredient(id=ingredient_id, amount=amount or DEFAULT_AMOUNT, required=True)
        )
    return ingredients


def parse_manual_steps(row: dict) -> list[str]:
    """Collect MANUAL01..MANUAL20 steps, dropping their "1. " prefixes."""
    steps = []
    for i in range(1, MAX_MANUAL_STEPS + 1):
        step = row.get(f"MANUAL{i:02d}")
        if step and step.strip():
            steps.append(_STEP_NUMBER.sub("", step.strip()))
    return steps


def estimate_category_and_nutrition(title: str, ingredient_names: Iterable[str]) -> dict:
    """Category and rough macros from title/ingredient keywords."""
    ingredients_text = " ".join(ingredient_names)
    rule = next(
        (r for r in CATEGORY_RULES if r.matches(title, ingredients_text)),
        DEFAULT_RULE,
    )
    return {
        "category": rule.category,
        "calories": rule.calories,
        "carbohydrates": rule.carbohydrates,
        "fat": rule.fat,
        "protein": rule.protein,
    }


def _parse_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def transform_foodsafety_rows(rows: list[dict], name_to_id: Optional[dict] = None) -> list[Recipe]:
    """
    Convert COOKRCP01 rows from the Korean food safety recipe API.

    Recipes without a single mapped ingredient are skipped.
    """
    recipes = []
    for row in rows:
        title = (row.get("RCP_NM") or "").strip()
        if not title:
            continue
        ingredients = parse_ingredient_string(row.get("RCP_PARTS_DTLS"), name_to_id)
        if not ingredients:
            logger.warning("Skipping '%s': no mapped ingredients", title)
            continue

        estimate = estimate_category_and_nutrition(title, [row.get("RCP_PARTS_DTLS") or ""])
        calories = _parse_float(row.get("INFO_ENG"))
        recipes.append(Recipe(
            id=f"{FOODSAFETY_ID_PREFIX}{row.get('RCP_SEQ')}",
            title=title,
            description=f"{row.get('RCP_PAT2', '')} 요리".strip(),
            cooking_time_minutes=30,
            difficulty=Difficulty.MEDIUM,
            image_url=row.get("ATT_FILE_NO_MAIN") or row.get("ATT_FILE_NO_MK") or DEFAULT_IMAGE_URL,
            ingredients=ingredients,
            instructions=parse_manual_steps(row),
            category=estimate["category"],
            calories=calories if calories is not None else estimate["calories"],
            serving_size=1,
            carbohydrates=_parse_float(row.get("INFO_CAR")),
            fat=_parse_float(row.get("INFO_FAT")),
            protein=_parse_float(row.get("INFO_PRO")),
        ))
    return recipes


def map_github_recipe(filename: str, data: dict) -> Optional[Recipe]:
    """Convert one korean-cuisine dataset entry; None when it lacks a name or text."""
    name = data.get("name")
    translated = data.get("translated")
    if not name or not translated:
        return None

    instructions = [s.strip() for s in translated.split(".") if s.strip()]
    ingredient_names = data.get("ingredients") or []
    estimate = estimate_category_and_nutrition(name, ingredient_names)

    image_url = DEFAULT_IMAGE_URL
    if data.get("image"):
        encoded = "/".join(quote(part) for part in data["image"].split("/"))
        image_url = f"{GITHUB_IMAGE_BASE_URL}{encoded}"

    stem = filename.rsplit("/", 1)[-1]
    if stem.endswith(".json"):
        stem = stem[:-len(".json")]

    return Recipe(
        id=f"{GITHUB_ID_PREFIX}{stem}",
        title=name,
        description=translated,
        cooking_time_minutes=45,
        difficulty=Difficulty.MEDIUM,
        image_url=image_url,
        # This source only lists names; they are used as ids as-is
        ingredients=[RecipeIngredient(id=n, amount=DEFAULT_AMOUNT) for n in ingredient_names],
        instructions=instructions,
        serving_size=2,
        **estimate,
    )


def merge_catalog(existing: list[Recipe], new: list[Recipe], replace_prefix: str) -> list[Recipe]:
    """Replace every recipe whose id starts with replace_prefix by the new batch."""
    base = [r for r in existing if not r.id.startswith(replace_prefix)]
    logger.info(
        "Merged catalog: %d kept, %d new (prefix '%s')", len(base), len(new), replace_prefix
    )
    return base + list(new)


# --- Reconciliation ---

# Dish words that start with a one-syllable ingredient name without naming it
# ("시금치무침" has no radish, "떡갈비" has no rice cake)
DISH_WORDS = ("무침", "떡갈비")


@dataclass
class MissingMention:
    """A recipe whose title names ingredients its ingredient list lacks."""
    recipe_id: str
    title: str
    # Mentioned name -> ids any of which would satisfy it
    missing: dict[str, tuple[str, ...]]


def mention_terms(known_ingredients: list[Ingredient]) -> dict[str, tuple[str, ...]]:
    """
    Title names to look for, each with the ids that satisfy it.

    Catalog names come first; shared names such as 돼지고기 and 참치 are
    added even when no catalog ingredient carries them.
    """
    terms: dict[str, list[str]] = {}
    for ing in known_ingredients:
        ids = terms.setdefault(ing.name, [])
        if ing.id not in ids:
            ids.append(ing.id)
    for name, family in SHARED_NAME_IDS.items():
        ids = terms.setdefault(name, [])
        ids.extend(fid for fid in family if fid not in ids)
    return {name: tuple(ids) for name, ids in terms.items()}


def title_mentions(title: str, name: str) -> bool:
    """True if name occurs in title other than as the start of a dish word."""
    start = title.find(name)
    while start != -1:
        if not any(
            word.startswith(name) and title.startswith(word, start)
            for word in DISH_WORDS
        ):
            return True
        start = title.find(name, start + 1)
    return False


def find_title_mentions(recipes: list[Recipe], known_ingredients: list[Ingredient]) -> list[MissingMention]:
    """Find recipes whose title mentions a known ingredient that is not listed."""
    terms = mention_terms(known_ingredients)
    report = []
    for recipe in recipes:
        present = set(recipe.ingredient_ids())
        missing = {}
        for name, ids in terms.items():
            if not title_mentions(recipe.title, name):
                continue
            if any(i in present for i in ids):
                continue
            missing[name] = ids
        if missing:
            report.append(MissingMention(recipe.id, recipe.title, missing))
    return report


def apply_missing_ingredients(
    recipes: list[Recipe],
    report: list[MissingMention],
    name_to_id: Optional[dict] = None,
) -> tuple[list[Recipe], int]:
    """
    Append ingredients reported missing, returning new recipes and the fix count.

    A name with a single candidate id is added as that id. Names with several
    candidates are ambiguous and skipped; names without candidates go through
    name_to_id and are skipped when that fails too.
    """
    name_to_id = NAME_TO_ID if name_to_id is None else name_to_id
    by_id = {m.recipe_id: m for m in report}
    fixed = []
    fix_count = 0

    for recipe in recipes:
        mention = by_id.get(recipe.id)
        if mention is None:
            fixed.append(recipe)
            continue

        additions = []
        present = set(recipe.ingredient_ids())
        for name, candidates in mention.missing.items():
            if len(candidates) > 1:
                logger.warning(
                    "Ambiguous name '%s' in '%s' maps to %s, not fixing",
                    name, recipe.title, ", ".join(candidates),
                )
                continue
            ingredient_id = candidates[0] if candidates else name_to_id.get(name)
            if ingredient_id is None:
                logger.warning("Could not map name '%s' to an id for recipe '%s'", name, recipe.title)
                continue
            if ingredient_id in present:
                continue
            present.add(ingredient_id)
            additions.append(RecipeIngredient(id=ingredient_id, amount=DEFAULT_AMOUNT))
            logger.info("Fixed [%s]: added %s (%s)", recipe.title, name, ingredient_id)

        fix_count += len(additions)
        if additions:
            recipe = recipe.model_copy(update={"ingredients": recipe.ingredients + additions})
        fixed.append(recipe)

    return fixed, fix_count


def remove_recipes_by_title(recipes: list[Recipe], titles: Iterable[str]) -> list[Recipe]:
    titles = set(titles)
    return [r for r in recipes if r.title not in titles]


def dedupe_by_title(recipes: list[Recipe]) -> list[Recipe]:
    """Keep the first recipe for each title."""
    seen = set()
    unique = []
    for recipe in recipes:
        if recipe.title in seen:
            logger.info("Dropping duplicate recipe %s (%s)", recipe.id, recipe.title)
            continue
        seen.add(recipe.title)
        unique.append(recipe)
    return unique
