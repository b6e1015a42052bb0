"""
Catalog maintenance commands.

    fridge-raid-catalog build-foodsafety --start 1 --end 100
    fridge-raid-catalog build-github
    fridge-raid-catalog reconcile [--dry-run]
    fridge-raid-catalog dedupe [--remove-title TITLE ...]
"""

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Optional

from . import catalog_builder, recipe_sources
from .app_logging import configure_logging
from .catalog import CATALOG_DIR, INGREDIENTS_FILE, RECIPES_FILE
from .models import Ingredient, Recipe

logger = logging.getLogger(__name__)


def load_recipes(path: Path) -> list[Recipe]:
    if not path.exists():
        logger.warning("%s does not exist, starting from an empty catalog", path)
        return []
    with path.open("r", encoding="utf-8") as f:
        return [Recipe.model_validate(raw) for raw in json.load(f)]


def load_ingredients(path: Path) -> list[Ingredient]:
    with path.open("r", encoding="utf-8") as f:
        return [Ingredient.model_validate(raw) for raw in json.load(f)]


def write_recipes(path: Path, recipes: list[Recipe]) -> None:
    data = [r.model_dump(by_alias=True, exclude_none=True, mode="json") for r in recipes]
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    logger.info("Saved %d recipes to %s", len(recipes), path)


def cmd_build_foodsafety(args) -> int:
    rows = recipe_sources.fetch_foodsafety_recipes(args.start, args.end, args.api_key)
    logger.info("Fetched %d rows", len(rows))
    new = catalog_builder.transform_foodsafety_rows(rows)
    logger.info("Transformed %d recipes", len(new))
    if not new:
        return 1
    existing = load_recipes(args.recipes)
    write_recipes(
        args.recipes,
        catalog_builder.merge_catalog(existing, new, catalog_builder.FOODSAFETY_ID_PREFIX),
    )
    return 0


def cmd_build_github(args) -> int:
    files = recipe_sources.fetch_github_recipes()
    new = []
    for filename, data in files:
        recipe = catalog_builder.map_github_recipe(filename, data)
        if recipe is not None:
            new.append(recipe)
    logger.info("Mapped %d of %d GitHub recipes", len(new), len(files))
    if not new:
        return 1
    existing = load_recipes(args.recipes)
    write_recipes(
        args.recipes,
        catalog_builder.merge_catalog(existing, new, catalog_builder.GITHUB_ID_PREFIX),
    )
    return 0


def cmd_reconcile(args) -> int:
    recipes = load_recipes(args.recipes)
    ingredients = load_ingredients(args.ingredients)
    report = catalog_builder.find_title_mentions(recipes, ingredients)
    logger.info("Analyzed %d recipes, found %d potential issues", len(recipes), len(report))
    for mention in report:
        logger.info("[%s] missing: %s (%s)", mention.title, ", ".join(mention.missing), mention.recipe_id)

    if args.dry_run or not report:
        return 0
    fixed, fix_count = catalog_builder.apply_missing_ingredients(recipes, report)
    if fix_count:
        write_recipes(args.recipes, fixed)
    logger.info("Fixed %d missing ingredients across %d recipes", fix_count, len(report))
    return 0


def cmd_dedupe(args) -> int:
    recipes = load_recipes(args.recipes)
    before = len(recipes)
    if args.remove_title:
        recipes = catalog_builder.remove_recipes_by_title(recipes, args.remove_title)
    recipes = catalog_builder.dedupe_by_title(recipes)
    logger.info("Removed %d recipes", before - len(recipes))
    if len(recipes) != before:
        write_recipes(args.recipes, recipes)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build and clean the recipe catalog")
    parser.add_argument(
        "--recipes",
        type=Path,
        default=Path(os.path.join(CATALOG_DIR, RECIPES_FILE)),
        help="Recipe catalog JSON to read and write",
    )
    parser.add_argument(
        "--ingredients",
        type=Path,
        default=Path(os.path.join(CATALOG_DIR, INGREDIENTS_FILE)),
        help="Ingredient catalog JSON",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    foodsafety = sub.add_parser("build-foodsafety", help="Import from the food safety recipe API")
    foodsafety.add_argument("--start", type=int, default=1)
    foodsafety.add_argument("--end", type=int, default=100)
    foodsafety.add_argument("--api-key", default=None)
    foodsafety.set_defaults(func=cmd_build_foodsafety)

    github = sub.add_parser("build-github", help="Import the korean-cuisine GitHub dataset")
    github.set_defaults(func=cmd_build_github)

    reconcile = sub.add_parser("reconcile", help="Add ingredients named in titles but not listed")
    reconcile.add_argument("--dry-run", action="store_true", help="Only report")
    reconcile.set_defaults(func=cmd_reconcile)

    dedupe = sub.add_parser("dedupe", help="Drop duplicate or unwanted recipes")
    dedupe.add_argument(
        "--remove-title", action="append", default=[], help="Title to remove (repeatable)"
    )
    dedupe.set_defaults(func=cmd_dedupe)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
