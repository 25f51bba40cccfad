"""Skinning recipe decoder for harvesting.csv."""

import csv
import io
from pathlib import Path

from demonax.core.errors import DecodeError
from demonax.core.models import SkinningRecipe

RECIPE_COLUMNS = (
    "tool_id",
    "corpse_id",
    "next_corpse_id",
    "percent_chance",
    "reward_id",
    "race_id",
)


def parse_recipe_file(path: Path) -> list[SkinningRecipe]:
    try:
        return parse_recipe_text(path.read_bytes().decode("utf-8-sig"))
    except DecodeError as e:
        if e.path is None:
            e.path = path
        raise


def parse_recipe_text(text: str) -> list[SkinningRecipe]:
    """
    Parse recipe CSV rows.

    Duplicate (tool_id, corpse_id) pairs are returned as-is; the last one
    wins when written.

    Raises:
        DecodeError: If the CSV is malformed, a column is missing or a field
            is not an integer
    """
    reader = csv.DictReader(io.StringIO(text))
    try:
        return _read_recipes(reader)
    except csv.Error as e:
        raise DecodeError(f"malformed CSV: {e}", line=reader.line_num) from e


def _read_recipes(reader: csv.DictReader) -> list[SkinningRecipe]:
    missing = [col for col in RECIPE_COLUMNS if col not in (reader.fieldnames or [])]
    if missing:
        raise DecodeError(f"missing column(s): {', '.join(missing)}", line=1)

    recipes = []
    for row in reader:
        values = {}
        for col in RECIPE_COLUMNS:
            raw = (row.get(col) or "").strip()
            try:
                values[col] = int(raw)
            except ValueError:
                raise DecodeError(
                    f"{col}: expected an integer, found {raw!r}", line=reader.line_num
                ) from None
        recipes.append(SkinningRecipe(**values))
    return recipes
