"""MultiUse rule generation for the harvesting section of moveuse.dat."""

from typing import Iterable

from demonax.core.errors import DecodeError
from demonax.core.models import SkinningRecipe

MULTIUSE_MARKER = 'BEGIN "MultiUse"'
BAKING_MARKER = 'BEGIN "Baking"'
HARVESTING_MARKER = 'BEGIN "Harvesting"'
SECTION_END = "END"

# Green shimmer shown on a successful harvest
SUCCESS_EFFECT = 13


def generate_rule(recipe: SkinningRecipe) -> list[str]:
    """
    Success and failure rule for one recipe.

    The success rule creates the reward and counts the harvest. The failure
    rule only turns the corpse into its next state.
    """
    success = (
        f"MultiUse, IsType(Obj1, {recipe.tool_id}), IsType(Obj2, {recipe.corpse_id}), "
        f"Random({recipe.percent_chance}) -> Create(Obj2, {recipe.reward_id}, 0), "
        f"Change(Obj2, {recipe.next_corpse_id}, 0), Effect(User, {SUCCESS_EFFECT}), "
        f"IncrementHarvestingValue(User, {recipe.race_id}, 1)"
    )
    failure = (
        f"MultiUse, IsType(Obj1, {recipe.tool_id}), IsType(Obj2, {recipe.corpse_id}) "
        f"-> Change(Obj2, {recipe.next_corpse_id}, 0)"
    )
    return [success, failure]


def generate_rules(recipes: Iterable[SkinningRecipe]) -> list[str]:
    return [line for recipe in recipes for line in generate_rule(recipe)]


def _marker_index(lines: list[str], marker: str) -> int:
    for index, line in enumerate(lines):
        if marker in line:
            return index
    raise DecodeError(f"Could not find {marker} in moveuse.dat")


def insert_rules(moveuse: str, rules: list[str]) -> str:
    """
    Replace everything between the MultiUse and Baking markers.

    The marker lines themselves are kept; the replaced block becomes a
    ``BEGIN "Harvesting"`` ... ``END`` section holding `rules`.

    Raises:
        DecodeError: If a marker is missing or Baking precedes MultiUse
    """
    lines = moveuse.splitlines()
    multiuse = _marker_index(lines, MULTIUSE_MARKER)
    baking = _marker_index(lines, BAKING_MARKER)
    if baking <= multiuse:
        raise DecodeError(f"{BAKING_MARKER} appears before {MULTIUSE_MARKER}")

    result = lines[: multiuse + 1] + [HARVESTING_MARKER] + rules + [SECTION_END] + lines[baking:]
    return "\n".join(result) + "\n"
