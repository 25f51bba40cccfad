"""Spell table decoder for magic.cc.

This is an anchor scanner, not a C++ parser. It looks for the InitSpells
function and reads each ``CreateSpell(...)`` call plus the ``Spell->X = v;``
assignments that follow it:

    Spell = CreateSpell(23, "exevo", "gran mas vis");
    Spell->Mana = 80;
    Spell->Level = 60;
    Spell->Flags = 3;
    Spell->Comment = "Rage of the Skies";
"""

from pathlib import Path
from typing import Optional, Union

from demonax.core.errors import DecodeError
from demonax.core.models import SpellEntry, SpellSkip
from demonax.parser.patterns import (
    C_COMMENT_PATTERN,
    CREATE_SPELL_PATTERN,
    INIT_SPELLS_ANCHOR,
    QUOTED_PATTERN,
    SPELL_PROPERTY_PATTERN,
)
from demonax.parser.structured_text import read_latin1

SpellResult = Union[SpellEntry, SpellSkip]

# Spell->Property -> SpellEntry field
NUMERIC_PROPERTIES = {
    "Mana": "mana",
    "Level": "level",
    "RuneGr": "rune_group",
    "RuneNr": "rune_number",
    "Flags": "flags",
    "Amount": "charges",
    "RuneLevel": "magic_level",
    "SoulPoints": "soul_points",
}


def parse_spell_file(path: Path) -> list[SpellResult]:
    """Decode magic.cc into spell entries and skips."""
    return parse_spell_source(read_latin1(path))


def _blank_comments(source: str) -> str:
    # Keep newlines so reported line numbers stay correct
    return C_COMMENT_PATTERN.sub(lambda m: "\n" * m.group(0).count("\n"), source)


def _function_body(source: str, start: int) -> tuple[int, int]:
    """Span of the brace block opening after `start`. Runs to EOF if unbalanced."""
    open_pos = source.find("{", start)
    if open_pos == -1:
        return start, len(source)
    depth = 0
    for pos in range(open_pos, len(source)):
        ch = source[pos]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return open_pos, pos
    return open_pos, len(source)


def _split_args(args: str) -> list[str]:
    """Split call arguments on commas outside string literals."""
    parts = []
    current = []
    in_string = False
    for ch in args:
        if ch == '"':
            in_string = not in_string
        if ch == "," and not in_string:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    parts.append("".join(current).strip())
    return parts


def _parse_int(value: str) -> Optional[int]:
    value = value.strip()
    try:
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    except ValueError:
        return None


def parse_spell_source(source: str) -> list[SpellResult]:
    """
    Scan C++ source for spell tables.

    Returns:
        One SpellEntry or SpellSkip per CreateSpell anchor, in source order

    Raises:
        DecodeError: If there is no InitSpells function
    """
    source = _blank_comments(source)
    anchor = INIT_SPELLS_ANCHOR.search(source)
    if anchor is None:
        raise DecodeError("InitSpells function not found")
    body_start, body_end = _function_body(source, anchor.end())

    calls = list(CREATE_SPELL_PATTERN.finditer(source, body_start, body_end))
    results: list[SpellResult] = []
    for index, call in enumerate(calls):
        table_end = calls[index + 1].start() if index + 1 < len(calls) else body_end
        line = source.count("\n", 0, call.start()) + 1
        results.append(_read_table(call.group("args"), source[call.end():table_end], line))
    return results


def _read_table(args: str, segment: str, line: int) -> SpellResult:
    parts = _split_args(args)
    spell_id = _parse_int(parts[0])
    if spell_id is None:
        return SpellSkip(reason=f"bad spell id {parts[0]!r}", line=line)

    words = " ".join(
        match.group("text").strip()
        for match in QUOTED_PATTERN.finditer(args)
        if match.group("text").strip()
    )
    if not words:
        return SpellSkip(reason="missing spell words", spell_id=spell_id, line=line)

    spell = SpellEntry(id=spell_id, words=words, name=f"Spell {spell_id}")
    for prop in SPELL_PROPERTY_PATTERN.finditer(segment):
        name, value = prop.group("name"), prop.group("value")
        if name == "Comment":
            quoted = QUOTED_PATTERN.search(value)
            if quoted and quoted.group("text").strip():
                spell.name = quoted.group("text").strip()
        elif name in NUMERIC_PROPERTIES:
            number = _parse_int(value)
            if number is None:
                return SpellSkip(
                    reason=f"non-integer {name} {value.strip()!r}",
                    spell_id=spell_id,
                    line=line,
                )
            setattr(spell, NUMERIC_PROPERTIES[name], number)
    return spell
