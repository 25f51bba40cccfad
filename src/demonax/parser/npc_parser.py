"""NPC script decoder.

One .npc file is parsed once into an NpcScript. Prices, spell teaching offers
and rune sellers are then extracted by independent passes over the behaviour
lines.
"""

from pathlib import Path
from typing import Optional

from demonax.core.models import (
    ALL_VOCATIONS,
    VOCATIONS,
    ItemPrice,
    NpcScript,
    PriceMode,
    RuneSeller,
    SpellTeaching,
)
from demonax.parser.patterns import (
    BULK_OFFER_MARKER,
    FREE_ACCOUNT_MARKERS,
    PREMIUM_ACCOUNT_MARKERS,
    PRICE_PATTERN,
    RUNE_CHARGES_PATTERN,
    RUNE_ITEM_PATTERN,
    RUNE_VOCATION_PREFIX_PATTERN,
    RUNE_VOCATION_TEXT_PATTERN,
    SELL_TRIGGER_PATTERN,
    SPELL_TEACHING_PATTERN,
    TYPE_PATTERN,
    TYPE_PRICE_PATTERN,
    VOCATION_PATTERNS,
)
from demonax.parser.structured_text import RawBlock, parse_document, read_latin1


def parse_npc_file(path: Path) -> NpcScript:
    """
    Parse a .npc file.

    The NPC name falls back to the file stem when the script has none.
    """
    script = parse_npc_text(read_latin1(path), default_name=path.stem)
    script.source_file = path.name
    return script


def parse_npc_text(text: str, default_name: str = "Unknown") -> NpcScript:
    doc = parse_document(text, raw_blocks=frozenset({"Behaviour"}))

    name = doc.get("Name")
    if not isinstance(name, str) or not name.strip():
        name = default_name

    behaviour = doc.get("Behaviour")
    if isinstance(behaviour, RawBlock):
        lines = behaviour.lines
    else:
        lines = []
    return NpcScript(name=name.strip(), behaviour=lines)


def is_spell_teaching_line(line: str) -> bool:
    return bool(SPELL_TEACHING_PATTERN.search(line))


def _trigger(line: str) -> str:
    """The condition part of a behaviour rule, before ``->``."""
    return line.split("->", 1)[0]


def extract_prices(script: NpcScript) -> list[ItemPrice]:
    """
    Collect every trade offer in the script.

    A rule whose trigger mentions "sell" is the NPC buying from the player
    (mode sell). Everything else is the NPC selling (mode buy).
    """
    prices = []
    for line in script.behaviour:
        if is_spell_teaching_line(line):
            continue
        match = TYPE_PRICE_PATTERN.search(line)
        if not match:
            continue
        mode = PriceMode.SELL if SELL_TRIGGER_PATTERN.search(_trigger(line)) else PriceMode.BUY
        prices.append(
            ItemPrice(
                item_id=int(match.group("type_id")),
                npc_name=script.name,
                mode=mode,
                price=int(match.group("price")),
            )
        )
    return prices


def extract_spell_teaching(script: NpcScript) -> list[SpellTeaching]:
    """Collect spell teaching offers, one row per vocation."""
    offers = []
    for line in script.behaviour:
        if not is_spell_teaching_line(line):
            continue
        type_match = TYPE_PATTERN.search(line)
        price_match = PRICE_PATTERN.search(line)
        if not type_match or not price_match:
            continue

        vocations = [
            vocation
            for vocation in VOCATIONS
            if VOCATION_PATTERNS[vocation].search(_trigger(line))
        ]
        for vocation in vocations or VOCATIONS:
            offers.append(
                SpellTeaching(
                    npc_name=script.name,
                    spell_id=int(type_match.group("type_id")),
                    price=int(price_match.group("price")),
                    vocation=vocation,
                )
            )
    return offers


def _account_type(source_file: Optional[str]) -> Optional[str]:
    """Account type encoded in the NPC file name, None if there is none."""
    if not source_file:
        return None
    if any(marker in source_file for marker in FREE_ACCOUNT_MARKERS):
        return "Free"
    if any(marker in source_file for marker in PREMIUM_ACCOUNT_MARKERS):
        return "Premium"
    return None


def _rune_vocation(line: str) -> str:
    match = RUNE_VOCATION_PREFIX_PATTERN.search(line) or RUNE_VOCATION_TEXT_PATTERN.search(line)
    if match:
        return match.group("vocation").capitalize()
    return ALL_VOCATIONS


def extract_rune_sellers(script: NpcScript) -> list[RuneSeller]:
    """
    Collect rune, wand and rod offers.

    An offer is a behaviour line naming a rune, wand or rod with both Type=
    and Price=. Bulk offers and spell teaching lines are ignored. A vocation
    prefix or an "only for <vocation>" reply restricts the offer, otherwise
    it is open to all vocations.
    """
    account_type = _account_type(script.source_file)
    sellers = []
    for line in script.behaviour:
        if BULK_OFFER_MARKER in line or is_spell_teaching_line(line):
            continue
        if not RUNE_ITEM_PATTERN.search(line):
            continue
        type_match = TYPE_PATTERN.search(line)
        price_match = PRICE_PATTERN.search(line)
        if not type_match or not price_match:
            continue

        lower = line.lower()
        if "wand" in lower:
            category = "wand"
        elif "rod" in lower:
            category = "rod"
        else:
            category = "rune"
        charges = RUNE_CHARGES_PATTERN.search(line)

        sellers.append(
            RuneSeller(
                npc_name=script.name,
                item_id=int(type_match.group("type_id")),
                price=int(price_match.group("price")),
                item_category=category,
                vocation=_rune_vocation(line),
                charges=int(charges.group("charges")) if charges else None,
                account_type=account_type,
            )
        )
    return sellers
