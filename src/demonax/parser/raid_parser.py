"""Raid event decoder for .evt files."""

import re
from pathlib import Path
from typing import Optional

from demonax.core.errors import DecodeError
from demonax.core.models import RaidEvent, RaidKind, RaidSpawn, RaidWave
from demonax.parser.patterns import PROCESS_COMMENT_PATTERN, WAVE_WORDS
from demonax.parser.structured_text import (
    as_int,
    as_sequence,
    parse_document,
    read_latin1,
)

_WAVE_WORD = re.compile(r"\b(" + "|".join(WAVE_WORDS) + r")\b", re.IGNORECASE)


def parse_raid_file(path: Path) -> RaidEvent:
    """Decode one .evt file. The raid is named after the file stem."""
    raid = parse_raid_text(read_latin1(path), name=path.stem)
    raid.source_file = path.name
    return raid


def raid_kind(raid_type: str) -> RaidKind:
    return RaidKind.CYCLIC if "cyclic" in raid_type.lower() else RaidKind.ONE_TIME


def process_word(text: str) -> Optional[str]:
    """Wave count word from a ``# Process: two waves ...`` comment."""
    comment = PROCESS_COMMENT_PATTERN.search(text)
    if not comment:
        return None
    word = _WAVE_WORD.search(comment.group("text"))
    return word.group(1).lower() if word else None


def parse_raid_text(text: str, name: str) -> RaidEvent:
    doc = parse_document(text)

    raid_type = str(doc.get("Type", "unknown")).strip()
    interval = doc.get("Interval")
    raid = RaidEvent(
        name=name,
        raid_type=raid_type,
        kind=raid_kind(raid_type),
        interval=None if interval is None else as_int(interval, "Interval"),
        process_word=process_word(text),
    )

    wave: Optional[RaidWave] = None
    spawn: Optional[RaidSpawn] = None

    def current_wave() -> RaidWave:
        nonlocal wave
        if wave is None:
            wave = RaidWave(number=len(raid.waves) + 1)
            raid.waves.append(wave)
        return wave

    for key, value in doc:
        if key == "Delay":
            wave = RaidWave(number=len(raid.waves) + 1, delay=as_int(value, "Delay"))
            raid.waves.append(wave)
            spawn = None
        elif key == "Message":
            target = current_wave()
            message = str(value).strip()
            target.message = f"{target.message}; {message}" if target.message else message
        elif key == "Race":
            spawn = RaidSpawn(race=as_int(value, "Race"), min_count=1, max_count=1)
            current_wave().spawns.append(spawn)
        elif key in ("Count", "Position", "Radius"):
            if spawn is None:
                raise DecodeError(f"{key} before any Race")
            if key == "Count":
                counts = as_sequence(value, "Count")
                if len(counts) != 2:
                    raise DecodeError(f"Count: expected (min, max), found {value!r}")
                spawn.min_count, spawn.max_count = (as_int(c, "Count") for c in counts)
            elif key == "Position":
                coords = as_sequence(value, "Position")
                if len(coords) != 3:
                    raise DecodeError(f"Position: expected [x, y, z], found {value!r}")
                spawn.position = tuple(as_int(c, "Position") for c in coords)
            else:
                spawn.radius = as_int(value, "Radius")

    return raid
