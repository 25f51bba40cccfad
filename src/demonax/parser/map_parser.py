"""Map sector decoder for X-Y-Z.sec files.

The sector coordinates come from the file name. Binary sectors (magic DXSC):

    magic "DXSC", u8 version, u16 object_count
    object: u8 offset_x, u8 offset_y, u16 type_id, u8 attr_mask
            [0x01] u16 quest_number
            [0x02] u16 key_number
            [0x04] u8 n x u16 content type ids

Text sectors list one tile per line:

    12-7: Content={4515, 2853 ChestQuestNumber=4 Content={3031 Amount=50, 3035}}
"""

import re
from pathlib import Path
from typing import Optional

from demonax.core.errors import DecodeError
from demonax.core.models import QuestChest
from demonax.parser.binary import ByteCursor, has_magic
from demonax.parser.patterns import (
    CHEST_QUEST_PATTERN,
    CONTENT_PATTERN,
    FORMAT_VERSION,
    KEY_NUMBER_PATTERN,
    SECTOR_ATTR_CONTENT,
    SECTOR_ATTR_KEY,
    SECTOR_ATTR_QUEST,
    SECTOR_FILENAME_PATTERN,
    SECTOR_MAGIC,
    SECTOR_OFFSET_PATTERN,
    SECTOR_SIZE,
)

_LEADING_ID = re.compile(r"^\s*(\d+)")


def sector_origin(stem: str) -> Optional[tuple[int, int, int]]:
    """World coordinates of a sector's corner, or None for other file names."""
    match = SECTOR_FILENAME_PATTERN.match(stem)
    if not match:
        return None
    return (
        int(match.group("x")) * SECTOR_SIZE,
        int(match.group("y")) * SECTOR_SIZE,
        int(match.group("z")),
    )


def parse_sector_file(path: Path) -> list[QuestChest]:
    """
    Decode quest chests from one sector file.

    Returns:
        Chests in file order. Empty when the sector has none or the file
        name is not a sector name.
    """
    origin = sector_origin(path.stem)
    if origin is None:
        return []
    data = path.read_bytes()
    if has_magic(data, SECTOR_MAGIC):
        return parse_sector_binary(data, path.stem, origin)
    return parse_sector_text(data.decode("latin-1"), path.stem, origin)


def parse_sector_binary(
    data: bytes, sector_name: str, origin: tuple[int, int, int]
) -> list[QuestChest]:
    base_x, base_y, z = origin
    cursor = ByteCursor(data)
    cursor.expect_magic(SECTOR_MAGIC)
    cursor.expect_version(FORMAT_VERSION)

    chests = []
    for _ in range(cursor.read_u16()):
        offset_x = cursor.read_u8()
        offset_y = cursor.read_u8()
        if offset_x >= SECTOR_SIZE or offset_y >= SECTOR_SIZE:
            raise DecodeError(f"tile offset {offset_x}-{offset_y} outside sector")
        cursor.read_u16()  # object type id
        mask = cursor.read_u8()

        quest_number = cursor.read_u16() if mask & SECTOR_ATTR_QUEST else None
        key_number = cursor.read_u16() if mask & SECTOR_ATTR_KEY else None
        contents = []
        if mask & SECTOR_ATTR_CONTENT:
            contents = [cursor.read_u16() for _ in range(cursor.read_u8())]

        if quest_number is not None:
            chests.append(
                QuestChest(
                    quest_number=quest_number,
                    item_ids=contents,
                    x=base_x + offset_x,
                    y=base_y + offset_y,
                    z=z,
                    sector_name=sector_name,
                    key_number=key_number,
                )
            )
    cursor.expect_end()
    return chests


def parse_sector_text(
    text: str, sector_name: str, origin: tuple[int, int, int]
) -> list[QuestChest]:
    base_x, base_y, z = origin
    chests = []
    for line in text.splitlines():
        quest = CHEST_QUEST_PATTERN.search(line)
        if not quest:
            continue
        offset = SECTOR_OFFSET_PATTERN.match(line)
        if not offset:
            raise DecodeError(f"quest chest without tile offset: {line.strip()!r}")

        key = KEY_NUMBER_PATTERN.search(line)
        # Contents of the chest follow its quest number on the same tile
        content = CONTENT_PATTERN.search(line, quest.end()) or CONTENT_PATTERN.search(line)
        chests.append(
            QuestChest(
                quest_number=int(quest.group("quest")),
                item_ids=_content_ids(content.group("content")) if content else [],
                x=base_x + int(offset.group("ox")),
                y=base_y + int(offset.group("oy")),
                z=z,
                sector_name=sector_name,
                key_number=int(key.group("key")) if key else None,
            )
        )
    return chests


def _content_ids(content: str) -> list[int]:
    """Leading type id of each comma-separated Content entry."""
    ids = []
    for entry in content.split(","):
        match = _LEADING_ID.match(entry)
        if match:
            ids.append(int(match.group(1)))
    return ids
