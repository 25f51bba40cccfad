"""Item catalog decoder for objects.srv.

Binary layout (magic DXOB):

    magic "DXOB", u8 version, u32 record_count
    record: u16 type_id, str8 name, u32 flags,
            u8 n x (str8 key, u32 value), str16 description

The text catalog uses blank-line separated records:

    TypeID      = 3031
    Name        = "a gold coin"
    Flags       = {Cumulative,Take}
    Attributes  = {Weight=10}
"""

from pathlib import Path
from typing import Any, Optional

from demonax.core.errors import DecodeError
from demonax.core.models import Item
from demonax.parser.binary import ByteCursor, bit_names, bits_from_names, has_magic, is_bit_set
from demonax.parser.patterns import (
    CATALOG_MAGIC,
    FORMAT_VERSION,
    ITEM_FLAG_NAMES,
    MAX_RESERVED_TYPE_ID,
    TAKE_FLAG_BIT,
)
from demonax.parser.structured_text import (
    Assignment,
    as_int,
    as_sequence,
    parse_document,
)


def clean_item_name(name: str) -> str:
    """Title-case a catalog name and strip a leading article."""
    words = [word[:1].upper() + word[1:].lower() for word in name.split()]
    if words and words[0].lower() in ("a", "an"):
        words = words[1:]
    return " ".join(words)


def is_catalog_item(type_id: int, flags: int) -> bool:
    """Only portable, non-reserved objects count as items."""
    return type_id > MAX_RESERVED_TYPE_ID and is_bit_set(flags, TAKE_FLAG_BIT)


def parse_item_catalog(path: Path) -> list[Item]:
    """
    Decode the object catalog and keep portable entries.

    Args:
        path: Path to objects.srv

    Returns:
        Items in file order
    """
    data = path.read_bytes()
    if has_magic(data, CATALOG_MAGIC):
        return parse_catalog_binary(data)
    return parse_catalog_text(data.decode("latin-1"))


def parse_catalog_binary(data: bytes) -> list[Item]:
    cursor = ByteCursor(data)
    cursor.expect_magic(CATALOG_MAGIC)
    cursor.expect_version(FORMAT_VERSION)

    items = []
    for _ in range(cursor.read_u32()):
        type_id = cursor.read_u16()
        name = cursor.read_string(prefix=1)
        flags = cursor.read_u32()
        attributes = {}
        for _ in range(cursor.read_u8()):
            key = cursor.read_string(prefix=1)
            attributes[key] = cursor.read_u32()
        description = cursor.read_string(prefix=2) or None

        if is_catalog_item(type_id, flags):
            items.append(
                Item(
                    type_id=type_id,
                    name=clean_item_name(name),
                    flags=flags,
                    flag_names=bit_names(flags, ITEM_FLAG_NAMES),
                    attributes=attributes,
                    description=description,
                )
            )
    cursor.expect_end()
    return items


def parse_catalog_text(text: str) -> list[Item]:
    doc = parse_document(text)

    items = []
    record: Optional[dict[str, Any]] = None
    for key, value in doc:
        if key == "TypeID":
            if record is not None:
                items.append(record)
            record = {"TypeID": value}
        elif record is not None:
            record[key] = value
    if record is not None:
        items.append(record)

    return [item for item in (_text_record(r) for r in items) if item is not None]


def _text_record(record: dict[str, Any]) -> Optional[Item]:
    type_id = as_int(record["TypeID"], "TypeID")
    names = [str(flag) for flag in as_sequence(record.get("Flags", []), "Flags")]
    flags = bits_from_names(names, ITEM_FLAG_NAMES)
    if not is_catalog_item(type_id, flags):
        return None

    name = record.get("Name")
    if not isinstance(name, str):
        raise DecodeError(f"TypeID {type_id}: missing Name")

    attributes = {}
    for attr in as_sequence(record.get("Attributes", []), "Attributes"):
        if not isinstance(attr, Assignment):
            raise DecodeError(f"TypeID {type_id}: malformed attribute {attr!r}")
        attributes[attr.key] = attr.value

    description = record.get("Description")
    return Item(
        type_id=type_id,
        name=clean_item_name(name),
        flags=flags,
        flag_names=names,
        attributes=attributes,
        description=str(description) if description else None,
    )
