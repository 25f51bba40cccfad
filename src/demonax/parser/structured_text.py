"""Tokenizer and parser for the Lua-like ``Key = value`` server files.

The creature (.mon), raid (.evt), NPC (.npc) and text player (.usr) files all
share one dialect:

    Name       = "Demon"
    Outfit     = (35, 0-0-0-0)
    Skills     = {(HitPoints, 8200, 0, 8200, 0, 0, 0)}
    Inventory  = {(3031, 100, 999), (3035, 6, 666)}
    Behaviour  = { ... raw dialogue lines ... }

``{...}`` and ``[...]`` parse to lists, ``(...)`` to tuples. Bare words become
Symbol, quoted strings stay str, digit runs become int. Several atoms in one
element (``1 Content={3355}``) become a Compound; ``Amount=3`` inside an
element becomes an Assignment.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from demonax.core.errors import DecodeError

_PUNCT = "{}()[],="
_WORD_STOP = set(_PUNCT) | {'"', "#"}
_INT_RE = re.compile(r"-?\d+")
_CLOSERS = {"{": "}", "[": "]", "(": ")"}
_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


class Symbol(str):
    """A bare word such as ``HitPoints`` or ``0-0-0-0``."""

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


@dataclass
class Assignment:
    """``key=value`` inside a bracketed element."""

    key: str
    value: Any


@dataclass
class Compound:
    """Several atoms that form one element."""

    parts: list

    def assignments(self) -> dict[str, Any]:
        return {p.key: p.value for p in self.parts if isinstance(p, Assignment)}

    def atoms(self) -> list:
        return [p for p in self.parts if not isinstance(p, Assignment)]


@dataclass
class RawBlock:
    """A brace block kept as source lines."""

    lines: list[str]
    start_line: int = 0


@dataclass
class Token:
    kind: str  # PUNCT, STRING, INT, WORD, NEWLINE, EOF
    value: Any
    line: int


@dataclass
class Document:
    """Ordered ``key = value`` pairs. Repeated keys are preserved."""

    pairs: list[tuple[str, Any]] = field(default_factory=list)

    def get(self, key: str, default: Any = None) -> Any:
        for k, v in self.pairs:
            if k == key:
                return v
        return default

    def get_all(self, key: str) -> list:
        return [v for k, v in self.pairs if k == key]

    def keys(self) -> list[str]:
        return [k for k, _ in self.pairs]

    def __contains__(self, key: str) -> bool:
        return any(k == key for k, _ in self.pairs)

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)


class Lexer:
    """On-demand tokenizer that can also hand out raw brace blocks."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self._peeked: Optional[Token] = None

    def _skip_blanks(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "#":
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end
            elif ch != "\n" and ch.isspace():
                self.pos += 1
            else:
                break

    def peek(self) -> Token:
        if self._peeked is None:
            self._peeked = self._scan()
        return self._peeked

    def next(self) -> Token:
        token = self.peek()
        self._peeked = None
        return token

    def _scan(self) -> Token:
        self._skip_blanks()
        text = self.text
        if self.pos >= len(text):
            return Token("EOF", None, self.line)

        ch = text[self.pos]
        line = self.line
        if ch == "\n":
            self.pos += 1
            self.line += 1
            return Token("NEWLINE", None, line)
        if ch in _PUNCT:
            self.pos += 1
            return Token("PUNCT", ch, line)
        if ch == '"':
            return Token("STRING", self._scan_string(), line)

        start = self.pos
        while self.pos < len(text):
            c = text[self.pos]
            if c.isspace() or c in _WORD_STOP:
                break
            self.pos += 1
        word = text[start:self.pos]
        if _INT_RE.fullmatch(word):
            return Token("INT", int(word), line)
        return Token("WORD", Symbol(word), line)

    def _scan_string(self) -> str:
        text = self.text
        start_line = self.line
        self.pos += 1
        chars = []
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\\" and self.pos + 1 < len(text):
                nxt = text[self.pos + 1]
                chars.append(_ESCAPES.get(nxt, nxt))
                self.pos += 2
                continue
            if ch == '"':
                self.pos += 1
                return "".join(chars)
            if ch == "\n":
                self.line += 1
            chars.append(ch)
            self.pos += 1
        raise DecodeError("unterminated string", line=start_line)

    def capture_raw_block(self) -> Optional[RawBlock]:
        """
        Capture a balanced ``{...}`` block as source lines.

        Returns None (consuming nothing) if the next character is not ``{``.
        Braces inside strings and ``#`` comments do not count.
        """
        if self._peeked is not None:
            raise RuntimeError("cannot capture raw block after peeking")
        self._skip_blanks()
        text = self.text
        if self.pos >= len(text) or text[self.pos] != "{":
            return None

        start_line = self.line
        depth = 0
        in_string = False
        i = self.pos
        while i < len(text):
            ch = text[i]
            if in_string:
                if ch == "\\":
                    i += 1
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "#":
                end = text.find("\n", i)
                i = len(text) if end == -1 else end
                continue
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    body = text[self.pos + 1:i]
                    self.line += text.count("\n", self.pos, i + 1)
                    self.pos = i + 1
                    lines = [ln.strip() for ln in body.splitlines()]
                    return RawBlock([ln for ln in lines if ln], start_line)
            i += 1
        raise DecodeError("unbalanced block", line=start_line)


class _Parser:
    def __init__(self, text: str, raw_blocks: frozenset[str]) -> None:
        self.lexer = Lexer(text)
        self.raw_blocks = raw_blocks

    def error(self, message: str, token: Token) -> DecodeError:
        return DecodeError(message, line=token.line)

    def parse(self) -> Document:
        doc = Document()
        lexer = self.lexer
        while True:
            token = lexer.next()
            if token.kind == "EOF":
                return doc
            if token.kind == "NEWLINE":
                continue
            if token.kind != "WORD":
                raise self.error(f"expected a key, found {token.value!r}", token)
            key = str(token.value)
            eq = lexer.next()
            if eq.kind != "PUNCT" or eq.value != "=":
                raise self.error(f"expected '=' after {key}", eq)

            if key in self.raw_blocks:
                raw = lexer.capture_raw_block()
                if raw is not None:
                    doc.pairs.append((key, raw))
                    continue

            doc.pairs.append((key, self.parse_value(token)))

    def parse_value(self, key_token: Token) -> Any:
        terms = []
        while self.lexer.peek().kind not in ("NEWLINE", "EOF"):
            terms.append(self.parse_term())
        if not terms:
            raise self.error("missing value", key_token)
        return terms[0] if len(terms) == 1 else Compound(terms)

    def parse_term(self) -> Any:
        token = self.lexer.next()
        if token.kind in ("INT", "STRING"):
            return token.value
        if token.kind == "WORD":
            nxt = self.lexer.peek()
            if nxt.kind == "PUNCT" and nxt.value == "=":
                self.lexer.next()
                return Assignment(str(token.value), self.parse_term())
            return token.value
        if token.kind == "PUNCT" and token.value in _CLOSERS:
            return self.parse_bracketed(token)
        raise self.error(f"unexpected {token.value!r}", token)

    def parse_bracketed(self, opener: Token) -> Any:
        closer = _CLOSERS[opener.value]
        elements = []
        terms: list = []

        def flush() -> None:
            if terms:
                elements.append(terms[0] if len(terms) == 1 else Compound(list(terms)))
                terms.clear()

        while True:
            token = self.lexer.peek()
            if token.kind == "NEWLINE":
                self.lexer.next()
                continue
            if token.kind == "EOF":
                raise self.error(f"unclosed {opener.value!r}", opener)
            if token.kind == "PUNCT" and token.value == closer:
                self.lexer.next()
                flush()
                break
            if token.kind == "PUNCT" and token.value == ",":
                self.lexer.next()
                flush()
                continue
            if token.kind == "PUNCT" and token.value in ")]}":
                raise self.error(
                    f"mismatched {token.value!r}, expected {closer!r}", token
                )
            terms.append(self.parse_term())

        if opener.value == "(":
            return tuple(elements)
        return elements


def parse_document(text: str, raw_blocks: frozenset[str] = frozenset()) -> Document:
    """
    Parse structured text into a Document.

    Args:
        text: File contents
        raw_blocks: Keys whose ``{...}`` value is captured as a RawBlock

    Returns:
        Document with pairs in file order

    Raises:
        DecodeError: On syntax errors, with the offending line number
    """
    parser = _Parser(text, raw_blocks)
    try:
        return parser.parse()
    except RecursionError:
        raise DecodeError("nesting too deep", line=parser.lexer.line) from None


def read_latin1(path: Path) -> str:
    """Read a server text file. These files are Windows-1252/latin-1."""
    return path.read_bytes().decode("latin-1")


# --- Value helpers used by the decoders ---


def as_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"{what}: expected an integer, found {value!r}")
    return value


def as_text(value: Any, what: str) -> str:
    if isinstance(value, str):
        return str(value)
    raise DecodeError(f"{what}: expected text, found {value!r}")


def as_sequence(value: Any, what: str) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise DecodeError(f"{what}: expected a list, found {value!r}")
