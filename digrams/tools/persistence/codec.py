"""Reader/writer for the persisted digram file.

The file is a single Lisp association list, one record per line so it
diffs well under version control::

    ((((text-mode . forward-word) . kill-word) . 12)
    (((prog-mode . save-buffer) . compile) . 3)
    )

Each record is ``(((CONTEXT . PREDECESSOR) . EVENT) . COUNT)``. The reader
also accepts the proper-list spelling ``(((C . P) . E) COUNT)``. Only the
subset of Lisp syntax needed for this shape is supported: lists, dotted
pairs, symbols with backslash escapes, integers, ``;`` comments and ``nil``.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from .exceptions import CorruptStoreError
from ..counter_store import DigramKey

# Characters that terminate an unescaped symbol token.
_DELIMITERS = frozenset("()[]\";'`,")
# Characters the writer always escapes inside a symbol name.
_ESCAPED = frozenset("()[]\";'`,#?\\")
_INTEGER_RE = re.compile(r"^[-+]?\d+\.?$")
_NUMERIC_LOOKING_RE = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:e[-+]?\d+)?$", re.IGNORECASE)

_LPAREN = "("
_RPAREN = ")"
_DOT = "."
_ATOM = "atom"


class Symbol(str):
    """A symbol read from the file; distinct from integers and lists."""


class Cons(NamedTuple):
    car: object
    cdr: object


Value = Union[Symbol, int, list, Cons]


class _Token(NamedTuple):
    kind: str
    value: object
    line: int


# -------- writer --------
def format_symbol(name: str) -> str:
    if name == "":
        return "##"
    out = []
    for ch in name:
        if ch in _ESCAPED or ch.isspace():
            out.append("\\")
        out.append(ch)
    text = "".join(out)
    if _NUMERIC_LOOKING_RE.match(name) or name.startswith("."):
        text = "\\" + text
    return text


def format_record(key: DigramKey, count: int) -> str:
    context, predecessor, event = (format_symbol(part) for part in key)
    return f"((({context} . {predecessor}) . {event}) . {count})"


def dumps(records: Iterable[Tuple[DigramKey, int]]) -> str:
    """Serialize records sorted by key, one per line."""
    lines = [format_record(key, count) + "\n" for key, count in sorted(records, key=lambda kv: tuple(kv[0]))]
    return "(" + "".join(lines) + ")\n"


# -------- reader --------
def _tokenize(text: str, path: Optional[str]) -> List[_Token]:
    tokens: List[_Token] = []
    i, n, line = 0, len(text), 1
    while i < n:
        ch = text[i]
        if ch == "\n":
            line += 1
            i += 1
        elif ch.isspace():
            i += 1
        elif ch == ";":
            while i < n and text[i] != "\n":
                i += 1
        elif ch == "(":
            tokens.append(_Token(_LPAREN, ch, line))
            i += 1
        elif ch == ")":
            tokens.append(_Token(_RPAREN, ch, line))
            i += 1
        elif ch in _DELIMITERS:
            raise CorruptStoreError(f"unsupported syntax {ch!r}", path, line)
        else:
            start_line = line
            chars: List[str] = []
            escaped = False
            while i < n:
                ch = text[i]
                if ch == "\\":
                    if i + 1 >= n:
                        raise CorruptStoreError("dangling escape at end of file", path, line)
                    escaped = True
                    nxt = text[i + 1]
                    if nxt == "\n":
                        line += 1
                    chars.append(nxt)
                    i += 2
                    continue
                if ch.isspace() or ch in _DELIMITERS:
                    break
                chars.append(ch)
                i += 1
            tokens.append(_Token(_ATOM, _atom("".join(chars), escaped, path, start_line), start_line))
    return tokens


def _atom(text: str, escaped: bool, path: Optional[str], line: int) -> object:
    if escaped:
        return Symbol(text)
    if text == ".":
        return _DOT
    if _INTEGER_RE.match(text):
        return int(text.rstrip("."))
    if text == "##":
        return Symbol("")
    if text.startswith("#"):
        raise CorruptStoreError(f"unsupported reader syntax {text!r}", path, line)
    return Symbol(text)


class _Reader:
    def __init__(self, tokens: List[_Token], path: Optional[str]):
        self.tokens = tokens
        self.pos = 0
        self.path = path

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self) -> _Token:
        if self.at_end():
            last = self.tokens[-1].line if self.tokens else None
            raise CorruptStoreError("unexpected end of file", self.path, last)
        return self.tokens[self.pos]

    def next(self) -> _Token:
        tok = self.peek()
        self.pos += 1
        return tok

    def read(self) -> Value:
        tok = self.next()
        if tok.kind == _LPAREN:
            return self._read_list_tail()
        if tok.kind == _RPAREN:
            raise CorruptStoreError("unbalanced ')'", self.path, tok.line)
        if tok.value is _DOT:
            raise CorruptStoreError("misplaced '.'", self.path, tok.line)
        return tok.value  # type: ignore[return-value]

    def _read_list_tail(self) -> Value:
        items: List[Value] = []
        while True:
            tok = self.peek()
            if tok.kind == _RPAREN:
                self.pos += 1
                return items
            if tok.kind == _ATOM and tok.value is _DOT:
                if not items:
                    raise CorruptStoreError("'.' with no preceding element", self.path, tok.line)
                self.pos += 1
                tail = self.read()
                close = self.next()
                if close.kind != _RPAREN:
                    raise CorruptStoreError("expected ')' after dotted tail", self.path, close.line)
                for item in reversed(items):
                    tail = Cons(item, tail)
                return tail
            items.append(self.read())


def _as_symbol(value: object, what: str, path: Optional[str], line: int) -> str:
    if not isinstance(value, Symbol):
        raise CorruptStoreError(f"{what} is not a symbol: {value!r}", path, line)
    return str(value)


def _decode_record(form: Value, path: Optional[str], line: int) -> Tuple[DigramKey, int]:
    if isinstance(form, Cons) and isinstance(form.cdr, int):
        key_form, count = form.car, form.cdr
    elif isinstance(form, list) and len(form) == 2 and isinstance(form[1], int):
        key_form, count = form[0], form[1]
    else:
        raise CorruptStoreError(f"record is not a (key . count) pair: {form!r}", path, line)
    if isinstance(count, bool) or count <= 0:
        raise CorruptStoreError(f"non-positive count {count!r}", path, line)
    if not (isinstance(key_form, Cons) and isinstance(key_form.car, Cons)):
        raise CorruptStoreError(f"key is not ((context . predecessor) . event): {key_form!r}", path, line)
    key = DigramKey(
        _as_symbol(key_form.car.car, "context", path, line),
        _as_symbol(key_form.car.cdr, "predecessor", path, line),
        _as_symbol(key_form.cdr, "event", path, line),
    )
    return key, count


def iter_records(text: str, path: Optional[str] = None) -> Iterator[Tuple[DigramKey, int]]:
    """Parse a whole file body; raises CorruptStoreError on any malformation.

    Validation completes before the first record is yielded so a caller never
    merges half of a corrupt file.
    """
    tokens = _tokenize(text, path)
    if not tokens:
        raise CorruptStoreError("empty file", path, None)
    reader = _Reader(tokens, path)
    first = reader.next()
    records: List[Tuple[DigramKey, int]] = []
    if first.kind == _ATOM and first.value == Symbol("nil"):
        pass
    elif first.kind == _LPAREN:
        while True:
            tok = reader.peek()
            if tok.kind == _RPAREN:
                reader.pos += 1
                break
            if tok.kind == _ATOM and tok.value is _DOT:
                raise CorruptStoreError("top-level list must be proper", path, tok.line)
            records.append(_decode_record(reader.read(), path, tok.line))
    else:
        raise CorruptStoreError("top-level form is not a list", path, first.line)
    if not reader.at_end():
        raise CorruptStoreError("trailing data after top-level list", path, reader.peek().line)
    return iter(records)


__all__ = ["Symbol", "Cons", "format_symbol", "format_record", "dumps", "iter_records"]
