"""Compound code models and identifier normalisation.

Code is data: an expression `(f x [1 2])` reads as

    Expression([Symbol('f'), Symbol('x'), List([1, 2])])

Every compound node is an immutable `Sequence` (a tuple subclass). The kind of
a node is its class, and two nodes are only equal when they share a kind, so
`(a b)` and `[a b]` never compare equal even though they hold the same
elements. Rewrites build new nodes; nothing in theta mutates a model in place.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional

from theta import SExpression
from theta.types.symbol import Symbol


class Sequence(tuple):
    """Base class of every compound node."""

    __slots__ = ()

    def __new__(cls, elements: Iterable[SExpression] = ()):
        return super().__new__(cls, elements)

    def __getitem__(self, item):
        result = tuple.__getitem__(self, item)
        # Slicing keeps the node kind
        if isinstance(item, slice):
            return type(self)(result)
        return result

    def __add__(self, other):
        return type(self)(tuple.__add__(self, tuple(other)))

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and tuple.__eq__(self, other)

    def __ne__(self, other) -> bool:
        return not self == other

    def __hash__(self) -> int:
        return hash((type(self).__name__, tuple.__hash__(self)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}([{', '.join(repr(e) for e in self)}])"


class Expression(Sequence):
    """A call or special form; element 0 is the head."""

    __slots__ = ()


class List(Sequence):
    __slots__ = ()


class Tuple(Sequence):
    __slots__ = ()


class Set(Sequence):
    __slots__ = ()


class Dict(Sequence):
    """Mapping literal, stored flat as key, value, key, value ..."""

    __slots__ = ()


def rebuild(form: Sequence, elements: Iterable[SExpression]) -> Sequence:
    """Return a node of the same kind as `form` holding `elements`."""
    return type(form)(elements)


def is_call(form: SExpression) -> bool:
    return isinstance(form, Expression) and len(form) > 0


def head_name(form: SExpression) -> Optional[str]:
    """Mangled name of the head symbol of a non-empty expression, else None."""
    if is_call(form) and isinstance(form[0], Symbol):
        return mangle(form[0].id)
    return None


def is_dotted(form: SExpression) -> bool:
    """True for `a.b` style symbols; `.attr` shorthands and `...` are not dotted."""
    return isinstance(form, Symbol) and "." in form.id and not form.id.startswith(".")


# ------------------------------------------------------------
# Mangling
# ------------------------------------------------------------

MANGLE_DELIM = "X"
MANGLE_PREFIX = "thx_"

_ENCODED_CHAR_RE = re.compile(f"{MANGLE_DELIM}([a-z][a-z0-9_H]*){MANGLE_DELIM}")


def _encode_char(c: str) -> str:
    name = unicodedata.name(c, f"U{ord(c):x}")
    return MANGLE_DELIM + name.lower().replace("-", "H").replace(" ", "_") + MANGLE_DELIM


def _decode_char(match: re.Match) -> str:
    name = match.group(1)
    try:
        return unicodedata.lookup(name.replace("_", " ").replace("H", "-").upper())
    except KeyError:
        pass
    try:
        return chr(int(name[1:], 16))
    except ValueError:
        # Not an encoded character, keep the text as written
        return match.group(0)


def mangle(name: str) -> str:
    """Normalise an identifier so equivalent spellings compare equal.

    - `foo-bar` -> `foo_bar` (leading underscores and hyphens are kept)
    - characters that cannot appear in a Python identifier are spelled out:
      `valid?` -> `thx_validXquestion_markX`
    - dotted names are mangled segment by segment
    """
    if not name or set(name) == {"."}:
        return name
    if "." in name:
        return ".".join(mangle(part) if part else part for part in name.split("."))

    body = name.lstrip("_")
    leading = name[: len(name) - len(body)]
    if body:
        body = body[0] + body[1:].replace("-", "_")
    if (leading + body).isidentifier():
        return leading + body
    encoded = "".join(c if ("_" + c).isidentifier() else _encode_char(c) for c in body)
    return leading + MANGLE_PREFIX + encoded


def unmangle(name: str) -> str:
    """Inverse of `mangle`, producing the conventional Lisp spelling."""
    if not name or set(name) == {"."}:
        return name
    if "." in name:
        return ".".join(unmangle(part) if part else part for part in name.split("."))

    body = name.lstrip("_")
    leading = name[: len(name) - len(body)]
    if body.startswith(MANGLE_PREFIX):
        body = _ENCODED_CHAR_RE.sub(_decode_char, body[len(MANGLE_PREFIX):])
    return leading + body.replace("_", "-")
