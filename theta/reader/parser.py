"""
  Reader: lexer and parser producing theta models.

- Streaming, lazy parsing
- Emits theta models for compound forms and Python primitives for atoms:

    - ( ... )   -> Expression
    - [ ... ]   -> List
    - { ... }   -> Dict (flat key/value elements)
    - #( ... )  -> Tuple
    - #{ ... }  -> Set
    - 'x `x ~x ~@x -> (quote x) (quasiquote x) (unquote x) (unquote-splice x)
    - #*x #**x  -> (unpack-iterable x) (unpack-mapping x)
    - :name     -> Keyword
    - symbols   -> Symbol
    - strings   -> str
    - numbers   -> int/float
    - None/True/False -> None/True/False
"""

from __future__ import annotations

import ast
import re
from typing import Iterator, Optional

from theta import SExpression
from theta.errors import ThetaSyntaxError
from theta.types.models import Dict, Expression, List, Set, Tuple
from theta.types.symbol import Keyword, Symbol

TOKEN_RE = re.compile(
    r"(?P<unquote_splice>~@)"  # ~@
    r"|(?P<unquote>~)"  # ~
    r"|(?P<quote>')"  # '
    r"|(?P<quasiquote>`)"  # `
    r"|(?P<unpack_mapping>\#\*\*)"  # #**
    r"|(?P<unpack_iterable>\#\*)"  # #*
    r"|(?P<tuple>\#\()"  # #(
    r"|(?P<set>\#\{)"  # #{
    r"|(?P<lparen>\()"  # (
    r"|(?P<rparen>\))"  # )
    r"|(?P<lbracket>\[)"  # [
    r"|(?P<rbracket>\])"  # ]
    r"|(?P<lbrace>\{)"  # {
    r"|(?P<rbrace>\})"  # }
    r'|(?P<string>"(?:\\.|[^\\"])*")'  # double-quoted strings
    r'|(?P<symbol>[^\s()\[\]{}\'"`~;]+)'  # fallback: symbols, numbers, keywords
)

WHITESPACE_AND_COMMENTS_RE = re.compile(r"(?:\s+|;[^\n]*)+")

INT_RE = re.compile(r"[-+]?\d+\Z")
FLOAT_RE = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+(?=[eE]))(?:[eE][-+]?\d+)?\Z")

CONSTANTS = {"None": None, "True": True, "False": False}

QUOTE_FORMS: dict[str, Symbol] = {
    "quote": Symbol("quote"),
    "quasiquote": Symbol("quasiquote"),
    "unquote": Symbol("unquote"),
    "unquote_splice": Symbol("unquote-splice"),
    "unpack_iterable": Symbol("unpack-iterable"),
    "unpack_mapping": Symbol("unpack-mapping"),
}

OPENERS = {
    "lparen": ("rparen", Expression),
    "lbracket": ("rbracket", List),
    "lbrace": ("rbrace", Dict),
    "tuple": ("rparen", Tuple),
    "set": ("rbrace", Set),
}

CLOSERS = {"rparen", "rbracket", "rbrace"}


def lex(source: str) -> Iterator[tuple[str, str]]:
    """Token generator: yields (token_type, token_value) tuples."""
    pos = 0
    n = len(source)
    while pos < n:
        skipped = WHITESPACE_AND_COMMENTS_RE.match(source, pos)
        if skipped:
            pos = skipped.end()
            if pos >= n:
                break
        match = TOKEN_RE.match(source, pos)
        if not match:
            raise ThetaSyntaxError(f"Unexpected char at {pos}: {source[pos]!r}")
        yield match.lastgroup, match.group()
        pos = match.end()


def parse_atom(token: str) -> SExpression:
    if token in CONSTANTS:
        return CONSTANTS[token]
    if INT_RE.match(token):
        return int(token)
    if FLOAT_RE.match(token):
        return float(token)
    if token.startswith(":") and len(token) > 1:
        return Keyword(token[1:])
    return Symbol(token)


class TokenStream:
    def __init__(self, token_iter: Iterator[tuple[str, str]]):
        self.tokens = iter(token_iter)
        self.buffer: list[tuple[str, str]] = []

    def peek(self) -> tuple[Optional[str], Optional[str]]:
        if not self.buffer:
            try:
                self.buffer.append(next(self.tokens))
            except StopIteration:
                return None, None
        return self.buffer[0]

    def advance(self) -> tuple[Optional[str], Optional[str]]:
        if self.buffer:
            return self.buffer.pop(0)
        return next(self.tokens, (None, None))

    def _parse_sequence(self, closer: str, cls: type) -> SExpression:
        items = []
        while True:
            tok_type, tok_val = self.peek()
            if tok_type is None:
                raise ThetaSyntaxError(f"Unexpected EOF while reading {cls.__name__}")
            if tok_type == closer:
                self.advance()
                break
            if tok_type in CLOSERS:
                raise ThetaSyntaxError(f"Mismatched {tok_val!r} while reading {cls.__name__}")
            items.append(self.parse_expr())
        if cls is Dict and len(items) % 2:
            raise ThetaSyntaxError("Dict literal needs an even number of elements")
        return cls(items)

    def parse_expr(self) -> SExpression:
        tok_type, tok_val = self.advance()
        if tok_type is None:
            return None

        if tok_type == "symbol":
            return parse_atom(tok_val)

        if tok_type == "string":
            return ast.literal_eval(tok_val)

        # Quote forms and unpacking markers wrap the next form
        if tok_type in QUOTE_FORMS:
            if self.peek()[0] is None:
                raise ThetaSyntaxError(f"{tok_val!r} at end of input")
            return Expression([QUOTE_FORMS[tok_type], self.parse_expr()])

        if tok_type in OPENERS:
            closer, cls = OPENERS[tok_type]
            return self._parse_sequence(closer, cls)

        raise ThetaSyntaxError(f"Unexpected {tok_val!r}")

    def parse_all(self) -> Iterator[SExpression]:
        while True:
            tok_type, _ = self.peek()
            if tok_type is None:
                break
            yield self.parse_expr()


def read_many(source: str) -> list[SExpression]:
    """Read every form in `source`."""
    return list(TokenStream(lex(source)).parse_all())


def read(source: str) -> SExpression:
    """Read exactly one form from `source`."""
    forms = read_many(source)
    if len(forms) != 1:
        raise ThetaSyntaxError(f"Expected exactly one form, found {len(forms)}")
    return forms[0]
