"""Render theta models back to reader syntax.

`to_source(read(s))` reproduces `s` up to whitespace and quote shorthands, which
makes expansions easy to read in tests and when debugging macros.
"""

from __future__ import annotations

from theta import SExpression
from theta.types.models import Dict, Expression, List, Set, Tuple, mangle
from theta.types.symbol import Keyword, Symbol

# ----------------- Shorthands -----------------
PREFIXES = {
    mangle("quote"): "'",
    mangle("quasiquote"): "`",
    mangle("unquote"): "~",
    mangle("unquote-splice"): "~@",
    mangle("unpack-iterable"): "#*",
    mangle("unpack-mapping"): "#**",
}

BRACKETS = {
    Expression: ("(", ")"),
    List: ("[", "]"),
    Dict: ("{", "}"),
    Tuple: ("#(", ")"),
    Set: ("#{", "}"),
}


def to_source(form: SExpression) -> str:
    if isinstance(form, (Symbol, Keyword)):
        return str(form)
    if isinstance(form, Expression) and len(form) == 2 and isinstance(form[0], Symbol):
        prefix = PREFIXES.get(mangle(form[0].id))
        if prefix is not None:
            return prefix + to_source(form[1])
    for cls, (opener, closer) in BRACKETS.items():
        if type(form) is cls:
            return opener + " ".join(to_source(x) for x in form) + closer
    if isinstance(form, str):
        # Lisp strings use double quotes
        return '"' + form.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'
    return repr(form)
