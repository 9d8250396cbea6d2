"""Symbol substitution.

`expand_symbols` rewrites every *free* occurrence of a symbol through a
replacement callback. A symbol is free unless it is quoted or bound by a form
enclosing it in the tree being walked:

- parameters of `fn`, `defn` and `defmacro`
- the name bound by an `except` clause
- capture names of a `match` clause
- names declared `global` or `nonlocal`

The walk carries two values down the recursion: the set of protected (bound)
names and the quasiquote depth. Each handler returns the rewritten form together
with the protected set in effect after it, which is how a `global` declaration
reaches its later siblings. Binder forms return the set they were given, so
their own names never leak outward.

Dispatch is by mangled head name through `HANDLERS`; heads found only in
SPECIAL_FORMS keep their head and walk their tail, everything else is an
ordinary call whose elements are all walked.
"""

from __future__ import annotations

from typing import Callable, FrozenSet, Iterable, Tuple as PyTuple

from theta import SExpression, SymbolExpander
from theta.errors import ThetaQuotationUnderflow, ThetaSyntaxError
from theta.expansion.lambda_list import parse_lambda_list
from theta.expansion.special_forms import (
    DOT,
    EXCEPT,
    QUASIQUOTE,
    QUOTE,
    REQUIRE,
    SPECIAL_FORMS,
    UNPACK_ITERABLE,
    UNPACK_MAPPING,
    UNQUOTE,
    UNQUOTE_SPLICE,
    UNQUOTES,
)
from theta.types.models import (
    Dict,
    Expression,
    List,
    Sequence,
    Tuple,
    head_name,
    is_call,
    is_dotted,
    mangle,
    rebuild,
)
from theta.types.symbol import Keyword, Symbol

Protected = FrozenSet[str]
Walked = PyTuple[SExpression, Protected]
Handler = Callable[[Expression, SymbolExpander, Protected, int], Walked]

WILDCARD = Symbol("_")
AS = Keyword("as")
IF = Keyword("if")
OR_PATTERN = mangle("|")


def expand_symbols(
    form: SExpression,
    expander: SymbolExpander,
    protected: Iterable[Symbol | str] = frozenset(),
    quote_level: int = 0,
) -> SExpression:
    """Replace the free symbols of `form` with `expander(symbol)`.

    `protected` names are treated as bound and left alone. The replacement
    returned by `expander` is used verbatim; it is not walked again.
    """
    names = frozenset(mangle(p.id if isinstance(p, Symbol) else p) for p in protected)
    result, _ = _walk(form, expander, names, quote_level)
    return result


def _walk(form: SExpression, expander: SymbolExpander, protected: Protected, quote_level: int) -> Walked:
    if quote_level:
        return _walk_quoted(form, expander, protected, quote_level)

    if isinstance(form, Symbol):
        if is_dotted(form):
            return _walk(_dotted_to_expression(form), expander, protected, quote_level)
        return _expand_symbol(form, expander, protected), protected

    if is_call(form):
        head = head_name(form)
        handler = HANDLERS.get(head)
        if handler is None:
            handler = _handle_special_form if head in SPECIAL_FORMS else _handle_coll
        return handler(form, expander, protected, quote_level)

    if isinstance(form, Sequence):
        return _handle_coll(form, expander, protected, quote_level)
    return form, protected


def _walk_each(
    forms: Iterable[SExpression], expander: SymbolExpander, protected: Protected, quote_level: int
) -> PyTuple[list, Protected]:
    """Walk sibling forms left to right, threading the protected set."""
    result = []
    for form in forms:
        form, protected = _walk(form, expander, protected, quote_level)
        result.append(form)
    return result, protected


def _expand_symbol(sym: Symbol, expander: SymbolExpander, protected: Protected) -> SExpression:
    if mangle(sym.id) in protected:
        return sym
    replacement = expander(sym)
    return sym if replacement == sym else replacement


def _dotted_to_expression(sym: Symbol) -> Expression:
    # a.b.c -> (. a b c)
    return Expression([Symbol(DOT), *(Symbol(part) for part in sym.id.split("."))])


# ------------------------------------------------------------
# Quotation
# ------------------------------------------------------------

def _requote(form: Expression, expander: SymbolExpander, protected: Protected, quote_level: int) -> Walked:
    if quote_level < 0:
        raise ThetaQuotationUnderflow(f"unquote outside of quasiquote: {form!r}")
    tail, protected = _walk_each(form[1:], expander, protected, quote_level)
    return Expression([form[0], *tail]), protected


def _walk_quoted(form: SExpression, expander: SymbolExpander, protected: Protected, quote_level: int) -> Walked:
    if is_call(form):
        head = head_name(form)
        if head in UNQUOTES:
            return _requote(form, expander, protected, quote_level - 1)
        if head == QUASIQUOTE:
            return _requote(form, expander, protected, quote_level + 1)
    if isinstance(form, Sequence):
        items, protected = _walk_each(form, expander, protected, quote_level)
        return rebuild(form, items), protected
    return form, protected


def _handle_quasiquote(form, expander, protected, quote_level) -> Walked:
    return _requote(form, expander, protected, quote_level + 1)


def _handle_unquote(form, expander, protected, quote_level) -> Walked:
    return _requote(form, expander, protected, quote_level - 1)


# ------------------------------------------------------------
# Generic handlers
# ------------------------------------------------------------

def _handle_base(form, expander, protected, quote_level) -> Walked:
    return form, protected


def _handle_coll(form, expander, protected, quote_level) -> Walked:
    items, protected = _walk_each(form, expander, protected, quote_level)
    return rebuild(form, items), protected


def _handle_special_form(form, expander, protected, quote_level) -> Walked:
    # Keep the keyword in head position, walk the rest
    tail, protected = _walk_each(form[1:], expander, protected, quote_level)
    return Expression([form[0], *tail]), protected


# ------------------------------------------------------------
# Binders and other specific forms
# ------------------------------------------------------------

def _handle_dot(form, expander, protected, quote_level) -> Walked:
    if len(form) < 2:
        return form, protected
    obj, protected = _walk(form[1], expander, protected, quote_level)
    attrs = []
    for item in form[2:]:
        # Bare symbols here name attributes, not bindings
        if not isinstance(item, Symbol):
            item, protected = _walk(item, expander, protected, quote_level)
        attrs.append(item)
    return Expression([form[0], obj, *attrs]), protected


def _handle_except(form, expander, protected, quote_level) -> Walked:
    tail = form[1:]
    inner = protected
    # (except [e ValueError] ...) binds e for this clause only
    if tail and isinstance(tail[0], List) and len(tail[0]) == 2 and isinstance(tail[0][0], Symbol):
        inner = protected | {mangle(tail[0][0].id)}
    items, _ = _walk_each(tail, expander, inner, quote_level)
    return Expression([form[0], *items]), protected


def _walk_lambda_list(params, expander, protected, quote_level) -> PyTuple[List, Protected]:
    lambda_list = parse_lambda_list(params)

    def walk_default(param):
        if isinstance(param, List):
            # Defaults are evaluated in the enclosing scope
            default, _ = _walk(param[1], expander, protected, quote_level)
            return List([param[0], default])
        return param

    lambda_list.positional = [walk_default(p) for p in lambda_list.positional]
    lambda_list.keyword = [walk_default(p) for p in lambda_list.keyword]
    names = frozenset(mangle(name.id) for name in lambda_list.names())
    return lambda_list.to_model(), names


def _handle_fn(form, expander, protected, quote_level) -> Walked:
    # (fn [:async] [params] body...)
    out = [form[0]]
    rest = list(form[1:])
    while rest and isinstance(rest[0], Keyword):
        out.append(rest.pop(0))
    if not rest:
        raise ThetaSyntaxError(f"{form[0]} requires a parameter list")
    params, names = _walk_lambda_list(rest.pop(0), expander, protected, quote_level)
    body, _ = _walk_each(rest, expander, protected | names, quote_level)
    return Expression([*out, params, *body]), protected


def _handle_defn(form, expander, protected, quote_level) -> Walked:
    # (defn [decorators] :async name [params] body...)
    out = [form[0]]
    rest = list(form[1:])
    if rest and isinstance(rest[0], List):
        decorators, protected = _walk(rest.pop(0), expander, protected, quote_level)
        out.append(decorators)
    while rest and isinstance(rest[0], Keyword):
        out.append(rest.pop(0))
    if len(rest) < 2 or not isinstance(rest[0], Symbol):
        raise ThetaSyntaxError(f"{form[0]} requires a name and a parameter list")
    # The defined name is never substituted
    out.append(rest.pop(0))
    params, names = _walk_lambda_list(rest.pop(0), expander, protected, quote_level)
    body, _ = _walk_each(rest, expander, protected | names, quote_level)
    return Expression([*out, params, *body]), protected


def _handle_defclass(form, expander, protected, quote_level) -> Walked:
    if len(form) < 2:
        return _handle_special_form(form, expander, protected, quote_level)
    rest, protected = _walk_each(form[2:], expander, protected, quote_level)
    return Expression([form[0], form[1], *rest]), protected


def _handle_global(form, expander, protected, quote_level) -> Walked:
    declared = frozenset(mangle(sym.id) for sym in form[1:] if isinstance(sym, Symbol))
    return form, protected | declared


# ------------------------------------------------------------
# match
# ------------------------------------------------------------

def _walk_pattern(pattern, expander, protected, quote_level) -> PyTuple[SExpression, Protected]:
    """Walk a match pattern, returning it with the names it captures.

    Capture names are left alone; value sub-patterns are substituted.
    """
    if isinstance(pattern, Symbol):
        if pattern == WILDCARD:
            return pattern, frozenset()
        if is_dotted(pattern):
            value, _ = _walk(pattern, expander, protected, quote_level)
            return value, frozenset()
        return pattern, frozenset({mangle(pattern.id)})

    if isinstance(pattern, (List, Tuple)):
        items, names = [], frozenset()
        for sub in pattern:
            sub, captured = _walk_pattern(sub, expander, protected, quote_level)
            items.append(sub)
            names |= captured
        return rebuild(pattern, items), names

    if isinstance(pattern, Dict):
        items, names = [], frozenset()
        elements = list(pattern)
        while elements:
            key = elements.pop(0)
            if head_name(key) == UNPACK_MAPPING:
                key, captured = _walk_pattern(key, expander, protected, quote_level)
                items.append(key)
                names |= captured
                continue
            if not elements:
                raise ThetaSyntaxError(f"Mapping pattern has a key without a value: {pattern!r}")
            key, _ = _walk(key, expander, protected, quote_level)
            value, captured = _walk_pattern(elements.pop(0), expander, protected, quote_level)
            items.extend((key, value))
            names |= captured
        return Dict(items), names

    if is_call(pattern):
        head = head_name(pattern)
        if head == DOT:
            value, _ = _walk(pattern, expander, protected, quote_level)
            return value, frozenset()
        if head in (UNPACK_ITERABLE, UNPACK_MAPPING):
            if len(pattern) == 2 and isinstance(pattern[1], Symbol) and pattern[1] != WILDCARD:
                return pattern, frozenset({mangle(pattern[1].id)})
            return pattern, frozenset()
        if head == OR_PATTERN:
            items, names = [pattern[0]], frozenset()
            for alternative in pattern[1:]:
                alternative, captured = _walk_pattern(alternative, expander, protected, quote_level)
                items.append(alternative)
                names |= captured
            return Expression(items), names
        # Class pattern: (Point :x x y), the class is a value
        cls, _ = _walk(pattern[0], expander, protected, quote_level)
        items, names = [cls], frozenset()
        for arg in pattern[1:]:
            if not isinstance(arg, Keyword):
                arg, captured = _walk_pattern(arg, expander, protected, quote_level)
                names |= captured
            items.append(arg)
        return Expression(items), names

    return pattern, frozenset()


def _handle_match(form, expander, protected, quote_level) -> Walked:
    # (match subject pattern [:as name] [:if guard] body ...)
    if len(form) < 2:
        raise ThetaSyntaxError("match requires a subject")
    subject, protected = _walk(form[1], expander, protected, quote_level)
    out = [form[0], subject]
    clauses = list(form[2:])
    while clauses:
        pattern, names = _walk_pattern(clauses.pop(0), expander, protected, quote_level)
        options = []
        while clauses and clauses[0] in (AS, IF):
            option = clauses.pop(0)
            if not clauses:
                raise ThetaSyntaxError(f"match option {option} requires an argument")
            argument = clauses.pop(0)
            if option == AS:
                if not isinstance(argument, Symbol) or is_dotted(argument):
                    raise ThetaSyntaxError(f"match :as requires a plain name, got {argument!r}")
                names |= {mangle(argument.id)}
            options.append((option, argument))
        if not clauses:
            raise ThetaSyntaxError("match clause is missing a body")
        inner = protected | names
        out.append(pattern)
        for option, argument in options:
            if option == IF:
                argument, _ = _walk(argument, expander, inner, quote_level)
            out.extend((option, argument))
        body, _ = _walk(clauses.pop(0), expander, inner, quote_level)
        out.append(body)
    return Expression(out), protected


HANDLERS: dict[str, Handler] = {
    DOT: _handle_dot,
    mangle("fn"): _handle_fn,
    mangle("defn"): _handle_defn,
    mangle("defmacro"): _handle_defn,
    QUOTE: _handle_base,
    REQUIRE: _handle_base,
    mangle("import"): _handle_base,
    mangle("eval-and-compile"): _handle_base,
    mangle("eval-when-compile"): _handle_base,
    QUASIQUOTE: _handle_quasiquote,
    UNQUOTE: _handle_unquote,
    UNQUOTE_SPLICE: _handle_unquote,
    EXCEPT: _handle_except,
    mangle("global"): _handle_global,
    mangle("nonlocal"): _handle_global,
    mangle("defclass"): _handle_defclass,
    mangle("match"): _handle_match,
}
