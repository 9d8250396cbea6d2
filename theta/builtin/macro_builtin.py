"""Builtin macro transformers for theta (implemented in Python).
"""

from __future__ import annotations

import logging

from theta import SExpression
from theta.errors import (
    ThetaDestructureError,
    ThetaDottedTargetError,
    ThetaInvalidBindTarget,
    ThetaMalformedBindings,
)
from theta.expansion.special_forms import UNPACK_ITERABLE
from theta.expansion.symbols import expand_symbols
from theta.types.macro_environment import MacroEnvironment
from theta.types.models import Dict, Expression, List, Tuple, head_name, is_dotted, mangle, unmangle
from theta.types.symbol import Symbol

logger = logging.getLogger(__name__)

DO = Symbol("do")
SETV = Symbol("setv")
GET = Symbol("get")


def _check_bindings(bindings: SExpression, form_name: str) -> None:
    if not isinstance(bindings, List):
        raise ThetaMalformedBindings(f"{form_name} bindings must be a list, got {bindings!r}")
    if len(bindings) % 2:
        raise ThetaMalformedBindings(f"{form_name} bindings must be paired")


def _check_name(target: Symbol) -> None:
    if is_dotted(target):
        raise ThetaDottedTargetError(f"binding target may not contain a dot: {target}")
    # .attr shorthands and ... name no variable
    if target.id.startswith("."):
        raise ThetaInvalidBindTarget(f"binding target must be a plain name, got {target}")


def _pattern_leaves(pattern: List | Tuple) -> list[Symbol]:
    """Validate a destructuring pattern and return its distinct leaf names in order."""
    leaves: list[Symbol] = []
    seen: set[str] = set()

    def visit(target):
        if isinstance(target, Symbol):
            _check_name(target)
            if mangle(target.id) not in seen:
                seen.add(mangle(target.id))
                leaves.append(target)
        elif isinstance(target, Dict):
            raise ThetaDestructureError(f"cannot destructure into a mapping: {target!r}")
        elif isinstance(target, (List, Tuple)):
            for sub in target:
                visit(sub)
        elif isinstance(target, Expression):
            # #* rest is the only call-shaped target; (. obj attr), #** and
            # subscripts would assign to attributes or mappings
            if head_name(target) == UNPACK_ITERABLE and len(target) == 2:
                visit(target[1])
            else:
                raise ThetaDestructureError(f"unsupported destructuring target: {target!r}")
        else:
            raise ThetaInvalidBindTarget(
                f"bind targets must be symbols or destructuring patterns, not {type(target).__name__}"
            )

    visit(pattern)
    return leaves


def let_macro(args: tuple[SExpression, ...], env: MacroEnvironment) -> SExpression:
    """
    (let [x 1  [a #* b] xs] body...)
    => (do (setv _ns {}
                 (get _ns "x") 1
                 [_a _b] xs
                 (get _ns "a") _a
                 (get _ns "b") _b)
           body...)

    Every bound name in the body (and in later binding values) becomes a
    lookup into one fresh namespace dict, which gives block scoping and
    shadowing without Python-level locals. Bindings are evaluated one by one,
    left to right, each seeing the ones before it.
    """
    if not args:
        raise ThetaMalformedBindings("let requires a bindings list")
    bindings, body = args[0], list(args[1:])
    _check_bindings(bindings, "let")

    bindings = env.macro_expand_all(bindings)
    body = [env.macro_expand_all(form) for form in body]

    namespace = env.gen_sym("let")
    replacements: dict[str, SExpression] = {}

    def expander(symbol: Symbol) -> SExpression:
        return replacements.get(mangle(symbol.id), symbol)

    def lookup(name: Symbol) -> Expression:
        return Expression([GET, namespace, unmangle(mangle(name.id))])

    assignments: list[SExpression] = []
    for target, value in zip(bindings[::2], bindings[1::2]):
        if isinstance(target, Symbol):
            _check_name(target)
            # The value only sees bindings made before this one
            value = expand_symbols(value, expander)
            slot = lookup(target)
            assignments.extend((slot, value))
            replacements[mangle(target.id)] = slot
        elif isinstance(target, Dict):
            raise ThetaDestructureError(f"cannot destructure into a mapping: {target!r}")
        elif isinstance(target, (List, Tuple)):
            leaves = _pattern_leaves(target)
            placeholders = {mangle(leaf.id): env.gen_sym(leaf) for leaf in leaves}
            pattern = expand_symbols(target, lambda s: placeholders.get(mangle(s.id), s))
            value = expand_symbols(value, expander)
            assignments.extend((pattern, value))
            for leaf in leaves:
                slot = lookup(leaf)
                replacements[mangle(leaf.id)] = slot
                assignments.extend((slot, placeholders[mangle(leaf.id)]))
        else:
            raise ThetaInvalidBindTarget(
                f"bind targets must be symbols or destructuring patterns, not {type(target).__name__}"
            )

    logger.debug("let: %d binding(s) in namespace %s", len(bindings) // 2, namespace)
    body = expand_symbols(Expression([DO, *body]), expander)
    return Expression([DO, Expression([SETV, namespace, Dict(), *assignments]), *body[1:]])


def smacrolet_macro(args: tuple[SExpression, ...], env: MacroEnvironment) -> SExpression:
    """
    (smacrolet [name replacement ...] body...)
    => (do body...) with every free `name` replaced by its replacement code.
    """
    if not args:
        raise ThetaMalformedBindings("smacrolet requires a bindings list")
    bindings, body = args[0], list(args[1:])
    _check_bindings(bindings, "smacrolet")

    replacements: dict[str, SExpression] = {}
    for target, value in zip(bindings[::2], bindings[1::2]):
        if not isinstance(target, Symbol):
            raise ThetaInvalidBindTarget(
                f"smacrolet targets must be symbols, not {type(target).__name__}"
            )
        _check_name(target)
        replacements[mangle(target.id)] = value

    logger.debug("smacrolet: %s", ", ".join(unmangle(k) for k in replacements))
    body = [env.macro_expand_all(form) for form in body]
    return expand_symbols(
        Expression([DO, *body]), lambda s: replacements.get(mangle(s.id), s)
    )


def register(macro_env: MacroEnvironment) -> None:
    """Register builtin macros in the provided MacroEnvironment."""
    macro_env.define_macro(Symbol("let"), let_macro)
    macro_env.define_macro(Symbol("smacrolet"), smacrolet_macro)
