"""Full macro expansion.

`macroexpand_all` walks a form depth-first, left to right, expanding every
macro call it can reach. Quotation is tracked with a depth counter passed down
the recursion: code under `quasiquote` is not expanded, except below a matching
`unquote`/`unquote-splice`, and `quote` stops the walk altogether.
"""

from __future__ import annotations

import logging

from theta import SExpression
from theta.errors import ThetaQuotationUnderflow
from theta.expansion.special_forms import (
    EXCEPT,
    QUASIQUOTE,
    QUOTE,
    REQUIRE,
    UNPACK_MAPPING,
    UNQUOTES,
)
from theta.types.models import Expression, Sequence, head_name, is_call, rebuild

logger = logging.getLogger(__name__)


def _requote(form: Expression, macros, quote_level: int) -> Expression:
    """Rebuild `form` with its tail expanded at the new quotation depth."""
    if quote_level < 0:
        raise ThetaQuotationUnderflow(f"unquote outside of quasiquote: {form!r}")
    return Expression([form[0], *(macroexpand_all(x, macros, quote_level) for x in form[1:])])


def _walk(form: Sequence, macros, quote_level: int) -> Sequence:
    return rebuild(form, (macroexpand_all(x, macros, quote_level) for x in form))


def macroexpand_all(form: SExpression, macros, quote_level: int = 0) -> SExpression:
    """Fully expand `form` using the MacroEnvironment `macros`."""
    if not is_call(form):
        if isinstance(form, Sequence):
            return _walk(form, macros, quote_level)
        return form

    head = head_name(form)

    if quote_level:
        if head in UNQUOTES:
            return _requote(form, macros, quote_level - 1)
        if head == QUASIQUOTE:
            return _requote(form, macros, quote_level + 1)
        # Code under quotation is data, never a macro call
        return _walk(form, macros, quote_level)

    if head == QUOTE:
        return form
    if head == QUASIQUOTE:
        return _requote(form, macros, quote_level + 1)
    if head in UNQUOTES:
        return _requote(form, macros, quote_level - 1)
    if head == REQUIRE:
        macros.compile_side_effect(form)
        return form
    if head in (EXCEPT, UNPACK_MAPPING):
        # Reserved words, never looked up as macros
        return Expression([form[0], *(macroexpand_all(x, macros, quote_level) for x in form[1:])])

    expansion = macros.try_expand(form)
    if expansion is None:
        return _walk(form, macros, quote_level)
    logger.debug("%s expanded; re-expanding result", form[0])
    return macroexpand_all(expansion, macros, quote_level)
