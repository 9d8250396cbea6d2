"""Parameter-list parsing for `fn`, `defn` and `defmacro`.

A parameter list such as

    [a [b 1] / c * d [e 2] #** kwargs]

splits into four sections:

- positional: required or defaulted parameters, including a `/` marker
- star:       the bare `*` marker or the `#* args` rest capture
- keyword:    keyword-only parameters following the star section
- kwargs:     the `#** kwargs` mapping capture, always last

A defaulted parameter is written `[name default]`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from theta import SExpression
from theta.errors import ThetaSyntaxError
from theta.expansion.special_forms import UNPACK_ITERABLE, UNPACK_MAPPING
from theta.types.models import Expression, List, head_name, is_dotted
from theta.types.symbol import Symbol

SLASH = Symbol("/")
STAR = Symbol("*")


@dataclass
class LambdaList:
    positional: list = field(default_factory=list)
    star: Optional[SExpression] = None
    keyword: list = field(default_factory=list)
    kwargs: Optional[Expression] = None

    def names(self) -> Iterator[Symbol]:
        """Every name the parameter list binds, in source order."""
        for param in self.positional + self.keyword:
            if param != SLASH:
                yield param_name(param)
        if isinstance(self.star, Expression):
            yield self.star[1]
        if self.kwargs is not None:
            yield self.kwargs[1]

    def to_model(self) -> List:
        items = list(self.positional)
        if self.star is not None:
            items.append(self.star)
        items.extend(self.keyword)
        if self.kwargs is not None:
            items.append(self.kwargs)
        return List(items)


def param_name(param: SExpression) -> Symbol:
    return param if isinstance(param, Symbol) else param[0]


def _check_name(name: SExpression) -> None:
    if not isinstance(name, Symbol) or is_dotted(name):
        raise ThetaSyntaxError(f"Malformed parameter list: invalid parameter name {name!r}")


def _check_param(param: SExpression) -> None:
    if isinstance(param, List):
        if len(param) != 2:
            raise ThetaSyntaxError(
                f"Malformed parameter list: defaulted parameter must be [name default], got {param!r}"
            )
        _check_name(param[0])
    else:
        _check_name(param)


def _check_capture(capture: Expression) -> None:
    if len(capture) != 2:
        raise ThetaSyntaxError(f"Malformed parameter list: bad capture {capture!r}")
    _check_name(capture[1])


def parse_lambda_list(params: SExpression) -> LambdaList:
    """Split a parameter list into its sections, validating its shape."""
    if not isinstance(params, List):
        raise ThetaSyntaxError(f"Parameter list must be a list, got {params!r}")

    result = LambdaList()
    section = "positional"
    for param in params:
        if section == "done":
            raise ThetaSyntaxError("Malformed parameter list: #** must be the last parameter")

        if param == SLASH:
            if section != "positional" or SLASH in result.positional:
                raise ThetaSyntaxError("Malformed parameter list: misplaced /")
            result.positional.append(param)
            continue

        head = head_name(param)
        if param == STAR or head == UNPACK_ITERABLE:
            if section != "positional":
                raise ThetaSyntaxError("Malformed parameter list: only one * or #* section allowed")
            if head == UNPACK_ITERABLE:
                _check_capture(param)
            result.star = param
            section = "keyword"
            continue

        if head == UNPACK_MAPPING:
            _check_capture(param)
            result.kwargs = param
            section = "done"
            continue

        _check_param(param)
        if section == "positional":
            result.positional.append(param)
        else:
            result.keyword.append(param)

    if result.star == STAR and not result.keyword:
        raise ThetaSyntaxError("Malformed parameter list: * must be followed by keyword-only parameters")
    return result
