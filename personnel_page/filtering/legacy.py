"""Conversion of the old flat query parameters into filter trees.

Older call sites filter by a handful of ``?companhia=...&posto=...`` style
parameters plus a free-text ``search``. They are turned into the same tree
shape as everything else so there is a single execution path.
"""

from typing import Any, Mapping

from .model import Condition, FilterTree, Group
from .types import Comparator, GroupOperator

# Flat parameter name -> standard field token, in the order conditions are emitted.
SIMPLE_FILTER_FIELDS: dict[str, str] = {
    "companhia": "companhia",
    "posto": "postoGraduacao",
    "situacao": "situacao",
    "missaoOp": "missaoOp",
}

SEARCH_PARAMETER = "search"

SEARCH_FIELDS: tuple[str, ...] = ("nomeCompleto", "nomeGuerra", "cpf", "identidade")

LEGACY_PARAMETERS: frozenset[str] = frozenset(SIMPLE_FILTER_FIELDS) | {SEARCH_PARAMETER}


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _populated(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


def search_group(term: str) -> Group:
    """OR-group matching ``term`` as a case-insensitive substring of the searchable text fields."""
    pattern = f"%{_escape_like(term.strip())}%"
    return Group(
        operator=GroupOperator.OR.value,
        children=[Condition(field=token, comparator=Comparator.ILIKE.value, value=pattern) for token in SEARCH_FIELDS],
    )


def has_simple_filters(flat: Mapping[str, Any]) -> bool:
    return any(_populated(flat.get(key)) for key in LEGACY_PARAMETERS)


def from_simple_filters(flat: Mapping[str, Any]) -> FilterTree:
    """Build a filter tree from flat parameters.

    Every populated field parameter becomes an equality condition. A ``search``
    term becomes an OR-group; it is AND-ed with the equality conditions when
    there are any, otherwise returned on its own. No populated parameters
    yield an empty AND-group, i.e. no constraint.
    """
    conditions: list[Condition | Group] = [
        Condition(field=token, comparator=Comparator.EQ.value, value=str(flat[key]).strip())
        for key, token in SIMPLE_FILTER_FIELDS.items()
        if _populated(flat.get(key))
    ]

    search = flat.get(SEARCH_PARAMETER)
    if _populated(search):
        group = search_group(str(search))
        if not conditions:
            return group
        return Group(operator=GroupOperator.AND.value, children=conditions + [group])

    return Group(operator=GroupOperator.AND.value, children=conditions)
