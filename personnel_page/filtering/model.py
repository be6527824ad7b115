"""Filter expression model.

A filter is a tree: a :class:`Group` combines :class:`Condition` leaves and
nested groups with ``AND`` or ``OR``. The root of every filter is a group.
Serialized form (shared with the UI builder and the HTTP API)::

    {"type": "group", "operator": "AND", "children": [
        {"type": "condition", "field": "companhia", "comparator": "=", "value": "1ª CIA"},
        {"type": "group", "operator": "OR", "children": [...]},
    ]}

The model only checks shape. Whether fields, comparators and operators make
sense is the job of :mod:`.validator`.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from .errors import MalformedTreeError
from .types import GroupOperator

# Deepest nesting accepted when rebuilding a tree, the root group being level 1.
MAX_TREE_DEPTH = 32

Scalar = Union[str, int, float]
ConditionValue = Union[Scalar, list[str]]


@dataclass
class Condition:
    field: str
    comparator: str
    value: ConditionValue

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, list) else self.value
        return {"type": "condition", "field": self.field, "comparator": self.comparator, "value": value}


@dataclass
class Group:
    operator: str = GroupOperator.AND.value
    children: list[Union["Condition", "Group"]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "group",
            "operator": self.operator,
            "children": [child.to_dict() for child in self.children],
        }

    @property
    def is_empty(self) -> bool:
        return not self.children


Node = Union[Condition, Group]
FilterTree = Group


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _condition_from_dict(data: dict[str, Any], path: str) -> Condition:
    for key in ("field", "comparator", "value"):
        if key not in data:
            raise MalformedTreeError(f"condition is missing '{key}'", path)
    if not isinstance(data["field"], str):
        raise MalformedTreeError("condition field must be a string", path)
    if not isinstance(data["comparator"], str):
        raise MalformedTreeError("condition comparator must be a string", path)

    value = data["value"]
    if isinstance(value, (list, tuple)):
        if not all(isinstance(v, str) for v in value):
            raise MalformedTreeError("list values may only contain strings", path)
        value = list(value)
    elif not _is_scalar(value):
        raise MalformedTreeError("condition value must be a string, a number or a list of strings", path)

    return Condition(field=data["field"], comparator=data["comparator"], value=value)


def _node_from_dict(data: Any, path: str, depth: int, max_depth: int) -> Node:
    if not isinstance(data, dict):
        raise MalformedTreeError("expected an object", path)
    node_type = data.get("type")
    if node_type == "condition":
        return _condition_from_dict(data, path)
    if node_type == "group":
        if depth > max_depth:
            raise MalformedTreeError("tree is nested too deeply", path)
        if "operator" not in data:
            raise MalformedTreeError("group is missing 'operator'", path)
        if not isinstance(data["operator"], str):
            raise MalformedTreeError("group operator must be a string", path)
        children = data.get("children")
        if not isinstance(children, list):
            raise MalformedTreeError("group children must be a list", path)
        return Group(
            operator=data["operator"],
            children=[
                _node_from_dict(child, f"{path}.children[{i}]", depth + 1, max_depth)
                for i, child in enumerate(children)
            ],
        )
    raise MalformedTreeError(f"unknown node type {node_type!r}", path)


def tree_from_dict(data: Any, max_depth: int = MAX_TREE_DEPTH) -> FilterTree:
    """Rebuild a filter tree from its plain nested-object form.

    :param max_depth: Deepest accepted nesting, the root group being level 1
    :raises MalformedTreeError: If the input does not have the expected shape,
        is nested deeper than ``max_depth`` or the root is not a group.
    """
    node = _node_from_dict(data, "$", 1, max_depth)
    if not isinstance(node, Group):
        raise MalformedTreeError("the root of a filter tree must be a group")
    return node


def tree_from_json(raw: str | bytes, max_depth: int = MAX_TREE_DEPTH) -> FilterTree:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedTreeError(f"invalid JSON: {e}") from e
    except RecursionError as e:
        # The decoder itself gives up on absurdly nested input.
        raise MalformedTreeError("tree is nested too deeply") from e
    return tree_from_dict(data, max_depth)


def tree_to_dict(tree: FilterTree) -> dict[str, Any]:
    return tree.to_dict()


def iter_conditions(node: Node) -> Iterator[Condition]:
    """Yield every condition of the tree, depth first, in child order."""
    if isinstance(node, Condition):
        yield node
        return
    for child in node.children:
        yield from iter_conditions(child)


def iter_nodes(node: Node, path: str = "$") -> Iterator[tuple[str, Node]]:
    """Yield ``(path, node)`` pairs, depth first, starting with ``node`` itself."""
    yield path, node
    if isinstance(node, Group):
        for i, child in enumerate(node.children):
            yield from iter_nodes(child, f"{path}.children[{i}]")
