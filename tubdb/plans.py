"""Query plan nodes and the expressions evaluated over rows.

A row is a sequence of values and SQL NULL is ``None``.  A plan node's
``output_schema`` is the tuple of its output column names.
"""

from __future__ import annotations

import dataclasses
import operator
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Sequence

Row = Sequence[Any]


class JoinType(Enum):
    INVALID = auto()
    LEFT = auto()
    RIGHT = auto()
    INNER = auto()
    OUTER = auto()


class OrderByType(Enum):
    INVALID = auto()
    DEFAULT = auto()
    ASC = auto()
    DESC = auto()


class AggregationType(Enum):
    COUNT_STAR = auto()
    COUNT = auto()
    SUM = auto()
    MIN = auto()
    MAX = auto()


_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class ColumnValueExpression:
    """Column col_idx of the left (tuple_idx 0) or right (tuple_idx 1) input."""

    tuple_idx: int
    col_idx: int

    @property
    def children(self) -> tuple:
        return ()

    def evaluate(self, row: Row) -> Any:
        return row[self.col_idx]

    def evaluate_join(self, left: Row, right: Row) -> Any:
        return (left if self.tuple_idx == 0 else right)[self.col_idx]


@dataclass(frozen=True)
class ConstantExpression:
    value: Any

    @property
    def children(self) -> tuple:
        return ()

    def evaluate(self, row: Row) -> Any:
        return self.value

    def evaluate_join(self, left: Row, right: Row) -> Any:
        return self.value


@dataclass(frozen=True)
class ComparisonExpression:
    """Compare two expressions with one of = != < <= > >=; NULL on either side gives NULL."""

    left: Any
    right: Any
    op: str = "="

    def __post_init__(self) -> None:
        if self.op not in _COMPARISONS:
            raise ValueError(f"unknown comparison {self.op!r}")

    @property
    def children(self) -> tuple:
        return (self.left, self.right)

    def _compare(self, lhs: Any, rhs: Any) -> bool | None:
        if lhs is None or rhs is None:
            return None
        return _COMPARISONS[self.op](lhs, rhs)

    def evaluate(self, row: Row) -> bool | None:
        return self._compare(self.left.evaluate(row), self.right.evaluate(row))

    def evaluate_join(self, left: Row, right: Row) -> bool | None:
        return self._compare(self.left.evaluate_join(left, right), self.right.evaluate_join(left, right))


@dataclass(frozen=True)
class LogicExpression:
    """AND or OR of two expressions under three-valued logic."""

    left: Any
    right: Any
    op: str = "and"

    def __post_init__(self) -> None:
        if self.op not in ("and", "or"):
            raise ValueError(f"unknown logic operator {self.op!r}")

    @property
    def children(self) -> tuple:
        return (self.left, self.right)

    def _combine(self, lhs: Any, rhs: Any) -> bool | None:
        decisive = self.op == "or"
        if lhs is not None and bool(lhs) is decisive:
            return decisive
        if rhs is not None and bool(rhs) is decisive:
            return decisive
        if lhs is None or rhs is None:
            return None
        return not decisive

    def evaluate(self, row: Row) -> bool | None:
        return self._combine(self.left.evaluate(row), self.right.evaluate(row))

    def evaluate_join(self, left: Row, right: Row) -> bool | None:
        return self._combine(self.left.evaluate_join(left, right), self.right.evaluate_join(left, right))


@dataclass(frozen=True, kw_only=True)
class PlanNode:
    """A node of a query plan: its output columns and its input plans."""

    output_schema: tuple[str, ...] = ()
    children: tuple[PlanNode, ...] = ()

    _arity: int | None = dataclasses.field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_schema", tuple(self.output_schema))
        object.__setattr__(self, "children", tuple(self.children))
        if self._arity is not None and len(self.children) != self._arity:
            raise ValueError(f"{type(self).__name__} needs {self._arity} children, got {len(self.children)}")

    def clone_with_children(self, children: Sequence[PlanNode]) -> PlanNode:
        """A copy of this node with its inputs replaced."""
        return dataclasses.replace(self, children=tuple(children))


@dataclass(frozen=True, kw_only=True)
class _UnaryPlan(PlanNode):
    _arity: int | None = dataclasses.field(default=1, init=False, repr=False, compare=False)

    @property
    def child_plan(self) -> PlanNode:
        return self.children[0]


@dataclass(frozen=True, kw_only=True)
class _BinaryPlan(PlanNode):
    _arity: int | None = dataclasses.field(default=2, init=False, repr=False, compare=False)

    @property
    def left_plan(self) -> PlanNode:
        return self.children[0]

    @property
    def right_plan(self) -> PlanNode:
        return self.children[1]


@dataclass(frozen=True, kw_only=True)
class ValuesPlan(PlanNode):
    """Produces a fixed list of rows."""

    rows: tuple[tuple[Any, ...], ...] = ()
    _arity: int | None = dataclasses.field(default=0, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rows", tuple(tuple(row) for row in self.rows))
        super().__post_init__()


@dataclass(frozen=True, kw_only=True)
class FilterPlan(_UnaryPlan):
    predicate: Any


@dataclass(frozen=True, kw_only=True)
class LimitPlan(_UnaryPlan):
    limit: int


@dataclass(frozen=True, kw_only=True)
class SortPlan(_UnaryPlan):
    order_bys: tuple[tuple[OrderByType, Any], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "order_bys", tuple(tuple(o) for o in self.order_bys))
        super().__post_init__()


@dataclass(frozen=True, kw_only=True)
class TopNPlan(_UnaryPlan):
    order_bys: tuple[tuple[OrderByType, Any], ...] = ()
    n: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "order_bys", tuple(tuple(o) for o in self.order_bys))
        super().__post_init__()


@dataclass(frozen=True, kw_only=True)
class AggregationPlan(_UnaryPlan):
    group_bys: tuple[Any, ...] = ()
    aggregates: tuple[Any, ...] = ()
    agg_types: tuple[AggregationType, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "group_bys", tuple(self.group_bys))
        object.__setattr__(self, "aggregates", tuple(self.aggregates))
        object.__setattr__(self, "agg_types", tuple(self.agg_types))
        if len(self.aggregates) != len(self.agg_types):
            raise ValueError("each aggregate needs exactly one aggregation type")
        super().__post_init__()


@dataclass(frozen=True, kw_only=True)
class NestedLoopJoinPlan(_BinaryPlan):
    predicate: Any
    join_type: JoinType = JoinType.INNER


@dataclass(frozen=True, kw_only=True)
class HashJoinPlan(_BinaryPlan):
    left_key_expressions: tuple[Any, ...] = ()
    right_key_expressions: tuple[Any, ...] = ()
    join_type: JoinType = JoinType.INNER

    def __post_init__(self) -> None:
        object.__setattr__(self, "left_key_expressions", tuple(self.left_key_expressions))
        object.__setattr__(self, "right_key_expressions", tuple(self.right_key_expressions))
        super().__post_init__()