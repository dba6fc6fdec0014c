"""Pull-based executors for scans of fixed rows, filters, limits, sorts, top-N and aggregation."""

from __future__ import annotations

import heapq
from abc import ABC, abstractmethod
from functools import cmp_to_key
from typing import Any, Callable, Iterator, Sequence

from .plans import (
    AggregationPlan,
    AggregationType,
    FilterPlan,
    LimitPlan,
    OrderByType,
    PlanNode,
    SortPlan,
    TopNPlan,
    ValuesPlan,
)

Row = tuple[Any, ...]


class Executor(ABC):
    """An operator that produces rows one at a time after being initialised."""

    def __init__(self, plan: PlanNode) -> None:
        self.plan = plan

    @property
    def output_schema(self) -> tuple[str, ...]:
        return self.plan.output_schema

    @abstractmethod
    def init(self) -> None:
        """Prepare to produce rows from the start."""

    @abstractmethod
    def next(self) -> Row | None:
        """The next row, or None once the rows are exhausted."""

    def __iter__(self) -> Iterator[Row]:
        self.init()
        while (row := self.next()) is not None:
            yield row


def _drain(executor: Executor) -> Iterator[Row]:
    while (row := executor.next()) is not None:
        yield tuple(row)


class ValuesExecutor(Executor):
    """Produces the fixed rows of a ValuesPlan."""

    def __init__(self, plan: ValuesPlan) -> None:
        super().__init__(plan)
        self._rows: Iterator[Row] = iter(())

    def init(self) -> None:
        self._rows = iter(self.plan.rows)

    def next(self) -> Row | None:
        return next(self._rows, None)


class FilterExecutor(Executor):
    """Passes on the child's rows for which the predicate is true (not false, not NULL)."""

    def __init__(self, plan: FilterPlan, child: Executor) -> None:
        super().__init__(plan)
        self.child = child

    def init(self) -> None:
        self.child.init()

    def next(self) -> Row | None:
        predicate = self.plan.predicate
        while (row := self.child.next()) is not None:
            value = predicate.evaluate(row)
            if value is not None and value:
                return row
        return None


class LimitExecutor(Executor):
    """Passes on at most plan.limit rows of the child."""

    def __init__(self, plan: LimitPlan, child: Executor) -> None:
        super().__init__(plan)
        self.child = child
        self._cursor = 0

    def init(self) -> None:
        self.child.init()
        self._cursor = 0

    def next(self) -> Row | None:
        if self._cursor == self.plan.limit:
            return None
        self._cursor += 1
        return self.child.next()


def _precedes(order_bys: Sequence[tuple[OrderByType, Any]], left: Row, right: Row) -> bool:
    """Whether left comes strictly before right under the ORDER BY clauses."""
    for order_type, expr in order_bys:
        lhs = expr.evaluate(left)
        rhs = expr.evaluate(right)
        comparable = lhs is not None and rhs is not None
        if comparable and lhs == rhs:
            continue
        less = comparable and lhs < rhs
        if order_type in (OrderByType.ASC, OrderByType.DEFAULT):
            return less
        if order_type is OrderByType.DESC:
            return not less
        return False
    return False


def _sort_key(order_bys: Sequence[tuple[OrderByType, Any]]) -> Callable[[Row], Any]:
    def compare(left: Row, right: Row) -> int:
        if _precedes(order_bys, left, right):
            return -1
        if _precedes(order_bys, right, left):
            return 1
        return 0

    return cmp_to_key(compare)


class SortExecutor(Executor):
    """Materialises the child's rows and produces them in ORDER BY order."""

    def __init__(self, plan: SortPlan, child: Executor) -> None:
        super().__init__(plan)
        self.child = child
        self._output: Iterator[Row] = iter(())

    def init(self) -> None:
        self.child.init()
        rows = list(_drain(self.child))
        rows.sort(key=_sort_key(self.plan.order_bys))
        self._output = iter(rows)

    def next(self) -> Row | None:
        return next(self._output, None)


class _HeapSlot:
    """Heap entry whose smallest element is the row that comes last in order."""

    __slots__ = ("row", "_order_bys")

    def __init__(self, row: Row, order_bys: Sequence[tuple[OrderByType, Any]]) -> None:
        self.row = row
        self._order_bys = order_bys

    def __lt__(self, other: _HeapSlot) -> bool:
        return _precedes(self._order_bys, other.row, self.row)


class TopNExecutor(Executor):
    """Produces the first plan.n rows in ORDER BY order, keeping only n rows at a time."""

    def __init__(self, plan: TopNPlan, child: Executor) -> None:
        super().__init__(plan)
        self.child = child
        self._rows: list[Row] = []
        self._output: Iterator[Row] = iter(())

    def init(self) -> None:
        self.child.init()
        order_bys = self.plan.order_bys
        limit = self.plan.n
        heap: list[_HeapSlot] = []
        for row in _drain(self.child):
            if len(heap) < limit:
                heapq.heappush(heap, _HeapSlot(row, order_bys))
            elif heap and _precedes(order_bys, row, heap[0].row):
                heapq.heapreplace(heap, _HeapSlot(row, order_bys))
        rows = []
        while heap:
            rows.append(heapq.heappop(heap).row)
        rows.reverse()
        self._rows = rows
        self._output = iter(rows)

    def next(self) -> Row | None:
        return next(self._output, None)

    def num_in_heap(self) -> int:
        """How many rows were kept."""
        return len(self._rows)


def _initial_values(agg_types: Sequence[AggregationType]) -> list[Any]:
    return [0 if agg is AggregationType.COUNT_STAR else None for agg in agg_types]


def _combine(agg: AggregationType, acc: Any, value: Any) -> Any:
    if agg is AggregationType.COUNT_STAR:
        return acc + 1
    if value is None:
        return acc
    if agg is AggregationType.COUNT:
        return 1 if acc is None else acc + 1
    if acc is None:
        return value
    if agg is AggregationType.SUM:
        return acc + value
    if agg is AggregationType.MIN:
        return min(acc, value)
    if agg is AggregationType.MAX:
        return max(acc, value)
    raise ValueError(f"unknown aggregation {agg!r}")


class AggregationExecutor(Executor):
    """Groups the child's rows and produces group values followed by aggregate values."""

    def __init__(self, plan: AggregationPlan, child: Executor) -> None:
        super().__init__(plan)
        self.child = child
        self._output: Iterator[Row] = iter(())

    def init(self) -> None:
        plan = self.plan
        groups: dict[Row, list[Any]] = {}
        self.child.init()
        for row in _drain(self.child):
            key = tuple(expr.evaluate(row) for expr in plan.group_bys)
            inputs = [expr.evaluate(row) for expr in plan.aggregates]
            acc = groups.setdefault(key, _initial_values(plan.agg_types))
            for i, (agg, value) in enumerate(zip(plan.agg_types, inputs)):
                acc[i] = _combine(agg, acc[i], value)
        if not groups and not plan.group_bys:
            groups[()] = _initial_values(plan.agg_types)
        self._output = iter([key + tuple(acc) for key, acc in groups.items()])

    def next(self) -> Row | None:
        return next(self._output, None)