"""Hash join and nested loop join executors for inner and left joins."""

from __future__ import annotations

from typing import Any, Iterator

from .operators import Executor, Row
from .plans import HashJoinPlan, JoinType, NestedLoopJoinPlan


class UnsupportedJoinError(NotImplementedError):
    """Raised for join types other than inner and left."""


def _check_join_type(join_type: JoinType) -> None:
    if join_type not in (JoinType.LEFT, JoinType.INNER):
        raise UnsupportedJoinError(f"join type {join_type.name} not supported")


def _drain(executor: Executor) -> Iterator[Row]:
    while (row := executor.next()) is not None:
        yield tuple(row)


def _key(expressions: Any, row: Row) -> Row:
    return tuple(expr.evaluate(row) for expr in expressions)


class HashJoinExecutor(Executor):
    """Builds a hash table on the right input and probes it with the left input."""

    def __init__(self, plan: HashJoinPlan, left: Executor, right: Executor) -> None:
        _check_join_type(plan.join_type)
        super().__init__(plan)
        self.left = left
        self.right = right
        self._output: Iterator[Row] = iter(())

    def init(self) -> None:
        plan = self.plan
        self.left.init()
        self.right.init()
        table: dict[Row, list[Row]] = {}
        for row in _drain(self.right):
            table.setdefault(_key(plan.right_key_expressions, row), []).append(row)
        nulls = (None,) * len(plan.right_plan.output_schema)
        output: list[Row] = []
        for row in _drain(self.left):
            key = _key(plan.left_key_expressions, row)
            matches = [] if None in key else table.get(key, [])
            if matches:
                output.extend(row + match for match in matches)
            elif plan.join_type is JoinType.LEFT:
                output.append(row + nulls)
        self._output = iter(output)

    def next(self) -> Row | None:
        return next(self._output, None)


class NestedLoopJoinExecutor(Executor):
    """Tests the predicate on every pair of left and right rows."""

    def __init__(self, plan: NestedLoopJoinPlan, left: Executor, right: Executor) -> None:
        _check_join_type(plan.join_type)
        super().__init__(plan)
        self.left = left
        self.right = right
        self._left_rows: list[Row] = []
        self._right_rows: list[Row] = []
        self._results: Iterator[Row] = iter(())

    def _load_right(self) -> None:
        self.right.init()
        self._right_rows = list(_drain(self.right))

    def init(self) -> None:
        self.left.init()
        self._left_rows = list(_drain(self.left))
        self._load_right()
        self._results = self._join()

    def _join(self) -> Iterator[Row]:
        plan = self.plan
        nulls = (None,) * len(plan.right_plan.output_schema)
        for left_row in self._left_rows:
            matched = False
            for right_row in self._right_rows:
                value = plan.predicate.evaluate_join(left_row, right_row)
                if value is not None and value:
                    matched = True
                    yield left_row + right_row
            if not matched and plan.join_type is JoinType.LEFT:
                yield left_row + nulls
            self._load_right()

    def next(self) -> Row | None:
        return next(self._results, None)