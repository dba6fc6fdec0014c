import pytest

from tubdb.joins import HashJoinExecutor, NestedLoopJoinExecutor, UnsupportedJoinError
from tubdb.operators import ValuesExecutor
from tubdb.plans import (
    ColumnValueExpression,
    ComparisonExpression,
    HashJoinPlan,
    JoinType,
    NestedLoopJoinPlan,
    ValuesPlan,
)

LEFT_SCHEMA = ("id", "name")
RIGHT_SCHEMA = ("rid", "score")
LEFT_ROWS = ((1, "a"), (2, "b"), (3, "c"))
RIGHT_ROWS = ((1, 10), (1, 11), (3, 30), (4, 40))

INNER_EXPECTED = [(1, "a", 1, 10), (1, "a", 1, 11), (3, "c", 3, 30)]
LEFT_EXPECTED = [(1, "a", 1, 10), (1, "a", 1, 11), (2, "b", None, None), (3, "c", 3, 30)]


def plans(left_rows, right_rows):
    return (
        ValuesPlan(output_schema=LEFT_SCHEMA, rows=left_rows),
        ValuesPlan(output_schema=RIGHT_SCHEMA, rows=right_rows),
    )


def hash_join(join_type, left_rows=LEFT_ROWS, right_rows=RIGHT_ROWS):
    left_plan, right_plan = plans(left_rows, right_rows)
    plan = HashJoinPlan(
        output_schema=LEFT_SCHEMA + RIGHT_SCHEMA,
        children=(left_plan, right_plan),
        left_key_expressions=(ColumnValueExpression(0, 0),),
        right_key_expressions=(ColumnValueExpression(1, 0),),
        join_type=join_type,
    )
    return HashJoinExecutor(plan, ValuesExecutor(left_plan), ValuesExecutor(right_plan))


def nested_loop_join(join_type, left_rows=LEFT_ROWS, right_rows=RIGHT_ROWS, op="="):
    left_plan, right_plan = plans(left_rows, right_rows)
    predicate = ComparisonExpression(ColumnValueExpression(0, 0), ColumnValueExpression(1, 0), op)
    plan = NestedLoopJoinPlan(
        output_schema=LEFT_SCHEMA + RIGHT_SCHEMA,
        children=(left_plan, right_plan),
        predicate=predicate,
        join_type=join_type,
    )
    return NestedLoopJoinExecutor(plan, ValuesExecutor(left_plan), ValuesExecutor(right_plan))


def test_inner_join():
    assert list(hash_join(JoinType.INNER)) == INNER_EXPECTED
    assert list(nested_loop_join(JoinType.INNER)) == INNER_EXPECTED


def test_left_join_pads_unmatched_rows_with_nulls():
    assert list(hash_join(JoinType.LEFT)) == LEFT_EXPECTED
    assert list(nested_loop_join(JoinType.LEFT)) == LEFT_EXPECTED


def test_left_join_with_empty_right_keeps_every_left_row():
    expected = [row + (None, None) for row in LEFT_ROWS]
    assert list(hash_join(JoinType.LEFT, right_rows=())) == expected
    assert list(nested_loop_join(JoinType.LEFT, right_rows=())) == expected


def test_inner_join_with_empty_right_is_empty():
    assert list(hash_join(JoinType.INNER, right_rows=())) == []
    assert list(nested_loop_join(JoinType.INNER, right_rows=())) == []


def test_null_keys_never_match():
    left_rows = ((None, "z"),)
    right_rows = ((None, 5),)
    expected = [(None, "z", None, None)]
    assert list(hash_join(JoinType.LEFT, left_rows=left_rows, right_rows=right_rows)) == expected
    assert list(nested_loop_join(JoinType.LEFT, left_rows=left_rows, right_rows=right_rows)) == expected


@pytest.mark.parametrize("join_type", [JoinType.RIGHT, JoinType.OUTER])
def test_unsupported_join_types_raise(join_type):
    with pytest.raises(UnsupportedJoinError):
        hash_join(join_type)
    with pytest.raises(UnsupportedJoinError):
        nested_loop_join(join_type)


def test_unsupported_join_error_is_not_implemented_error():
    with pytest.raises(NotImplementedError):
        hash_join(JoinType.OUTER)


def test_reinit_produces_same_rows():
    hashed = hash_join(JoinType.LEFT)
    assert list(hashed) == LEFT_EXPECTED
    assert list(hashed) == LEFT_EXPECTED
    looped = nested_loop_join(JoinType.LEFT)
    assert list(looped) == LEFT_EXPECTED
    assert list(looped) == LEFT_EXPECTED


def test_next_returns_none_after_exhaustion():
    for executor in (hash_join(JoinType.INNER), nested_loop_join(JoinType.INNER)):
        executor.init()
        produced = [executor.next() for _ in INNER_EXPECTED]
        assert produced == INNER_EXPECTED
        assert executor.next() is None


def test_nested_loop_join_with_inequality():
    result = list(nested_loop_join(JoinType.INNER, op="<"))
    assert len(result) == sum(1 for l in LEFT_ROWS for r in RIGHT_ROWS if l[0] < r[0])
    assert all(row[0] < row[2] for row in result)
    assert (3, "c", 4, 40) in result


@pytest.mark.parametrize("join_type", [JoinType.INNER, JoinType.LEFT])
def test_hash_and_nested_loop_agree(join_type):
    left_rows = ((5, "x"), (1, "y"), (5, "z"), (7, "w"))
    right_rows = ((5, 1), (7, 2), (5, 3), (8, 4))
    hashed = list(hash_join(join_type, left_rows, right_rows))
    looped = list(nested_loop_join(join_type, left_rows, right_rows))
    assert hashed == looped