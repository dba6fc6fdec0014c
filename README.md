# tubdb

The core pieces of a small database engine, in plain Python with no
third-party runtime dependencies:

- `tubdb.pages`: B+ tree node pages (`LeafPage`, `InternalPage`) holding
  sorted `(key, value)` entries.
- `tubdb.guards`: an in-memory `PageStore` with pin counts, and
  `BasicPageGuard`, `ReadPageGuard` and `WritePageGuard`, which keep a page
  pinned (and latched, for read and write guards) until dropped. Guards are
  context managers.
- `tubdb.tree`: `BPlusTree`, a unique-key index with lookups, inserts that
  split nodes, removals that borrow from or merge with siblings
  (`tubdb.removal`), and ordered scans through `tubdb.iterator.IndexIterator`.
- `tubdb.render`: a level-by-level text drawing of a tree, a page-by-page
  console dump and Graphviz DOT output.
- `tubdb.plans`: query plan nodes and expressions over rows (rows are tuples,
  SQL NULL is `None`).
- `tubdb.operators` and `tubdb.joins`: pull-based executors for fixed rows,
  filter, limit, sort, top-N, aggregation, hash join and nested loop join.
- `tubdb.optimizer`: `Optimizer`, which rewrites plan trees.

## Installation

```
pip install .
```

## The B+ tree

A tree keeps its root page id in a header page, which you allocate in the
store first. Page capacities must be at least 3.

```python
from tubdb.guards import PageStore
from tubdb.tree import BPlusTree
from tubdb.render import draw_tree

store = PageStore()
header_page_id = store.new_page()
tree = BPlusTree("idx", header_page_id, store, leaf_max_size=3, internal_max_size=4)

for key in (1, 5, 9, 13, 17, 21):
    tree.insert(key, key * 10)    # False if the key is already present

tree.get_value(9)                 # 90; None for a missing key
tree.remove(5)
print([key for key, _ in tree])   # [1, 9, 13, 17, 21]
print(draw_tree(tree))            # one line per level, "()" when empty
```

- `begin()` returns an iterator from the smallest key; `begin(key)` starts at
  `key` and returns the end iterator if the key is absent. `end()` returns the
  end iterator. An `IndexIterator` yields `(key, value)` pairs and also offers
  `is_end()`, `current()` and `advance()`.
- `is_empty()` and `root_page_id()` report the tree's state.
- `insert_from_file(path)` and `remove_from_file(path)` read
  whitespace-separated integers and insert each (with itself as the value) or
  remove each.

Rendering (`tubdb.render`): `draw_tree(tree)` returns the text drawing,
`print_tree(tree)` prints every page to standard output, `to_dot(tree)`
returns a Graphviz digraph and `draw(tree, path)` writes it to a file (an
empty tree writes nothing and logs a warning).

## Running queries

Plans are frozen dataclasses built with keyword arguments; executors are
built by hand over their children. Iterating an executor calls `init()` and
then `next()` until it returns `None`.

```python
from tubdb.plans import (
    ValuesPlan, FilterPlan, ColumnValueExpression, ConstantExpression,
    ComparisonExpression,
)
from tubdb.operators import ValuesExecutor, FilterExecutor

values = ValuesPlan(output_schema=("id", "name"), rows=[(1, "a"), (2, "b"), (3, "c")])
where = ComparisonExpression(ColumnValueExpression(0, 0), ConstantExpression(1), ">")
query = FilterPlan(output_schema=("id", "name"), children=(values,), predicate=where)

print(list(FilterExecutor(query, ValuesExecutor(values))))   # [(2, 'b'), (3, 'c')]
```

Plan nodes: `ValuesPlan`, `FilterPlan`, `LimitPlan`, `SortPlan`, `TopNPlan`,
`AggregationPlan`, `NestedLoopJoinPlan`, `HashJoinPlan`. Expressions:
`ColumnValueExpression`, `ConstantExpression`, `ComparisonExpression`
(`=`, `!=`, `<`, `<=`, `>`, `>=`) and `LogicExpression` (`and`, `or`, with
three-valued logic). Enums: `JoinType`, `OrderByType`, `AggregationType`
(`COUNT_STAR`, `COUNT`, `SUM`, `MIN`, `MAX`).

Executors: `ValuesExecutor`, `FilterExecutor`, `LimitExecutor`,
`SortExecutor`, `TopNExecutor` (with `num_in_heap()`) and
`AggregationExecutor` in `tubdb.operators`; `HashJoinExecutor` and
`NestedLoopJoinExecutor` in `tubdb.joins`. Joins support `INNER` and `LEFT`;
other join types raise `UnsupportedJoinError`. An aggregation with no
group-by columns over no rows produces one row of initial values
(`0` for `COUNT_STAR`, `None` otherwise).

## Optimizer

`Optimizer().optimize_custom(plan)` applies two rewrites and returns a new
plan tree:

- `optimize_nlj_as_hash_join`: a nested loop join at the top of the plan
  whose predicate is `<column> = <column>`, or an `and` of such comparisons,
  becomes a `HashJoinPlan`;
- `optimize_sort_limit_as_topn`: a `LimitPlan` directly over a `SortPlan`,
  anywhere in the tree, becomes a `TopNPlan`.

## What it does not do

Everything lives in memory: the page store never writes pages to disk. There
is no SQL parser or planner (plans are built by hand), no table storage or
catalog, no executors that insert, delete or update rows, and no
transactions or lock manager.

## Tests

```
pip install .[test]
pytest
```