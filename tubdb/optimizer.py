"""Plan rewrites: nested loop joins into hash joins, and sort plus limit into top-N."""

from __future__ import annotations

from typing import Any

from .plans import (
    ColumnValueExpression,
    ComparisonExpression,
    HashJoinPlan,
    LimitPlan,
    NestedLoopJoinPlan,
    PlanNode,
    SortPlan,
    TopNPlan,
)


class Optimizer:
    """Rewrites a plan tree into one that produces the same rows more cheaply."""

    def __init__(self, catalog: Any = None, force_starter_rule: bool = False) -> None:
        self.catalog = catalog
        self.force_starter_rule = force_starter_rule

    def optimize_custom(self, plan: PlanNode) -> PlanNode:
        """Apply the join rewrite, then the top-N rewrite."""
        plan = self.optimize_nlj_as_hash_join(plan)
        plan = self.optimize_sort_limit_as_topn(plan)
        return plan

    def optimize_nlj_as_hash_join(self, plan: PlanNode) -> PlanNode:
        """Turn a nested loop join on column equalities into a hash join.

        Handles ``<col> = <col>`` and conjunctions of such comparisons.  Only a
        nested loop join at the top of ``plan`` (and the joins directly below
        it) is rewritten; any other node is returned unchanged.
        """
        if not isinstance(plan, NestedLoopJoinPlan):
            return plan
        left_plan = self.optimize_nlj_as_hash_join(plan.left_plan)
        right_plan = self.optimize_nlj_as_hash_join(plan.right_plan)
        left_keys: list[ColumnValueExpression] = []
        right_keys: list[ColumnValueExpression] = []

        def place(column: ColumnValueExpression) -> None:
            (left_keys if column.tuple_idx == 0 else right_keys).append(column)

        for child in plan.predicate.children:
            if isinstance(child, ColumnValueExpression):
                place(child)
            elif isinstance(child, ComparisonExpression):
                for operand in child.children:
                    if not isinstance(operand, ColumnValueExpression):
                        raise ValueError(f"join key {operand!r} is not a column expression")
                    place(operand)
        return HashJoinPlan(
            output_schema=plan.output_schema,
            children=(left_plan, right_plan),
            left_key_expressions=tuple(left_keys),
            right_key_expressions=tuple(right_keys),
            join_type=plan.join_type,
        )

    def optimize_sort_limit_as_topn(self, plan: PlanNode) -> PlanNode:
        """Replace a limit directly over a sort with a single top-N node, anywhere in the tree."""
        children = [self.optimize_sort_limit_as_topn(child) for child in plan.children]
        rewritten = plan.clone_with_children(children)
        if not isinstance(plan, LimitPlan):
            return rewritten
        sort_plan = plan.child_plan
        if not isinstance(sort_plan, SortPlan):
            return rewritten
        return TopNPlan(
            output_schema=plan.output_schema,
            children=(self.optimize_sort_limit_as_topn(sort_plan.child_plan),),
            order_bys=sort_plan.order_bys,
            n=plan.limit,
        )