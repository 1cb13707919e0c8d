"""
Unit tests for the algebra module.

These tests verify:
1. Every operation node validates its inputs and parameters
2. Constructor aliases (input, left/right, how, n, column_name) resolve
3. LogicalPlan introspection and explain output
4. Eager execution of operation trees over bound sources
"""

import pytest

from tidyframe import Table, agg, col, starts_with
from tidyframe.algebra import (
    Distinct,
    Filter,
    Gather,
    GroupSummarize,
    Join,
    Limit,
    LogicalPlan,
    Operation,
    Rename,
    Select,
    Sort,
    Source,
    Spread,
    Union,
    WithColumn,
    execute,
)
from tidyframe.exceptions import PlanValidationError


def _src(table: Table, source_id: str = "test") -> Source:
    return Source(source_id=source_id, data=table)


# ======================================================================
# Operation validation
# ======================================================================


class TestSource:
    def test_schema_from_data(self, wide_format):
        source = _src(wide_format)
        assert source.schema == [("name", "string"), ("q1", "integer"), ("q2", "integer"), ("q3", "integer")]

    def test_cannot_have_inputs(self, wide_format):
        with pytest.raises(PlanValidationError):
            Source(source_id="x", inputs=[_src(wide_format)])

    def test_describe(self):
        assert Source(source_id="churches").describe() == "Source(source_id='churches')"


class TestUnaryOperations:
    def test_input_alias(self, wide_format):
        source = _src(wide_format)
        op = Select(columns=["name"], input=source)
        assert op.inputs == [source]
        assert op.input is None

    def test_requires_one_input(self):
        with pytest.raises(PlanValidationError, match="exactly 1 input"):
            Select(columns=["name"])

    def test_select_requires_columns(self, wide_format):
        with pytest.raises(PlanValidationError):
            Select(columns=[], input=_src(wide_format))

    def test_rename_requires_mapping(self, wide_format):
        with pytest.raises(PlanValidationError):
            Rename(mapping={}, input=_src(wide_format))

    def test_filter_requires_predicate(self, wide_format):
        with pytest.raises(PlanValidationError):
            Filter(predicate="q1 > 10", input=_src(wide_format))

    def test_limit_alias_and_validation(self, wide_format):
        assert Limit(n=3, input=_src(wide_format)).count == 3
        with pytest.raises(PlanValidationError, match="'head' or 'tail'"):
            Limit(count=1, end="middle", input=_src(wide_format))

    def test_sort_validation(self, wide_format):
        op = Sort(keys=["name", ("q1", "desc")], input=_src(wide_format))
        assert op.keys == [("name", "asc"), ("q1", "desc")]
        with pytest.raises(PlanValidationError):
            Sort(keys=[], input=_src(wide_format))
        with pytest.raises(PlanValidationError):
            Sort(keys=[("q1", "down")], input=_src(wide_format))

    def test_with_column_alias_and_validation(self, wide_format):
        op = WithColumn(column_name="total", expression=col("q1") + col("q2"), input=_src(wide_format))
        assert op.column == "total"
        with pytest.raises(PlanValidationError):
            WithColumn(column="total", expression=3, input=_src(wide_format))
        with pytest.raises(PlanValidationError):
            WithColumn(expression=col("q1"), input=_src(wide_format))

    def test_group_summarize_validation(self, wide_format):
        with pytest.raises(PlanValidationError):
            GroupSummarize(keys=["name"], aggregations={}, input=_src(wide_format))
        with pytest.raises(PlanValidationError, match="must be an Aggregation"):
            GroupSummarize(keys=["name"], aggregations={"x": "sum"}, input=_src(wide_format))

    def test_gather_validation(self, wide_format):
        with pytest.raises(PlanValidationError):
            Gather(key="k", value="v", columns=[], input=_src(wide_format))
        with pytest.raises(PlanValidationError):
            Gather(key="", value="v", columns=["q1"], input=_src(wide_format))

    def test_spread_validation(self, long_format):
        with pytest.raises(PlanValidationError):
            Spread(key="metric", value="", input=_src(long_format))


class TestBinaryOperations:
    def test_join_aliases(self, employees, departments):
        op = Join(left=_src(employees), right=_src(departments), on="dept", how="left")
        assert op.join_type == "left"
        assert op.on == ["dept"]
        assert len(op.inputs) == 2

    def test_join_validation(self, employees, departments):
        with pytest.raises(PlanValidationError, match="join keys"):
            Join(left=_src(employees), right=_src(departments), on=[])
        with pytest.raises(PlanValidationError, match="Join type"):
            Join(left=_src(employees), right=_src(departments), on="dept", join_type="cross")
        with pytest.raises(PlanValidationError, match="exactly 2 inputs"):
            Join(left=_src(employees), on="dept")
        with pytest.raises(PlanValidationError, match="suffixes"):
            Join(left=_src(employees), right=_src(departments), on="dept", suffixes=("_x",))

    def test_union_requires_two_inputs(self, employees):
        with pytest.raises(PlanValidationError):
            Union(left=_src(employees))


# ======================================================================
# LogicalPlan
# ======================================================================


class TestLogicalPlan:
    def test_root_must_be_operation(self):
        with pytest.raises(TypeError):
            LogicalPlan("select")

    def test_steps_follow_first_input(self, employees, departments):
        joined = Join(left=_src(employees, "emp"), right=_src(departments, "dept"), on="dept")
        plan = LogicalPlan(Limit(count=2, input=joined))
        steps = plan.steps()
        assert [op.__class__.__name__ for op in steps] == ["Source", "Join", "Limit"]
        assert steps[0].source_id == "emp"

    def test_explain_tree(self, employees, departments):
        joined = Join(left=_src(employees, "emp"), right=_src(departments, "dept"), on="dept")
        lines = LogicalPlan(joined).explain().splitlines()
        assert lines[0] == "Join(on=['dept'], type='inner')"
        assert lines[1].startswith("├── Source(source_id='emp'")
        assert lines[2].startswith("└── Source(source_id='dept'")

    def test_describe_callables(self, wide_format):
        def big(row):
            return row["q1"] > 10

        op = Filter(predicate=big, input=_src(wide_format))
        assert op.describe() == "Filter(predicate=<big>)"

    def test_to_dict_returns_root(self, wide_format):
        plan = LogicalPlan(Select(columns=["name"], input=_src(wide_format)))
        assert plan.to_dict()["type"] == "select"
        restored = LogicalPlan.from_dict(plan.to_dict())
        assert isinstance(restored.root, Select)

    def test_from_dict_requires_root_or_type(self):
        with pytest.raises(ValueError):
            LogicalPlan.from_dict({"ops": []})

    def test_from_dict_unknown_type(self):
        with pytest.raises(PlanValidationError, match="Unknown operation type"):
            Operation.from_dict({"type": "window"})


# ======================================================================
# Eager execution
# ======================================================================


class TestExecute:
    def test_source_is_identity(self, employees):
        assert execute(_src(employees)) is employees

    def test_bound_source_wins_over_input(self, employees, departments):
        assert execute(_src(employees), departments) is employees

    def test_tree(self, churches_wide):
        gathered = Gather(key="year", value="members", columns=starts_with("members_"),
                          input=_src(churches_wide))
        summary = GroupSummarize(keys=["year"], aggregations={"total": agg.sum("members")},
                                 input=gathered)
        result = LogicalPlan(Sort(keys=["year"], input=summary)).execute()
        assert result.to_records() == [
            {"year": "members_1830", "total": 210},
            {"year": "members_1840", "total": 290},
            {"year": "members_1850", "total": 390},
        ]

    def test_union_and_distinct(self, long_format):
        source = _src(long_format)
        op = Distinct(columns=["name"], input=Union(left=source, right=source))
        assert execute(op).column("name") == ("Alice", "Bob")

    def test_join_and_spread(self, employees, departments):
        joined = Join(left=_src(departments), right=_src(employees), on="dept", join_type="semi")
        assert execute(joined).row_count() == 3
        long = Table.from_columns({"k": ["a", "b"], "v": [1, 2]})
        wide = execute(Spread(key="k", value="v", input=_src(long)))
        assert wide.to_records() == [{"a": 1, "b": 2}]

    def test_unknown_operation(self):
        with pytest.raises(TypeError, match="Unknown operation type"):
            execute(Operation())
