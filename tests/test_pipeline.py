"""Tests for the pipeline composer."""

from functools import partial

import pytest

from tidyframe import (
    NA,
    Pipeline,
    Table,
    agg,
    col,
    desc,
    gather,
    group_summarize,
    pipe,
    spread,
    starts_with,
)
from tidyframe import filter as filter_rows
from tidyframe.algebra import Filter, Gather, Source
from tidyframe.exceptions import (
    AmbiguousSelection,
    DuplicateKey,
    PlanValidationError,
    SchemaConflict,
    TypeConflict,
)


def _year(row):
    return int(row["year"].split("_")[1])


@pytest.fixture
def membership() -> Pipeline:
    return (
        Pipeline()
        .gather("year", "members", starts_with("members_"))
        .mutate("year", _year)
        .filter(col("members") > 100)
        .arrange("name", desc("year"))
    )


class TestBuilding:
    def test_steps_in_order(self, membership):
        names = [op.__class__.__name__ for op in membership.steps()]
        assert names == ["Gather", "WithColumn", "Filter", "Sort"]
        assert len(membership) == 4

    def test_immutable_builder(self):
        base = Pipeline().select(["name"])
        extended = base.limit(1)
        assert len(base) == 1
        assert len(extended) == 2

    def test_repr(self, membership):
        assert repr(membership) == "Pipeline(Gather -> WithColumn -> Filter -> Sort)"
        assert repr(Pipeline()) == "Pipeline(empty)"

    def test_explain(self, membership):
        text = membership.explain()
        lines = text.splitlines()
        assert lines[0].startswith("Sort(")
        assert lines[-1].strip().endswith("Source(source_id='<input>')")
        assert "Gather(key='year'" in text

    def test_invalid_step_rejected_at_build_time(self):
        with pytest.raises(PlanValidationError):
            Pipeline().limit(-1)
        with pytest.raises(PlanValidationError):
            Pipeline().join(Table.from_columns({"k": [1]}), "k", how="cross")
        with pytest.raises(PlanValidationError):
            Pipeline().group_summarize("k")


class TestRun:
    def test_church_membership(self, membership, churches_wide):
        result = membership.run(churches_wide)
        assert result.column_names == ("name", "year", "members")
        assert result.to_records() == [
            {"name": "First Presbyterian", "year": 1850, "members": 240},
            {"name": "First Presbyterian", "year": 1840, "members": 180},
            {"name": "First Presbyterian", "year": 1830, "members": 120},
            {"name": "St. Paul's", "year": 1850, "members": 150},
            {"name": "St. Paul's", "year": 1840, "members": 110},
        ]

    def test_call_alias(self, membership, churches_wide):
        assert membership(churches_wide) == membership.run(churches_wide)

    def test_reusable(self, membership, churches_wide):
        assert membership.run(churches_wide) == membership.run(churches_wide)

    def test_empty_pipeline_is_identity(self, employees):
        assert Pipeline().run(employees) is employees

    def test_join_then_summarize(self, churches, cities):
        result = (
            Pipeline()
            .join(cities, "city", "left")
            .group_summarize("city", members=agg.sum("members"), population=agg.first("population"))
            .arrange(desc("members"))
            .run(churches)
        )
        assert result.column("city") == ("New York", "Baltimore", "Boston")
        assert result.column("members") == (1180, 775, 525)
        assert result.column("population")[0] == 202589

    def test_spread_and_count(self, long_format):
        wide = Pipeline().spread("metric", "value").run(long_format)
        assert wide.column_names == ("name", "q1", "q2", "q3")
        counted = Pipeline().count("name", name="rows").run(long_format)
        assert counted.to_records() == [{"name": "Alice", "rows": 3}, {"name": "Bob", "rows": 3}]

    def test_rename_distinct_union(self, employees):
        extra = Table.from_columns({"team": ["legal"]})
        result = (
            Pipeline()
            .select("dept")
            .rename(dept="team")
            .distinct()
            .union(extra)
            .run(employees)
        )
        assert result.column("team") == ("eng", "sales", "hr", "legal")

    def test_head_and_tail(self, employees):
        assert Pipeline().head(2).run(employees).column("name") == ("Alice", "Bob")
        assert Pipeline().tail(1).run(employees).column("name") == ("Heidi",)

    def test_long_chain(self):
        pipeline = Pipeline()
        for _ in range(2000):
            pipeline = pipeline.mutate("n", col("n") + 1)
        assert len(pipeline) == 2000
        t = Table.from_columns({"n": [0, 10]})
        assert pipeline.run(t).column("n") == (2000, 2010)

    def test_rejects_non_table(self, membership):
        with pytest.raises(TypeError, match="must be a Table"):
            membership.run({"name": ["x"]})


class TestFailFast:
    def test_first_failure_propagates_unchanged(self, churches_wide):
        calls = []

        def spy(row):
            calls.append(row)
            return 1

        pipeline = (
            Pipeline()
            .select(starts_with("population"))
            .mutate("after", spy)
        )
        with pytest.raises(AmbiguousSelection):
            pipeline.run(churches_wide)
        assert calls == []

    def test_failure_mid_chain(self, churches_wide):
        pipeline = (
            Pipeline()
            .gather("year", "members", starts_with("members_"))
            .mutate("name", lambda row: "same")
            .spread("year", "members")
        )
        with pytest.raises(DuplicateKey):
            pipeline.run(churches_wide)

    def test_type_conflict(self, churches):
        with pytest.raises(TypeConflict):
            Pipeline().gather("field", "value", ["city", "members"]).run(churches)

    def test_schema_conflict_in_join(self, employees):
        other = Table.from_columns({"dept": ["eng"], "age": [1]})
        with pytest.raises(SchemaConflict):
            Pipeline().join(other, "dept").run(employees)

    def test_input_never_modified(self, membership, churches_wide):
        before = churches_wide.to_dict()
        membership.run(churches_wide)
        assert churches_wide.to_dict() == before


class TestPipe:
    def test_composes_callables(self, churches_wide):
        result = pipe(
            churches_wide,
            partial(gather, key="year", value="members", columns=starts_with("members_")),
            lambda t: filter_rows(t, col("members") > 150),
            partial(group_summarize, keys="name", aggregations={"total": agg.sum("members")}),
        )
        assert result.to_records() == [{"name": "First Presbyterian", "total": 420}]

    def test_accepts_pipelines(self, membership, churches_wide):
        assert pipe(churches_wide, membership) == membership.run(churches_wide)

    def test_no_steps(self, employees):
        assert pipe(employees) is employees

    def test_stops_at_first_failure(self, wide_format):
        reached = []
        with pytest.raises(AmbiguousSelection):
            pipe(
                wide_format,
                lambda t: gather(t, "k", "v", starts_with("zz")),
                lambda t: reached.append(t) or t,
            )
        assert reached == []

    def test_step_must_return_table(self, wide_format):
        with pytest.raises(TypeError, match="expected Table"):
            pipe(wide_format, lambda t: t.row_count())


class TestPlanAccess:
    def test_plan_structure(self, membership):
        steps = membership.plan.steps()
        assert isinstance(steps[0], Source) and steps[0].data is None
        assert isinstance(steps[1], Gather)
        assert isinstance(steps[3], Filter)

    def test_unbound_plan_execution(self, membership):
        with pytest.raises(PlanValidationError, match="has no data"):
            membership.plan.execute()

    def test_spread_fill_reaches_engine(self):
        t = Table.from_columns({"id": ["a", "b"], "k": ["x", "y"], "v": [1, 2]})
        assert Pipeline().spread("k", "v").run(t).column("x") == (1, NA)
        assert Pipeline().spread("k", "v", fill=0).run(t).column("x") == (1, 0)
