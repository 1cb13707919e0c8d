"""
Unit tests for plan serialization.

These tests verify:
1. serialize(plan) returns a JSON-serializable dict with a version key
2. A deserialized plan executes to the same result as the original
3. Serializing a plan with every operation type succeeds
4. Callables cannot be serialized and say so
5. Malformed input raises PlanValidationError
"""

import json

import pytest

from tidyframe import NA, Pipeline, Table, agg, col, desc, everything, exclude, func, starts_with
from tidyframe.algebra import LogicalPlan, Select, Source
from tidyframe.engine.aggregations import Aggregation
from tidyframe.exceptions import PlanValidationError, UnsupportedOperationError
from tidyframe.utils import (
    SERIALIZATION_VERSION,
    deserialize,
    from_json,
    pipeline_from_json,
    serialize,
    to_json,
)


@pytest.fixture
def full_pipeline(cities) -> Pipeline:
    return (
        Pipeline()
        .select(everything())
        .rename(members="size")
        .filter((col("size") > 100) & ~col("city").isin(["Springfield"]))
        .mutate("big", col("size") >= 300)
        .join(cities, "city", "left")
        .distinct()
        .arrange("city", desc("size"))
        .limit(8)
        .union(Table([("name", "string"), ("denomination", "string"), ("city", "string"),
                      ("size", "integer"), ("big", "boolean"), ("population", "integer?")], []))
        .group_summarize(["city", "big"], churches=agg.n(), size=agg.sum("size", na_rm=True))
        .spread("big", "size", fill=0, aggregate="sum")
    )


class TestSerialize:
    def test_version_and_json(self, full_pipeline):
        data = serialize(full_pipeline)
        assert data["version"] == SERIALIZATION_VERSION
        assert json.loads(json.dumps(data)) == data

    def test_every_operation_type_appears(self, full_pipeline):
        text = to_json(full_pipeline)
        for op_type in ("source", "select", "rename", "filter", "with_column", "join",
                        "distinct", "sort", "limit", "union", "group_summarize", "spread"):
            assert f'"type": "{op_type}"' in text

    def test_gather(self):
        pipeline = Pipeline().gather("year", "members", starts_with("members_") | exclude("name"),
                                     na_rm=True, coerce=True)
        restored = deserialize(serialize(pipeline))
        op = restored.root
        assert (op.key, op.value, op.na_rm, op.coerce) == ("year", "members", True, True)

    def test_source_data_is_never_serialized(self, cities):
        data = serialize(LogicalPlan(Source(source_id="cities", data=cities)))
        assert data["root"]["schema"] == [["city", "string"], ["population", "integer"]]
        assert "data" not in data["root"]

    def test_rejects_other_objects(self):
        with pytest.raises(TypeError):
            serialize({"type": "select"})


class TestRoundTrip:
    def test_results_match(self, full_pipeline, churches):
        restored = pipeline_from_json(to_json(full_pipeline))
        assert len(restored) == len(full_pipeline)
        # The right-hand tables of join and union are not serialized, so the
        # restored pipeline is checked on the steps before the join.
        prefix = Pipeline().select(everything()).rename(members="size").filter(col("size") > 100)
        assert pipeline_from_json(to_json(prefix)).run(churches) == prefix.run(churches)

    def test_right_hand_tables_are_not_bound_to_the_input(self, full_pipeline, churches):
        restored = pipeline_from_json(to_json(full_pipeline))
        with pytest.raises(PlanValidationError, match="Source '<right>' has no data"):
            restored.run(churches)

    def test_expression_details_survive(self, employees):
        pipeline = Pipeline().mutate("k", func("round", col("salary") / 1000, 0), dtype="float")
        restored = pipeline_from_json(to_json(pipeline))
        assert restored.run(employees) == pipeline.run(employees)

    def test_aggregations_survive(self, employees):
        pipeline = Pipeline().group_summarize("dept", avg=agg.mean("salary", na_rm=True))
        restored = deserialize(serialize(pipeline)).root
        assert restored.aggregations == {"avg": Aggregation("mean", "salary", True)}

    def test_spread_fill_missing(self):
        restored = deserialize(serialize(Pipeline().spread("k", "v"))).root
        assert restored.fill is NA

    def test_explain_matches(self, full_pipeline):
        assert from_json(to_json(full_pipeline)).explain().splitlines()[0] == \
            full_pipeline.explain().splitlines()[0]


class TestUnsupported:
    def test_callable_filter(self):
        pipeline = Pipeline().filter(lambda row: row["x"] > 1)
        with pytest.raises(UnsupportedOperationError, match="Python callable"):
            serialize(pipeline)

    def test_callable_mutate(self):
        with pytest.raises(UnsupportedOperationError):
            to_json(Pipeline().mutate("y", lambda row: 1))

    def test_callable_spread_aggregate(self):
        with pytest.raises(UnsupportedOperationError):
            to_json(Pipeline().spread("k", "v", aggregate=max))


class TestDeserializeErrors:
    def test_missing_version(self):
        with pytest.raises(PlanValidationError, match="version"):
            deserialize({"root": {}})

    def test_wrong_version(self):
        with pytest.raises(PlanValidationError, match="Unsupported serialization version"):
            deserialize({"version": "0.1", "root": {}})

    def test_missing_root(self):
        with pytest.raises(PlanValidationError, match="root"):
            deserialize({"version": SERIALIZATION_VERSION})

    def test_unknown_operation_type(self):
        with pytest.raises(PlanValidationError, match="Unknown operation type"):
            deserialize({"version": SERIALIZATION_VERSION, "root": {"type": "window"}})

    def test_missing_required_field(self):
        data = serialize(Pipeline().select(["name"]))
        del data["root"]["columns"]
        with pytest.raises(PlanValidationError, match="Missing required field"):
            deserialize(data)

    def test_invalid_operation(self):
        data = serialize(Pipeline().limit(3))
        data["root"]["count"] = -3
        with pytest.raises(PlanValidationError):
            deserialize(data)

    def test_invalid_json(self):
        with pytest.raises(PlanValidationError, match="Invalid JSON"):
            from_json("{not json")

    def test_not_a_dict(self):
        with pytest.raises(TypeError):
            deserialize([])

    def test_select_round_trip_keeps_selector(self):
        restored = deserialize(serialize(Pipeline().select(["b", "a"]))).root
        assert isinstance(restored, Select)
        assert restored.columns.resolve(["a", "b", "c"]) == ("b", "a")
