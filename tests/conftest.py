"""Shared pytest configuration and fixtures for tidyframe tests."""

import pytest

from tidyframe import NA, Table, reset_options


@pytest.fixture(autouse=True)
def _default_options():
    reset_options()
    yield
    reset_options()


@pytest.fixture
def churches_wide() -> Table:
    """Two churches with one membership column per census year."""
    return Table(
        [
            ("name", "string"),
            ("members_1830", "integer"),
            ("members_1840", "integer"),
            ("members_1850", "integer"),
        ],
        [
            ("First Presbyterian", 120, 180, 240),
            ("St. Paul's", 90, 110, 150),
        ],
    )


@pytest.fixture
def churches() -> Table:
    """Ten churches across three cities and four denominations."""
    return Table.from_columns({
        "name": [
            "First Presbyterian", "Trinity", "St. Patrick's", "First Baptist",
            "Old South", "King's Chapel", "St. Mary's", "Second Baptist",
            "Brick Presbyterian", "Christ Church",
        ],
        "denomination": [
            "Presbyterian", "Episcopalian", "Catholic", "Baptist",
            "Presbyterian", "Episcopalian", "Catholic", "Baptist",
            "Presbyterian", "Episcopalian",
        ],
        "city": [
            "New York", "New York", "New York", "Boston",
            "Boston", "Boston", "Baltimore", "Baltimore",
            "New York", "Baltimore",
        ],
        "members": [240, 310, 500, 150, 200, 175, 420, 95, 130, 260],
    })


@pytest.fixture
def cities() -> Table:
    return Table.from_columns({
        "city": ["New York", "Boston", "Baltimore"],
        "population": [202589, 61392, 80620],
    })


@pytest.fixture
def employees() -> Table:
    return Table.from_columns({
        "name": ["Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Heidi"],
        "age": [30, 45, 28, 35, 50, 33, 29, 40],
        "dept": ["eng", "eng", "sales", "eng", "hr", "sales", "hr", "eng"],
        "salary": [90000, 120000, 65000, 95000, 80000, 70000, 75000, 110000],
    })


@pytest.fixture
def departments() -> Table:
    return Table.from_columns({
        "dept": ["eng", "sales", "hr", "marketing"],
        "budget": [500000, 300000, 200000, 150000],
    })


@pytest.fixture
def long_format() -> Table:
    return Table.from_columns({
        "name": ["Alice", "Alice", "Alice", "Bob", "Bob", "Bob"],
        "metric": ["q1", "q2", "q3", "q1", "q2", "q3"],
        "value": [10, 20, 30, 40, 50, 60],
    })


@pytest.fixture
def wide_format() -> Table:
    return Table.from_columns({
        "name": ["Alice", "Bob"],
        "q1": [10, 40],
        "q2": [20, 50],
        "q3": [30, 60],
    })


@pytest.fixture
def scores_with_missing() -> Table:
    return Table(
        [("student", "string"), ("score", "float?")],
        [("ann", 3.5), ("ben", NA), ("cal", 1.0), ("dee", None), ("eli", 2.0)],
    )
