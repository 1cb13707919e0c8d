"""
End-to-end demo: untidy membership records → tidy summary tables.

This script demonstrates the full tidyframe workflow:
1. Build a wide table (one column per census year) and gather it into long form
2. Chain mutate, filter, join and group_summarize into a reusable Pipeline
3. Spread the summary back into a wide report and print the logical plan

Nothing here needs network access or credentials.

Usage:
    python examples/tidy_data_demo.py
    python examples/tidy_data_demo.py --verbose     # engine debug logging
"""

import logging
import sys

import tidyframe as tf
from tidyframe import Pipeline, Table, agg, col, desc, starts_with


def build_tables():
    """Create the membership and city tables used by the demo."""
    churches = Table(
        {
            "name": "string",
            "city": "string",
            "members_1830": "integer",
            "members_1840": "integer",
            "members_1850": "integer?",
        },
        [
            ("First Presbyterian", "New York", 120, 180, 240),
            ("St. Paul's", "New York", 90, 110, 150),
            ("Trinity", "Boston", 200, 260, 310),
            ("Old South", "Boston", 150, 140, None),
            ("St. Mary's", "Baltimore", 60, 95, 130),
        ],
    )
    cities = Table.from_columns({
        "city": ["New York", "Boston", "Baltimore"],
        "population_1840": [312710, 93383, 102313],
    })
    return churches, cities


def build_pipeline(cities: Table) -> Pipeline:
    """Gather the census columns and summarise membership per city and year."""
    return (
        Pipeline(source_id="churches")
        .gather("year", "members", starts_with("members_"), na_rm=True)
        .mutate("year", lambda row: int(row["year"].split("_")[1]))
        .filter(col("members") >= 100)
        .join(cities, by="city", how="left", right_id="cities")
        .group_summarize(
            ["city", "year"],
            congregations=agg.n(),
            members=agg.sum("members"),
        )
        .arrange("city", desc("year"))
    )


def main():
    if "--verbose" in sys.argv:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    churches, cities = build_tables()
    print("Wide input:")
    print(churches.to_string())

    pipeline = build_pipeline(cities)
    print()
    print(pipeline.explain())

    summary = pipeline.run(churches)
    print()
    print("Members per city and year:")
    print(summary.to_string())

    report = tf.spread(tf.select(summary, ["city", "year", "members"]), "year", "members", fill=0)
    print()
    print("Report (one column per year):")
    print(report.to_string())

    try:
        tf.spread(tf.select(summary, ["year", "members"]), "year", "members")
    except tf.DuplicateKey as exc:
        print()
        print(f"Without the city column the spread is ambiguous: {exc}")


if __name__ == "__main__":
    main()
