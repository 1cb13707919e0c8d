"""Program 12: filter_sort_limit: Filter → Sort → Limit. Output ≈ 3×4."""

import pandas as pd

from tidyframe import Pipeline, Table, col
from tests.programs import ProgramResult, employee_data

PROGRAM_NAME = "filter_sort_limit"
OPERATIONS = ["Source", "Filter", "Sort", "Limit"]


def run() -> ProgramResult:
    data = employee_data()
    result = (
        Pipeline()
        .filter(col("salary") >= 70000)
        .arrange("age")
        .head(3)
        .run(Table.from_columns(data))
    )

    df = pd.DataFrame(data)
    expected = (
        df[df["salary"] >= 70000]
        .sort_values("age", kind="stable")
        .head(3)
        .reset_index(drop=True)
    )
    return ProgramResult(result=result, expected=expected)
