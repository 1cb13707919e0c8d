"""Program 04: filter_then_select: Filter → Select. Output ≈ 4×2."""

import pandas as pd

from tidyframe import Pipeline, Table, col
from tests.programs import ProgramResult, employee_data

PROGRAM_NAME = "filter_then_select"
OPERATIONS = ["Source", "Filter", "Select"]


def run() -> ProgramResult:
    data = employee_data()
    result = (
        Pipeline()
        .filter(col("dept") == "eng")
        .select(["name", "salary"])
        .run(Table.from_columns(data))
    )

    df = pd.DataFrame(data)
    expected = df[df["dept"] == "eng"][["name", "salary"]].reset_index(drop=True)
    return ProgramResult(result=result, expected=expected)
