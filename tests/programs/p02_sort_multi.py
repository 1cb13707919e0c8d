"""Program 02: sort_multi: Sort on two keys, mixed directions. Output ≈ 10×4."""

import pandas as pd

from tidyframe import Pipeline, Table, desc
from tests.programs import ProgramResult, employee_data

PROGRAM_NAME = "sort_multi"
OPERATIONS = ["Source", "Sort"]


def run() -> ProgramResult:
    data = employee_data()
    result = Pipeline().arrange("dept", desc("salary")).run(Table.from_columns(data))

    df = pd.DataFrame(data)
    expected = df.sort_values(["dept", "salary"], ascending=[True, False]).reset_index(drop=True)
    return ProgramResult(result=result, expected=expected)
