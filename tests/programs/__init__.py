"""
End-to-end test program corpus.

Each sub-module exposes:
    PROGRAM_NAME  – human-readable label
    OPERATIONS    – list of operation node names exercised
    run()         – returns a ProgramResult(result, expected)

``result`` is the tidyframe Table produced by the program's Pipeline and
``expected`` the pandas DataFrame computed from the same data with plain
pandas. ``discover()`` collects every program module in this package so the
parametrized test runner can iterate over them.
"""

from collections import namedtuple
from typing import Dict, List
import importlib
import pkgutil

ProgramResult = namedtuple("ProgramResult", ["result", "expected"])


def employee_data() -> Dict[str, list]:
    """The ten-employee data set most programs start from."""
    return {
        "name": ["Alice", "Bob", "Charlie", "Diana", "Eve",
                 "Frank", "Grace", "Hank", "Ivy", "Jack"],
        "age": [30, 25, 35, 28, 32, 45, 29, 38, 27, 33],
        "dept": ["eng", "eng", "sales", "eng", "sales",
                 "hr", "eng", "sales", "hr", "eng"],
        "salary": [95000, 85000, 72000, 90000, 78000,
                   65000, 88000, 70000, 62000, 92000],
    }


def discover() -> List:
    """Return a list of (module_name, module) pairs for every p##_*.py file."""
    programs = []
    package = __name__
    pkg_path = __path__

    for importer, modname, ispkg in pkgutil.iter_modules(pkg_path):
        if modname.startswith("p") and not ispkg:
            mod = importlib.import_module(f"{package}.{modname}")
            programs.append((modname, mod))

    programs.sort(key=lambda t: t[0])
    return programs
