from typing import Iterable

import pandas as pd

from payledger.core.constants import BALANCE_TOLERANCE
from payledger.core.models import SUMMARY_MONEY_FIELDS, PayrollSummary

ID_COLUMNS = ["employee_key", "employee_name", "external_id"]


def summaries_frame(summaries: Iterable[PayrollSummary]) -> pd.DataFrame:
    df = pd.DataFrame([s.to_dict() for s in summaries], columns=ID_COLUMNS + SUMMARY_MONEY_FIELDS)
    df[SUMMARY_MONEY_FIELDS] = df[SUMMARY_MONEY_FIELDS].astype(float)
    return df


def _long(summaries: Iterable[PayrollSummary], value_name: str) -> pd.DataFrame:
    return summaries_frame(summaries).melt(
        id_vars=["employee_key", "employee_name"], value_vars=SUMMARY_MONEY_FIELDS,
        var_name="component", value_name=value_name,
    )


def compare_summaries(expected: Iterable[PayrollSummary], reconciled: Iterable[PayrollSummary],
                      tolerance: float = float(BALANCE_TOLERANCE)) -> pd.DataFrame:
    """
    One row per employee and payroll component with the expected and posted
    amounts. An employee missing on either side never matches.
    """
    exp = _long(expected, "expected")
    post = _long(reconciled, "posted")
    df = exp.merge(post, on=["employee_key", "component"], how="outer", suffixes=("", "_posted"))
    df["employee_name"] = df["employee_name"].fillna(df["employee_name_posted"]).fillna("")
    df["missing"] = df["expected"].isna() | df["posted"].isna()
    df[["expected", "posted"]] = df[["expected", "posted"]].fillna(0.0).astype(float)
    df["difference"] = (df["posted"] - df["expected"]).round(2)
    df["matched"] = ~df["missing"] & (df["difference"].abs() < tolerance)
    cols = ["employee_key", "employee_name", "component", "expected", "posted", "difference", "matched", "missing"]
    return df[cols].sort_values(["employee_key", "component"]).reset_index(drop=True)


def mismatches(report: pd.DataFrame) -> pd.DataFrame:
    return report[~report["matched"]].reset_index(drop=True)


def employee_status(report: pd.DataFrame) -> pd.DataFrame:
    """Per employee: whether every component matched, and the total absolute difference."""
    if report.empty:
        return pd.DataFrame(columns=["employee_key", "employee_name", "matched", "abs_difference"])
    out = report.assign(abs_difference=report["difference"].abs()).groupby(
        ["employee_key", "employee_name"], as_index=False
    ).agg(matched=("matched", "all"), abs_difference=("abs_difference", "sum"))
    out["abs_difference"] = out["abs_difference"].round(2)
    return out
