import re
from datetime import date, datetime
from typing import Union

from payledger.core.constants import (
    DATE_FORMAT,
    DOCNUMBER_MAX_LENGTH,
    DOCNUMBER_PREFIX,
    FISCAL_MONTHS,
    PAYROLL_DAY_OF_MONTH,
)
from payledger.core.errors import DateError
from payledger.validation.validators import validate_date_format

YEAR_RE = re.compile(r"(\d{4})")


def payroll_doc_number(payroll_date: Union[str, date], suffix: str = "") -> str:
    """``Payroll_YYYY_MM`` plus suffix, cut to the ledger's document number limit."""
    if isinstance(payroll_date, str):
        validate_date_format(payroll_date, "payroll_date")
        payroll_date = datetime.strptime(payroll_date, DATE_FORMAT).date()
    return f"{DOCNUMBER_PREFIX}{payroll_date:%Y_%m}{suffix}"[:DOCNUMBER_MAX_LENGTH]


def payroll_date(tax_year: str, fiscal_month: int) -> str:
    """
    Payroll date for a fiscal month of a UK tax year.

    ``tax_year`` names the starting calendar year ("Year2024", "2024" or
    "2024-2025"). Fiscal month 1 is April; months 10 to 12 are January to
    March of the following year. Payroll runs on the 25th.
    """
    m = YEAR_RE.search(str(tax_year))
    if m is None:
        raise DateError(f"Invalid tax year '{tax_year}'", "tax_year", tax_year)
    if not isinstance(fiscal_month, int) or not 1 <= fiscal_month <= 12:
        raise DateError(f"Invalid fiscal month number '{fiscal_month}'", "fiscal_month", fiscal_month)
    year = int(m.group(1)) + (1 if fiscal_month >= 10 else 0)
    return date(year, FISCAL_MONTHS[fiscal_month - 1], PAYROLL_DAY_OF_MONTH).strftime(DATE_FORMAT)
