"""
Line builders, one per transaction kind.

Each builder is a stateless object with ``kind``, ``validate(facts)`` and
``build_lines(facts)``. They share no base class; the common pieces are the
``make_line`` helper and the field checks in ``payledger.validation``.
"""
import logging
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Protocol

from payledger.core.constants import (
    AMOUNT_ZERO_THRESHOLD,
    TransactionKind,
    charity_account,
    class_ref,
    description,
    enterprises_account,
)
from payledger.core.models import LedgerLine, PostingType
from payledger.core.utils import to_money
from payledger.validation.validators import require_array, require_field, require_numeric

logger = logging.getLogger(__name__)


class LineBuilder(Protocol):
    kind: TransactionKind

    def validate(self, facts: Mapping[str, Any]) -> None: ...

    def build_lines(self, facts: Mapping[str, Any]) -> List[LedgerLine]: ...


def make_line(desc: str, signed_amount: Any, entity_ref: Optional[str], class_id: str,
              account_id: str) -> Optional[LedgerLine]:
    """Build one line from a signed amount, or None when the amount is effectively zero."""
    amount = to_money(signed_amount)
    if abs(amount) <= AMOUNT_ZERO_THRESHOLD:
        return None
    return LedgerLine(
        description=desc,
        amount=abs(amount),
        posting_type=PostingType.for_amount(amount),
        account_ref=str(account_id),
        class_ref=str(class_id),
        entity_ref=str(entity_ref) if entity_ref not in (None, "") else None,
    )


def _append(lines: List[LedgerLine], line: Optional[LedgerLine]):
    if line is not None:
        lines.append(line)


def _check_items(facts: Mapping[str, Any], field: str, keys: List[str], numeric: List[str]):
    require_array(facts, field, non_empty=True)
    for i, item in enumerate(facts[field]):
        for key in keys:
            require_field(item, key, f"{field}[{i}].{key}")
        for key in numeric:
            require_numeric(item, key, f"{field}[{i}].{key}")


AUEW = charity_account("AUEW_ACCOUNT")
ADMIN = class_ref("ADMIN_CLASS")
HARROW_ROAD = class_ref("HARROW_ROAD_CLASS")

# (fact key, description key, account key), in posting order
EMPLOYEE_DEDUCTIONS = [
    ("paye", "PAYE", "TAX_ACCOUNT"),
    ("employee_ni", "EMPLOYEE_NI", "TAX_ACCOUNT"),
    ("salary_sacrifice", "SALARY_SACRIFICE", "SALARY_SACRIFICE_ACCOUNT"),
    ("employee_pension", "EMPLOYEE_PENSION_CONT", "EMPLOYEE_PENSION_CONTRIB_ACCOUNT"),
    ("other_deductions", "OTHER_DEDUCTIONS", "OTHER_DEDUCTIONS_ACCOUNT"),
    ("student_loan", "STUDENT_LOAN", "TAX_ACCOUNT"),
    ("net_pay", "NET_PAY", "NET_PAY_ACCOUNT"),
]


class EmployeeLineBuilder:
    """
    One employee's payslip journal.

    Gross pay is debited per allocation, to the shop account when the
    allocation names it and to staff salaries otherwise. Deductions and net
    pay arrive natural-signed (negative) and are posted as they are, so they
    come out as credits.
    """

    kind = TransactionKind.EMPLOYEE

    def validate(self, facts: Mapping[str, Any]) -> None:
        require_field(facts, "employee_ref")
        _check_items(facts, "gross_salary", ["amount", "class", "account"], ["amount"])
        for key, _, _ in EMPLOYEE_DEDUCTIONS:
            require_numeric(facts, key)

    def build_lines(self, facts: Mapping[str, Any]) -> List[LedgerLine]:
        employee = facts["employee_ref"]
        lines: List[LedgerLine] = []
        for allocation in facts["gross_salary"]:
            account = AUEW if str(allocation["account"]) == AUEW else charity_account("STAFF_SALARIES_ACCOUNT")
            _append(lines, make_line(description("GROSS_SALARY"), allocation["amount"], employee,
                                     allocation["class"], account))
        for key, desc_key, account_key in EMPLOYEE_DEDUCTIONS:
            _append(lines, make_line(description(desc_key), facts.get(key), employee, ADMIN,
                                     charity_account(account_key)))
        return lines


class EmployerNILineBuilder:
    """Employer NI per employee, balanced by a single total line on the tax account."""

    kind = TransactionKind.EMPLOYER_NI

    def validate(self, facts: Mapping[str, Any]) -> None:
        _check_items(facts, "entries", ["amount", "employee_ref", "class", "account"], ["amount"])

    def build_lines(self, facts: Mapping[str, Any]) -> List[LedgerLine]:
        lines: List[LedgerLine] = []
        total = Decimal("0")
        for entry in facts["entries"]:
            amount = to_money(entry["amount"])
            _append(lines, make_line(description("EMPLOYER_NI"), amount, entry["employee_ref"],
                                     entry["class"], entry["account"]))
            total += amount
        _append(lines, make_line(f"Total of {description('EMPLOYER_NI')}", -total, None, ADMIN,
                                 charity_account("TAX_ACCOUNT")))
        return lines


class ShopPayrollLineBuilder:
    """
    Shop staff costs booked in the Enterprises company file.

    Every cost component is a mirrored pair: debit the expense account, credit
    the intercompany account, so the charity is settled through interco.
    """

    kind = TransactionKind.SHOP_PAYROLL

    PAIRS = [
        ("total_pay", "GROSS_SALARY", "AUEW_SALARIES_ACCOUNT"),
        ("employer_ni", "EMPLOYER_NI", "AUEW_NI_ACCOUNT"),
        ("employer_pension", "EMPLOYER_PENSION_CONT", "AUEW_PENSIONS_ACCOUNT"),
    ]

    def validate(self, facts: Mapping[str, Any]) -> None:
        _check_items(facts, "entries", ["total_pay", "employee_ref"],
                     ["total_pay", "employer_ni", "employer_pension"])

    def build_lines(self, facts: Mapping[str, Any]) -> List[LedgerLine]:
        interco = enterprises_account("AUKW_INTERCO_ACCOUNT")
        lines: List[LedgerLine] = []
        for entry in facts["entries"]:
            employee = entry["employee_ref"]
            for key, desc_key, account_key in self.PAIRS:
                amount = to_money(entry.get(key))
                if abs(amount) <= AMOUNT_ZERO_THRESHOLD:
                    continue
                _append(lines, make_line(description(desc_key), amount, employee, HARROW_ROAD,
                                         enterprises_account(account_key)))
                _append(lines, make_line(description(desc_key), -amount, employee, HARROW_ROAD, interco))
        return lines


class PensionLineBuilder:
    """
    Monthly pension totals and employer pension costs.

    Does not balance by itself: pensions normally go out as a bill. A caller
    posting these lines as a journal has to add the balancing line.
    """

    kind = TransactionKind.PENSIONS

    def validate(self, facts: Mapping[str, Any]) -> None:
        require_numeric(facts, "salary_sacrifice_total")
        require_numeric(facts, "employee_pension_total")
        if facts.get("pension_costs") is not None:
            _check_items(facts, "pension_costs", ["amount", "class", "account"], ["amount"])

    def build_lines(self, facts: Mapping[str, Any]) -> List[LedgerLine]:
        lines: List[LedgerLine] = []
        _append(lines, make_line("Monthly total of salary sacrifices", facts.get("salary_sacrifice_total"),
                                 None, ADMIN, charity_account("SALARY_SACRIFICE_ACCOUNT")))
        _append(lines, make_line("Monthly total of employee pension contributions",
                                 facts.get("employee_pension_total"), None, ADMIN,
                                 charity_account("EMPLOYEE_PENSION_CONTRIB_ACCOUNT")))
        for cost in facts.get("pension_costs") or []:
            account = AUEW if str(cost["account"]) == AUEW else charity_account("PENSION_COSTS_ACCOUNT")
            _append(lines, make_line(cost.get("name") or "Employer pension contribution", cost["amount"],
                                     None, cost["class"], account))
        logger.debug("built %d pension lines", len(lines))
        return lines


DEFAULT_BUILDERS = (
    EmployeeLineBuilder(),
    EmployerNILineBuilder(),
    PensionLineBuilder(),
    ShopPayrollLineBuilder(),
)
