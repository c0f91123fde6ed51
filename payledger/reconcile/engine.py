"""
Rebuild per-employee payroll summaries from journal entries and pension
bills that have already been posted to the ledger.

Entries arrive in the raw shape
``{"lines": [{description, amount, postingType, accountRef, classRef, entityRef}]}``.
The ledger data is produced elsewhere, so a line that cannot be classified or
matched to an employee is skipped, never fatal.
"""
import logging
import re
from functools import reduce
from typing import Any, Dict, Iterable, Iterator, Mapping, MutableMapping, Optional, Tuple

from payledger.core.constants import charity_account, description, enterprises_account
from payledger.core.models import PayrollComponent, PayrollSummary, PostingType
from payledger.core.utils import is_finite, is_numeric, to_money

logger = logging.getLogger(__name__)

ANY_DESCRIPTION = "*"

# account -> description -> component. Accounts shared by several components
# are split on the exact line description; everything else uses "*".
# Accounts not listed here (interco included) are ignored.
JOURNAL_ACCOUNT_MAP: Dict[str, Dict[str, PayrollComponent]] = {
    charity_account("AUEW_ACCOUNT"): {
        description("GROSS_SALARY"): PayrollComponent.TOTAL_PAY,
        description("EMPLOYER_NI"): PayrollComponent.EMPLOYER_NI,
    },
    charity_account("STAFF_SALARIES_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.TOTAL_PAY},
    enterprises_account("AUEW_SALARIES_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.TOTAL_PAY},
    charity_account("TAX_ACCOUNT"): {
        description("PAYE"): PayrollComponent.PAYE,
        description("EMPLOYEE_NI"): PayrollComponent.EMPLOYEE_NI,
        description("STUDENT_LOAN"): PayrollComponent.STUDENT_LOAN,
    },
    charity_account("OTHER_DEDUCTIONS_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.OTHER_DEDUCTIONS},
    charity_account("SALARY_SACRIFICE_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.SALARY_SACRIFICE},
    charity_account("EMPLOYEE_PENSION_CONTRIB_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.EMPLOYEE_PENSION},
    charity_account("NET_PAY_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.NET_PAY},
    charity_account("EMPLOYER_NI_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.EMPLOYER_NI},
    enterprises_account("AUEW_NI_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.EMPLOYER_NI},
    enterprises_account("AUEW_PENSIONS_ACCOUNT"): {ANY_DESCRIPTION: PayrollComponent.EMPLOYER_PENSION},
}

# Employer pension cost lines on a pension bill
BILL_PENSION_ACCOUNTS = frozenset({
    charity_account("PENSION_COSTS_ACCOUNT"),
    charity_account("AUEW_ACCOUNT"),
})

PAYROLL_NUMBER_RE = re.compile(r"(\d+)")
BRACKETED_RE = re.compile(r"\([^)]*\)")


def ref_value(ref: Any) -> Optional[str]:
    """Plain id from a reference given either as a bare id or as ``{"value": ..., "name": ...}``."""
    if isinstance(ref, Mapping):
        ref = ref.get("value")
    if ref is None:
        return None
    ref = str(ref).strip()
    return ref or None


def classify_line(account: Optional[str], desc: Optional[str]) -> Optional[PayrollComponent]:
    by_description = JOURNAL_ACCOUNT_MAP.get(account or "")
    if by_description is None:
        return None
    return by_description.get(ANY_DESCRIPTION) or by_description.get((desc or "").strip())


def signed_amount(line: Mapping[str, Any]) -> Optional[Any]:
    """Debit positive, Credit negative. Lines without a posting type count as debits."""
    amount = line.get("amount")
    if not is_numeric(amount) or not is_finite(amount):
        return None
    amount = to_money(amount)
    return -amount if line.get("postingType") == PostingType.CREDIT else amount


def _lines(entries: Iterable[Mapping[str, Any]]) -> Iterator[Mapping[str, Any]]:
    for entry in entries:
        lines = entry.get("lines") if isinstance(entry, Mapping) else None
        if not isinstance(lines, list):
            logger.debug("entry without lines skipped")
            continue
        yield from (l for l in lines if isinstance(l, Mapping))


def employee_key(employee: Mapping[str, Any]) -> Optional[str]:
    """Payroll number as a summary key, or None for an employee without one."""
    return ref_value(employee.get("payroll_number"))


def _touch(summaries: Mapping[str, PayrollSummary], employee: Mapping[str, Any]) -> Optional[PayrollSummary]:
    key = employee_key(employee)
    if key is None:
        logger.debug("employee %s has no payroll number, line skipped", employee.get("name"))
        return None
    if key in summaries:
        return summaries[key]
    return PayrollSummary(employee_key=key, employee_name=employee.get("name") or "",
                          external_id=ref_value(employee.get("external_id")))


def reconcile_journal_lines(employees_by_external_id: Mapping[str, Mapping[str, Any]],
                            journal_entries: Iterable[Mapping[str, Any]],
                            summaries: Optional[Mapping[str, PayrollSummary]] = None
                            ) -> Dict[str, PayrollSummary]:
    """
    Fold journal lines into summaries keyed by payroll number.

    The first line for an employee creates their summary, even if the line
    itself is not classified. Lines with no employee, an unknown employee,
    an unmapped account or a bad amount are skipped.
    """

    def step(acc: Dict[str, PayrollSummary], line: Mapping[str, Any]) -> Dict[str, PayrollSummary]:
        external_id = ref_value(line.get("entityRef"))
        if external_id is None:
            return acc
        employee = employees_by_external_id.get(external_id)
        if employee is None:
            logger.debug("journal line for unknown employee %s skipped", external_id)
            return acc
        summary = _touch(acc, employee)
        if summary is None:
            return acc
        component = classify_line(ref_value(line.get("accountRef")), line.get("description"))
        amount = signed_amount(line)
        if component is not None and amount is not None:
            summary = summary.add(component, amount)
        elif component is None:
            logger.debug("journal line on account %s (%s) not classified",
                         ref_value(line.get("accountRef")), line.get("description"))
        acc[summary.employee_key] = summary
        return acc

    # the fold owns this copy, so steps update it in place
    return reduce(step, _lines(journal_entries), dict(summaries or {}))


def resolve_bill_employee(desc: Optional[str], employees_by_name: Mapping[str, Mapping[str, Any]]
                          ) -> Optional[Mapping[str, Any]]:
    """
    Find the employee a pension bill line belongs to.

    A digit run in the description is taken as the payroll number and must
    match an employee. Without one, the bracketed parts are removed and the
    rest must equal an employee's display name. Partial names are not matched.
    """
    desc = desc or ""
    m = PAYROLL_NUMBER_RE.search(desc)
    if m:
        number = m.group(1)
        return next((e for e in employees_by_name.values() if employee_key(e) == number), None)

    name = BRACKETED_RE.sub("", desc).strip()
    return employees_by_name.get(name) if name else None


def _bill_account(line: Mapping[str, Any]) -> Optional[str]:
    return ref_value(line.get("accountRef"))


def reconcile_bill_lines(employees_by_name: Mapping[str, Mapping[str, Any]],
                         bill_entries: Iterable[Mapping[str, Any]],
                         summaries: MutableMapping[str, PayrollSummary]) -> MutableMapping[str, PayrollSummary]:
    """Add employer pension costs from pension bills into ``summaries`` (updated in place)."""

    def step(acc: Dict[str, PayrollSummary], line: Mapping[str, Any]) -> Dict[str, PayrollSummary]:
        if _bill_account(line) not in BILL_PENSION_ACCOUNTS:
            return acc
        employee = resolve_bill_employee(line.get("description"), employees_by_name)
        amount = signed_amount(line)
        if employee is None or amount is None:
            logger.debug("bill line '%s' not matched to an employee, skipped", line.get("description"))
            return acc
        summary = _touch(acc, employee)
        if summary is None:
            return acc
        acc[summary.employee_key] = summary.add(PayrollComponent.EMPLOYER_PENSION, amount)
        return acc

    summaries.update(reduce(step, _lines(bill_entries), dict(summaries)))
    return summaries


def index_employees(employees: Iterable[Mapping[str, Any]]) -> Tuple[Dict[str, Mapping[str, Any]],
                                                                     Dict[str, Mapping[str, Any]]]:
    """(by external id, by display name) lookups over employee records."""
    by_id: Dict[str, Mapping[str, Any]] = {}
    by_name: Dict[str, Mapping[str, Any]] = {}
    for e in employees:
        external_id = ref_value(e.get("external_id"))
        if external_id is not None:
            by_id[external_id] = e
        if e.get("name"):
            by_name[e["name"]] = e
    return by_id, by_name


def reconcile(employees: Iterable[Mapping[str, Any]], journals: Iterable[Mapping[str, Any]],
              bills: Iterable[Mapping[str, Any]] = ()) -> Dict[str, PayrollSummary]:
    """Full pass for one payroll month: pension bills first, then journals."""
    by_id, by_name = index_employees(employees)
    summaries: Dict[str, PayrollSummary] = {}
    reconcile_bill_lines(by_name, bills, summaries)
    summaries = reconcile_journal_lines(by_id, journals, summaries)
    logger.info("reconciled %d employees", len(summaries))
    return summaries
