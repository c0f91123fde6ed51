"""
Structural and business-rule checks shared by journal construction and
reconciliation. Each check returns None on success and raises a typed
ValidationError naming the offending field and value otherwise.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from payledger.core.config import settings
from payledger.core.constants import (
    AMOUNT_ZERO_THRESHOLD,
    BALANCE_TOLERANCE,
    DATE_FORMAT,
    DOCNUMBER_MAX_LENGTH,
    MAX_JOURNAL_LINES,
    TransactionKind,
)
from payledger.core.errors import (
    AmountError,
    BalanceError,
    DateError,
    PercentageSumError,
    StructuralError,
    TransactionKindError,
    ValidationError,
)
from payledger.core.models import LedgerEntry, PayrollSummary, PostingType
from payledger.core.utils import is_finite, is_numeric, to_money

HUNDRED = Decimal("100")


def require_field(data: Mapping[str, Any], field: str, path: Optional[str] = None):
    if not isinstance(data, Mapping) or data.get(field) is None:
        raise StructuralError.missing(path or field)


def require_array(data: Mapping[str, Any], field: str, path: Optional[str] = None, non_empty: bool = False):
    name = path or field
    require_field(data, field, name)
    value = data[field]
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
        raise StructuralError(f"Field '{name}' must be a list", name, value)
    if non_empty and not value:
        raise StructuralError(f"Field '{name}' must not be empty", name, value)


def require_numeric(data: Mapping[str, Any], field: str, path: Optional[str] = None):
    """Finite number if present; a missing field counts as zero."""
    value = data.get(field)
    if value is not None:
        validate_amount(value, path or field)


def validate_amount(value: Any, field: str, allow_negative: bool = True):
    if not is_numeric(value) or not is_finite(value):
        raise AmountError.invalid(field, value)
    if not allow_negative and to_money(value) < 0:
        raise AmountError.negative(field, value)


def validate_date_format(value: Any, field: str, fmt: str = DATE_FORMAT):
    # strptime accepts "2024-1-5" for %Y-%m-%d, so require the exact round trip
    if not isinstance(value, str):
        raise DateError(f"Invalid date for field '{field}'. Expected format: {fmt}", field, value,
                        {"format": fmt})
    try:
        parsed = datetime.strptime(value, fmt)
    except ValueError:
        parsed = None
    if parsed is None or parsed.strftime(fmt) != value:
        raise DateError(f"Invalid date for field '{field}'. Expected format: {fmt}", field, value,
                        {"format": fmt})


def validate_date_range(start: str, end: str, fmt: str = DATE_FORMAT):
    validate_date_format(start, "start_date", fmt)
    validate_date_format(end, "end_date", fmt)
    if datetime.strptime(start, fmt) > datetime.strptime(end, fmt):
        raise DateError(f"Start date {start} must not be after end date {end}", "date_range",
                        f"{start}..{end}", {"start_date": start, "end_date": end})


def _percentage_of(rule: Any) -> Any:
    if isinstance(rule, Mapping):
        return rule.get("percentage")
    return getattr(rule, "percentage", None)


def validate_percentage_sum(rules: Sequence[Any]):
    """Every percentage within [0, 100] and the set summing to 100 within tolerance."""
    if not rules:
        raise StructuralError("Allocation rules cannot be empty", "rules", [])
    total = Decimal("0")
    for i, rule in enumerate(rules):
        field = f"rules[{i}].percentage"
        pct = _percentage_of(rule)
        if pct is None:
            raise StructuralError.missing(field)
        validate_amount(pct, field, allow_negative=False)
        pct = to_money(pct)
        if pct > HUNDRED:
            raise PercentageSumError(f"Allocation {i}: percentage must be between 0 and 100", field, pct)
        total += pct
    if abs(total - HUNDRED) > AMOUNT_ZERO_THRESHOLD:
        raise PercentageSumError(
            f"Allocation percentages must sum to 100%. Current sum: {total}%",
            "rules", total, {"expected_sum": HUNDRED, "actual_sum": total},
        )


def validate_balance(lines: Iterable[Any]):
    """Lines are LedgerLines or raw dicts with amount/postingType."""
    debits = Decimal("0")
    credits = Decimal("0")
    count = 0
    for line in lines:
        count += 1
        if isinstance(line, Mapping):
            amount = to_money(line.get("amount"))
            posting = line.get("postingType")
        else:
            amount = line.amount
            posting = line.posting_type
        if posting == PostingType.DEBIT:
            debits += amount
        elif posting == PostingType.CREDIT:
            credits += amount
    if abs(debits - credits) >= BALANCE_TOLERANCE:
        raise BalanceError(debits, credits, count)


def validate_line_count(lines: Sequence[Any], max_lines: int = MAX_JOURNAL_LINES):
    count = len(lines)
    if count == 0:
        raise StructuralError("Journal must have at least one line", "lines", count)
    if count > max_lines:
        raise ValidationError(f"Journal exceeds maximum line count of {max_lines}", "lines", count,
                              {"max_lines": max_lines, "actual_lines": count})


def validate_document_number(document_number: Any, field: str = "document_number"):
    if not isinstance(document_number, str) or not document_number.strip():
        raise StructuralError.missing(field)
    if len(document_number) > DOCNUMBER_MAX_LENGTH:
        raise ValidationError(f"Document number exceeds maximum length of {DOCNUMBER_MAX_LENGTH}",
                              field, document_number, {"max_length": DOCNUMBER_MAX_LENGTH})


def validate_transaction_kind(kind: Any) -> TransactionKind:
    try:
        return TransactionKind(kind)
    except ValueError:
        raise TransactionKindError(kind, [k.value for k in TransactionKind]) from None


def validate_employee_ref(employee_ref: Any, field: str = "employee_ref"):
    if employee_ref is None or str(employee_ref).strip() == "":
        raise StructuralError(f"Employee reference for '{field}' cannot be empty", field, employee_ref)
    if not str(employee_ref).strip().isdigit():
        raise ValidationError(f"Employee reference for '{field}' must be numeric", field, employee_ref)


def validate_realm_id(realm_id: Any):
    valid = [settings.CHARITY_REALM_ID, settings.ENTERPRISES_REALM_ID]
    if not realm_id:
        raise StructuralError.missing("realm_id")
    if str(realm_id) not in valid:
        raise ValidationError(f"Unknown realm id '{realm_id}'", "realm_id", realm_id,
                              {"valid_realm_ids": valid})


def validate_journal_entry(entry: LedgerEntry):
    """Envelope checks before submission: date, document number, lines and balance."""
    validate_date_format(entry.transaction_date, "transaction_date")
    validate_document_number(entry.document_number)
    validate_line_count(entry.lines)
    for i, line in enumerate(entry.lines):
        if not line.account_ref:
            raise StructuralError.missing(f"lines[{i}].account_ref")
        validate_amount(line.amount, f"lines[{i}].amount", allow_negative=False)
    validate_balance(entry.lines)


def validate_summary_balance(summary: PayrollSummary):
    """Gross pay plus the natural-signed deductions and net pay must come to zero."""
    residue = summary.total_pay + summary.deductions + summary.net_pay
    if abs(residue) >= BALANCE_TOLERANCE:
        raise ValidationError(
            f"Payroll summary for {summary.employee_key} does not balance. Residue: {residue:.2f}",
            "summary", residue,
            {"employee_key": summary.employee_key, "total_pay": summary.total_pay,
             "deductions": summary.deductions, "net_pay": summary.net_pay},
        )
