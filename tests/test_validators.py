from decimal import Decimal
import pytest

from payledger.core.errors import (
    AmountError, BalanceError, DateError, PercentageSumError, StructuralError, TransactionKindError, ValidationError,
)
from payledger.core.constants import TransactionKind
from payledger.core.models import LedgerEntry, LedgerLine, PayrollSummary, PostingType
from payledger.validation import validators as v

def line(amount, posting, account="261"):
    return LedgerLine("x", Decimal(str(amount)), posting, account, "c")

def test_require_field_and_array():
    v.require_field({"a": 1}, "a")
    with pytest.raises(StructuralError) as e:
        v.require_field({"a": None}, "a", "outer.a")
    assert e.value.field == "outer.a"
    v.require_array({"xs": [1]}, "xs", non_empty=True)
    with pytest.raises(StructuralError):
        v.require_array({"xs": "abc"}, "xs")
    with pytest.raises(StructuralError):
        v.require_array({"xs": []}, "xs", non_empty=True)

def test_require_numeric_allows_missing():
    v.require_numeric({}, "paye")
    v.require_numeric({"paye": "12.50"}, "paye")
    with pytest.raises(AmountError) as e:
        v.require_numeric({"paye": "lots"}, "paye")
    assert e.value.value == "lots"

def test_validate_amount():
    v.validate_amount(-5, "x")
    v.validate_amount(Decimal("3.2"), "x", allow_negative=False)
    with pytest.raises(AmountError):
        v.validate_amount(float("inf"), "x")
    with pytest.raises(AmountError):
        v.validate_amount(True, "x")
    with pytest.raises(AmountError) as e:
        v.validate_amount(-1, "x", allow_negative=False)
    assert e.value.error_code == "VALIDATION_AMOUNT_NEGATIVE"

def test_date_format_round_trip():
    v.validate_date_format("2024-02-29", "d")
    for bad in ["2023-02-29", "2024-2-5", "25/04/2024", "", None]:
        with pytest.raises(DateError):
            v.validate_date_format(bad, "d")

def test_date_range():
    v.validate_date_range("2024-04-01", "2024-04-01")
    with pytest.raises(DateError):
        v.validate_date_range("2024-05-01", "2024-04-01")

def test_percentage_sum():
    v.validate_percentage_sum([{"percentage": 60}, {"percentage": "40"}])
    with pytest.raises(PercentageSumError):
        v.validate_percentage_sum([{"percentage": 60}, {"percentage": 30}])
    with pytest.raises(PercentageSumError):
        v.validate_percentage_sum([{"percentage": 150}])
    with pytest.raises(AmountError):
        v.validate_percentage_sum([{"percentage": -10}, {"percentage": 110}])

def test_balance_reports_totals():
    v.validate_balance([line(10, PostingType.DEBIT), line(10, PostingType.CREDIT)])
    v.validate_balance([{"amount": 5, "postingType": "Debit"}, {"amount": "5.004", "postingType": "Credit"}])
    with pytest.raises(BalanceError) as e:
        v.validate_balance([line(10, PostingType.DEBIT), line(9.5, PostingType.CREDIT)])
    assert e.value.debits == Decimal("10")
    assert e.value.credits == Decimal("9.5")
    assert e.value.imbalance == Decimal("0.5")
    assert e.value.context["line_count"] == 2

def test_line_count():
    v.validate_line_count([1, 2], 2)
    with pytest.raises(ValidationError):
        v.validate_line_count([1, 2, 3], 2)
    with pytest.raises(StructuralError):
        v.validate_line_count([])

def test_document_number_and_kind():
    v.validate_document_number("Payroll_2024_04")
    with pytest.raises(ValidationError):
        v.validate_document_number("x" * 22)
    assert v.validate_transaction_kind("employer_ni") is TransactionKind.EMPLOYER_NI
    with pytest.raises(TransactionKindError) as e:
        v.validate_transaction_kind("bonus")
    assert "employee" in e.value.context["valid_kinds"]

def test_employee_ref_and_realm():
    v.validate_employee_ref("123")
    with pytest.raises(StructuralError):
        v.validate_employee_ref("")
    with pytest.raises(ValidationError):
        v.validate_employee_ref("abc")
    v.validate_realm_id("123145825016867")
    with pytest.raises(ValidationError):
        v.validate_realm_id("42")

def test_journal_entry_envelope():
    entry = LedgerEntry("2024-04-25", "Payroll_2024_04", (line(1, PostingType.DEBIT), line(1, PostingType.CREDIT)))
    v.validate_journal_entry(entry)
    with pytest.raises(DateError):
        v.validate_journal_entry(LedgerEntry("2024-13-25", "Payroll_2024_04", entry.lines))
    with pytest.raises(BalanceError):
        v.validate_journal_entry(LedgerEntry("2024-04-25", "P", entry.lines[:1] + entry.lines))

def test_summary_balance():
    ok = PayrollSummary("7", total_pay=Decimal("2000"), paye=Decimal("-300"), employee_ni=Decimal("-150"),
                        employee_pension=Decimal("-50"), net_pay=Decimal("-1500"))
    v.validate_summary_balance(ok)
    with pytest.raises(ValidationError):
        v.validate_summary_balance(ok.add("net_pay", 10))
