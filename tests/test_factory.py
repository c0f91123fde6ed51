from decimal import Decimal
import pytest

from payledger.core.constants import TransactionKind
from payledger.core.errors import (
    AmountError, BalanceError, DateError, StructuralError, TransactionKindError, ValidationError,
)
from payledger.core.models import LedgerLine, PostingType
from payledger.journal.builders import EmployerNILineBuilder
from payledger.journal.factory import JournalFactory

ADMIN = "1400000000000130710"

EMPLOYEE = {
    "employee_ref": "55",
    "gross_salary": [{"amount": 2000, "class": ADMIN, "account": "261"}],
    "net_pay": -1500, "paye": -300, "employee_ni": -150, "employee_pension": -50,
}

PENSIONS = {"salary_sacrifice_total": 0, "employee_pension_total": 0,
            "pension_costs": [{"amount": 75, "class": ADMIN, "account": "285"}]}

def test_registry_defaults():
    f = JournalFactory()
    assert set(f.registered_kinds) == set(TransactionKind)
    assert f.has_builder("shop_payroll")
    assert not f.has_builder("bonus")

def test_registry_is_read_only():
    f = JournalFactory()
    with pytest.raises(TypeError):
        f._builders[TransactionKind.EMPLOYEE] = None

def test_unknown_kind_names_valid_kinds():
    with pytest.raises(TransactionKindError) as e:
        JournalFactory().builder_for("bonus")
    assert e.value.context["valid_kinds"] == ["employee", "employer_ni", "pensions", "shop_payroll"]

def test_unregistered_kind():
    f = JournalFactory([EmployerNILineBuilder()])
    assert f.registered_kinds == [TransactionKind.EMPLOYER_NI]
    with pytest.raises(TransactionKindError) as e:
        f.builder_for("employee")
    assert e.value.context["valid_kinds"] == ["employer_ni"]

def test_build_entry_balanced():
    entry = JournalFactory().build_entry("employee", EMPLOYEE, "2024-04-25", "Payroll_2024_04-55")
    assert entry.transaction_date == "2024-04-25"
    assert len(entry.lines) == 5
    assert entry.total_debits == entry.total_credits == Decimal("2000")
    assert entry.to_qbo()["Line"][1]["JournalEntryLineDetail"]["PostingType"] == "Credit"
    assert entry.to_dict()["lines"][0]["postingType"] == "Debit"

def test_build_entry_validates_facts_unless_asked_not_to():
    f = JournalFactory()
    with pytest.raises(StructuralError):
        f.build_entry("employee", {**EMPLOYEE, "employee_ref": None}, "2024-04-25", "P")
    entry = f.build_entry("employee", {**EMPLOYEE, "employee_ref": None}, "2024-04-25", "P", validate=False)
    assert all(l.entity_ref is None for l in entry.lines)

def test_build_entry_envelope_checks():
    f = JournalFactory()
    with pytest.raises(DateError):
        f.build_entry("employee", EMPLOYEE, "2024-02-30", "P")
    with pytest.raises(ValidationError):
        f.build_entry("employee", EMPLOYEE, "2024-04-25", "Payroll_2024_04_too_long")

def test_preview_may_be_unbalanced_entry_may_not():
    f = JournalFactory()
    lines = f.build_lines("pensions", PENSIONS)
    assert len(lines) == 1
    with pytest.raises(BalanceError) as e:
        f.check_balance(lines)
    assert e.value.context["line_count"] == 1
    with pytest.raises(BalanceError):
        f.build_entry("pensions", PENSIONS, "2024-04-25", "P")

def test_extra_lines_balance_pensions():
    balancing = LedgerLine("Pension provider payable", Decimal("75"), PostingType.CREDIT, "400", ADMIN)
    entry = JournalFactory().build_entry("pensions", PENSIONS, "2024-04-25", "P", extra_lines=[balancing])
    assert entry.imbalance == 0
    assert JournalFactory().check_balance(entry.lines) is True

@pytest.mark.parametrize("bad", [float("inf"), "Infinity", "NaN"])
def test_build_entry_rejects_non_finite_amount(bad):
    with pytest.raises(AmountError) as e:
        JournalFactory().build_entry("employee", {**EMPLOYEE, "paye": bad}, "2024-04-25", "Payroll_2024_04")
    assert e.value.field == "paye"
