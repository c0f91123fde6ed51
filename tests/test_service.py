from decimal import Decimal
import pytest

from payledger.core.errors import ValidationError
from payledger.core.models import AllocationRule, PostingType
from payledger.payroll.service import PayrollService, is_shop_employee, pension_balancing_line
from payledger.reconcile.engine import reconcile
from payledger.validation.validators import validate_summary_balance

ADMIN = "1400000000000130710"
HARROW = "400000000000618070"

ANN = {"payroll_number": 7, "employee_name": "Ann Lee", "external_id": "55", "total_pay": 2000,
       "paye": 300, "employee_ni": 150, "employer_ni": 220, "student_loan": 0, "other_deductions": 0,
       "salary_sacrifice": 0, "employee_pension": 50, "employer_pension": 100, "net_pay": 1500}
BOB = {"payroll_number": 8, "employee_name": "Bob Ray", "external_id": "56", "total_pay": 1000,
       "paye": 100, "employee_ni": 50, "employer_ni": 80, "student_loan": 0, "other_deductions": 0,
       "salary_sacrifice": 40, "employee_pension": 0, "employer_pension": 30, "net_pay": 810}

RULES = [
    AllocationRule("7", "261", ADMIN, Decimal("60")),
    AllocationRule("7", "261", "class-b", Decimal("40")),
    AllocationRule("8", "65", HARROW, Decimal("100")),
]

def test_is_shop_employee():
    assert is_shop_employee(RULES[2:])
    assert not is_shop_employee(RULES[:2])

def test_employee_facts_are_natural_signed():
    facts = PayrollService().employee_facts(ANN, RULES)
    assert facts["employee_ref"] == "55"
    assert [g["amount"] for g in facts["gross_salary"]] == [Decimal("1200.00"), Decimal("800.00")]
    assert facts["paye"] == Decimal("-300") and facts["net_pay"] == Decimal("-1500")

def test_create_employee_entry_balances():
    entry = PayrollService().create_employee_entry(ANN, RULES, "2024-04-25", "Payroll_2024_04-55")
    assert entry.imbalance == 0
    assert len(entry.lines) == 6

def test_batch_collects_errors():
    broken = {**BOB, "payroll_number": 99}
    result = PayrollService().create_employee_entries([ANN, broken, BOB], RULES, "2024-04-25", "Payroll_2024_04")
    assert [s["employee_ref"] for s in result["success"]] == ["55", "56"]
    assert result["errors"][0]["employee_ref"] == "56"
    assert result["errors"][0]["error_code"] == "VALIDATION_PERCENTAGE_SUM"
    assert result["success"][0]["entry"].document_number == "Payroll_2024_04_55"

def test_batch_stop_on_error():
    broken = {**ANN, "payroll_number": 99}
    result = PayrollService().create_employee_entries([broken, BOB], RULES, "2024-04-25", "P", stop_on_error=True)
    assert result["success"] == [] and len(result["errors"]) == 1

def test_realm_checked():
    with pytest.raises(ValidationError):
        PayrollService().create_employee_entry(ANN, RULES, "2024-04-25", "P", realm_id="1")

def test_employer_ni_entry_keeps_shop_account():
    entry = PayrollService().create_employer_ni_entry([ANN, BOB], RULES, "2024-04-25", "Payroll_2024_04_NI")
    debits = [l for l in entry.lines if l.posting_type == PostingType.DEBIT]
    assert [(l.account_ref, l.amount) for l in debits] == [
        ("95", Decimal("132.00")), ("95", Decimal("88.00")), ("65", Decimal("80.00"))]
    assert entry.lines[-1].amount == Decimal("300.00")

def test_shop_payroll_entry_only_shop_staff():
    entry = PayrollService().create_shop_payroll_entry([ANN, BOB], RULES, "2024-04-25", "Payroll_2024_04")
    assert {l.entity_ref for l in entry.lines} == {"56"}
    assert len(entry.lines) == 6

def test_pension_bill():
    bill = PayrollService().create_pension_bill([ANN, BOB], RULES, "2024-04-25", "Payroll_2024_04")
    assert bill.vendor_ref == "357"
    descriptions = [l.description for l in bill.lines]
    assert descriptions[:2] == ["Monthly total of salary sacrifices", "Monthly total of employee pension contributions"]
    assert descriptions[2:] == ["Ann Lee (7)", "Ann Lee (7)", "Bob Ray (8)"]
    assert [l.account_ref for l in bill.lines[2:]] == ["285", "285", "65"]
    assert bill.total == Decimal("220.00")
    assert bill.to_qbo()["Line"][0]["AccountBasedExpenseLineDetail"]["TaxCodeRef"] == "20"

def test_pension_entry_is_balanced():
    entry = PayrollService().create_pension_entry([ANN, BOB], RULES, "2024-04-25", "Payroll_2024_04_P", "400")
    assert entry.imbalance == 0
    assert entry.lines[-1].posting_type == PostingType.CREDIT and entry.lines[-1].amount == Decimal("220.00")

def test_pension_balancing_line_none_when_balanced():
    assert pension_balancing_line([], "400") is None

def test_posted_documents_reconcile_to_expected():
    svc = PayrollService()
    journals = [svc.create_employee_entry(p, RULES, "2024-04-25", f"P_{p['external_id']}").to_dict()
                for p in (ANN, BOB)]
    journals.append(svc.create_employer_ni_entry([ANN, BOB], RULES, "2024-04-25", "P_NI").to_dict())
    bill = svc.create_pension_bill([ANN, BOB], RULES, "2024-04-25", "P_PEN").to_dict()
    employees = [{"external_id": p["external_id"], "payroll_number": p["payroll_number"], "name": p["employee_name"]}
                 for p in (ANN, BOB)]
    summaries = reconcile(employees, journals, [bill])
    for p in (ANN, BOB):
        expected = svc.expected_summary(p)
        got = summaries[str(p["payroll_number"])]
        validate_summary_balance(got)
        assert got.to_dict() == {**expected.to_dict(), "external_id": got.external_id}
