"""
Payroll posting: payslips and allocation rules in, journal entries and the
pension bill out.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from payledger.allocation.engine import allocate, calculate_total
from payledger.core.config import settings
from payledger.core.constants import (
    DOCNUMBER_MAX_LENGTH,
    TransactionKind,
    charity_account,
    class_ref,
)
from payledger.core.errors import PayrollError
from payledger.core.models import (
    AllocationRule,
    BillLine,
    LedgerEntry,
    LedgerLine,
    PayrollSummary,
    PensionBill,
    PostingType,
)
from payledger.core.utils import round2, to_money
from payledger.journal.factory import JournalFactory
from payledger.validation.validators import (
    validate_date_format,
    validate_document_number,
    validate_realm_id,
)

logger = logging.getLogger(__name__)

AUEW = charity_account("AUEW_ACCOUNT")

# payslip field -> employee fact key. The provider reports these as positive
# amounts; as facts they are money leaving the employee, so negative.
DEDUCTION_FIELDS = {
    "paye": "paye",
    "employee_ni": "employee_ni",
    "salary_sacrifice": "salary_sacrifice",
    "employee_pension": "employee_pension",
    "other_deductions": "other_deductions",
    "student_loan": "student_loan",
    "net_pay": "net_pay",
}


def group_rules(rules: Iterable[AllocationRule]) -> Dict[str, List[AllocationRule]]:
    grouped: Dict[str, List[AllocationRule]] = defaultdict(list)
    for r in rules:
        grouped[str(r.employee_key)].append(r)
    return dict(grouped)


def is_shop_employee(rules: Sequence[AllocationRule]) -> bool:
    """Anyone with part of their cost allocated to the shop."""
    shop_class = class_ref("HARROW_ROAD_CLASS")
    return any(str(r.account) == AUEW or str(r.class_ref) == shop_class for r in rules)


class PayrollService:
    """Turns one month of payslips into ledger documents through the journal factory."""

    def __init__(self, factory: Optional[JournalFactory] = None):
        self.factory = factory or JournalFactory()

    def _rules_for(self, payslip: Mapping[str, Any], rules: Iterable[AllocationRule]) -> List[AllocationRule]:
        key = str(payslip.get("payroll_number"))
        return [r for r in rules if str(r.employee_key) == key]

    # facts

    def employee_facts(self, payslip: Mapping[str, Any], rules: Iterable[AllocationRule]) -> Dict[str, Any]:
        items = allocate(payslip.get("total_pay"), self._rules_for(payslip, rules))
        facts: Dict[str, Any] = {
            "employee_ref": payslip.get("external_id"),
            "gross_salary": [i.to_fact() for i in items],
        }
        for field, key in DEDUCTION_FIELDS.items():
            facts[key] = -to_money(payslip.get(field))
        return facts

    def employer_ni_facts(self, payslips: Iterable[Mapping[str, Any]],
                          rules: Iterable[AllocationRule]) -> Dict[str, Any]:
        """Employer NI split by allocation; shop staff stay on the shop account."""
        grouped = group_rules(rules)
        entries = []
        for p in payslips:
            amount = to_money(p.get("employer_ni"))
            employee_rules = grouped.get(str(p.get("payroll_number")))
            if amount == 0 or not employee_rules:
                continue
            for item in allocate(amount, employee_rules):
                account = AUEW if item.account == AUEW else charity_account("EMPLOYER_NI_ACCOUNT")
                entries.append({"amount": item.amount, "employee_ref": p.get("external_id"),
                                "class": item.class_ref, "account": account})
        return {"entries": entries}

    def shop_payroll_facts(self, payslips: Iterable[Mapping[str, Any]],
                           rules: Iterable[AllocationRule]) -> Dict[str, Any]:
        grouped = group_rules(rules)
        entries = []
        for p in payslips:
            if not is_shop_employee(grouped.get(str(p.get("payroll_number")), [])):
                continue
            entries.append({
                "total_pay": to_money(p.get("total_pay")),
                "employee_ref": p.get("external_id"),
                "employer_ni": to_money(p.get("employer_ni")),
                "employer_pension": to_money(p.get("employer_pension")),
            })
        return {"entries": entries}

    def pension_facts(self, payslips: Sequence[Mapping[str, Any]],
                      rules: Iterable[AllocationRule]) -> Dict[str, Any]:
        grouped = group_rules(rules)
        costs = []
        for p in payslips:
            amount = to_money(p.get("employer_pension"))
            employee_rules = grouped.get(str(p.get("payroll_number")))
            if amount == 0 or not employee_rules:
                continue
            name = f"{p.get('employee_name')} ({p.get('payroll_number')})"
            for item in allocate(amount, employee_rules):
                costs.append({**item.to_fact(), "name": name})
        return {
            "salary_sacrifice_total": calculate_total(payslips, lambda p: p.get("salary_sacrifice")),
            "employee_pension_total": calculate_total(payslips, lambda p: p.get("employee_pension")),
            "pension_costs": costs,
        }

    # documents

    def create_employee_entry(self, payslip: Mapping[str, Any], rules: Iterable[AllocationRule], date: str,
                              document_number: str, realm_id: str = None) -> LedgerEntry:
        validate_realm_id(realm_id or settings.CHARITY_REALM_ID)
        facts = self.employee_facts(payslip, rules)
        return self.factory.build_entry(TransactionKind.EMPLOYEE, facts, date, document_number)

    def create_employee_entries(self, payslips: Iterable[Mapping[str, Any]], rules: Iterable[AllocationRule],
                                date: str, document_prefix: str, stop_on_error: bool = False,
                                realm_id: str = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        One journal per employee. Failures are collected per employee rather
        than aborting the batch, unless ``stop_on_error`` is set.
        """
        rules = list(rules)
        results: Dict[str, List[Dict[str, Any]]] = {"success": [], "errors": []}
        for index, payslip in enumerate(payslips):
            ref = payslip.get("external_id") or index
            document_number = f"{document_prefix}_{ref}"[:DOCNUMBER_MAX_LENGTH]
            try:
                entry = self.create_employee_entry(payslip, rules, date, document_number, realm_id)
            except PayrollError as e:
                logger.warning("employee journal for %s failed: %s", ref, e.message)
                results["errors"].append({"employee_ref": payslip.get("external_id"), **e.to_dict()})
                if stop_on_error:
                    break
                continue
            results["success"].append({"employee_ref": payslip.get("external_id"), "entry": entry})
        logger.info("employee journals: %d created, %d failed", len(results["success"]), len(results["errors"]))
        return results

    def create_employer_ni_entry(self, payslips: Iterable[Mapping[str, Any]], rules: Iterable[AllocationRule],
                                 date: str, document_number: str, realm_id: str = None) -> LedgerEntry:
        validate_realm_id(realm_id or settings.CHARITY_REALM_ID)
        facts = self.employer_ni_facts(payslips, rules)
        return self.factory.build_entry(TransactionKind.EMPLOYER_NI, facts, date, document_number)

    def create_shop_payroll_entry(self, payslips: Iterable[Mapping[str, Any]], rules: Iterable[AllocationRule],
                                  date: str, document_number: str, realm_id: str = None) -> LedgerEntry:
        validate_realm_id(realm_id or settings.ENTERPRISES_REALM_ID)
        facts = self.shop_payroll_facts(payslips, rules)
        return self.factory.build_entry(TransactionKind.SHOP_PAYROLL, facts, date, document_number)

    def create_pension_bill(self, payslips: Sequence[Mapping[str, Any]], rules: Iterable[AllocationRule],
                            date: str, document_number: str, realm_id: str = None) -> PensionBill:
        """Pension payable to the provider. Lines come from the pension builder."""
        validate_realm_id(realm_id or settings.CHARITY_REALM_ID)
        validate_date_format(date, "transaction_date")
        validate_document_number(document_number)
        lines = self.factory.build_lines(TransactionKind.PENSIONS, self.pension_facts(payslips, rules))
        bill_lines = tuple(
            BillLine(l.description, l.signed_amount, l.account_ref, l.class_ref, settings.NOVAT_TAX_CODE)
            for l in lines
        )
        bill = PensionBill(date, document_number, settings.PENSION_VENDOR_REF, bill_lines)
        logger.info("pension bill %s: %d lines, total %s", document_number, len(bill_lines), bill.total)
        return bill

    def create_pension_entry(self, payslips: Sequence[Mapping[str, Any]], rules: Iterable[AllocationRule],
                             date: str, document_number: str, payable_account: str) -> LedgerEntry:
        """Pensions as a journal instead of a bill, balanced against ``payable_account``."""
        facts = self.pension_facts(payslips, rules)
        lines = self.factory.build_lines(TransactionKind.PENSIONS, facts)
        balancing = pension_balancing_line(lines, payable_account)
        extra = [balancing] if balancing is not None else []
        return self.factory.build_entry(TransactionKind.PENSIONS, facts, date, document_number, extra_lines=extra)

    # reconciliation support

    def expected_summary(self, payslip: Mapping[str, Any]) -> PayrollSummary:
        """What reconciliation should find for this payslip, natural-signed."""
        values = {k: -to_money(payslip.get(f)) for f, k in DEDUCTION_FIELDS.items()}
        return PayrollSummary(
            employee_key=str(payslip.get("payroll_number")),
            employee_name=payslip.get("employee_name") or "",
            external_id=payslip.get("external_id"),
            total_pay=to_money(payslip.get("total_pay")),
            employer_ni=to_money(payslip.get("employer_ni")),
            employer_pension=to_money(payslip.get("employer_pension")),
            **values,
        )


def pension_balancing_line(lines: Iterable[LedgerLine], account_ref: str,
                           class_id: str = None) -> Optional[LedgerLine]:
    """Credit (or debit) that brings a set of pension lines back to zero."""
    net = sum((l.signed_amount for l in lines), Decimal("0"))
    if net == 0:
        return None
    return LedgerLine(
        description="Pension provider payable",
        amount=round2(abs(net)),
        posting_type=PostingType.CREDIT if net > 0 else PostingType.DEBIT,
        account_ref=str(account_ref),
        class_ref=class_id or class_ref("ADMIN_CLASS"),
    )
