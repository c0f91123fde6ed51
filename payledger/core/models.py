"""
Value objects shared by the builders, the factory and the reconciliation parser.
"""
from dataclasses import asdict, dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from payledger.core.utils import round2, to_money


class PostingType(str, Enum):
    DEBIT = "Debit"
    CREDIT = "Credit"

    @classmethod
    def for_amount(cls, signed_amount: Decimal) -> "PostingType":
        return cls.CREDIT if signed_amount < 0 else cls.DEBIT


@dataclass(frozen=True)
class LedgerLine:
    description: str
    amount: Decimal
    posting_type: PostingType
    account_ref: str
    class_ref: str
    entity_ref: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        return -self.amount if self.posting_type == PostingType.CREDIT else self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "amount": self.amount,
            "postingType": self.posting_type.value,
            "accountRef": self.account_ref,
            "classRef": self.class_ref,
            "entityRef": self.entity_ref,
        }

    def to_qbo(self) -> Dict[str, Any]:
        return {
            "Description": self.description,
            "Amount": float(round2(self.amount)),
            "DetailType": "JournalEntryLineDetail",
            "JournalEntryLineDetail": {
                "PostingType": self.posting_type.value,
                "Entity": {"Type": "Employee", "EntityRef": self.entity_ref or ""},
                "AccountRef": self.account_ref,
                "ClassRef": self.class_ref,
            },
        }


def _totals(lines) -> Tuple[Decimal, Decimal]:
    debits = sum((l.amount for l in lines if l.posting_type == PostingType.DEBIT), Decimal("0"))
    credits = sum((l.amount for l in lines if l.posting_type == PostingType.CREDIT), Decimal("0"))
    return debits, credits


@dataclass(frozen=True)
class LedgerEntry:
    transaction_date: str
    document_number: str
    lines: Tuple[LedgerLine, ...] = ()

    @property
    def total_debits(self) -> Decimal:
        return _totals(self.lines)[0]

    @property
    def total_credits(self) -> Decimal:
        return _totals(self.lines)[1]

    @property
    def imbalance(self) -> Decimal:
        debits, credits = _totals(self.lines)
        return debits - credits

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionDate": self.transaction_date,
            "documentNumber": self.document_number,
            "lines": [l.to_dict() for l in self.lines],
        }

    def to_qbo(self) -> Dict[str, Any]:
        return {
            "TxnDate": self.transaction_date,
            "DocNumber": self.document_number,
            "Line": [l.to_qbo() for l in self.lines],
        }


@dataclass(frozen=True)
class BillLine:
    description: str
    amount: Decimal
    account_ref: str
    class_ref: str
    tax_code_ref: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "amount": self.amount,
            "postingType": PostingType.DEBIT.value,
            "accountRef": self.account_ref,
            "classRef": self.class_ref,
            "entityRef": None,
        }

    def to_qbo(self) -> Dict[str, Any]:
        return {
            "Description": self.description,
            "Amount": float(round2(self.amount)),
            "DetailType": "AccountBasedExpenseLineDetail",
            "AccountBasedExpenseLineDetail": {
                "AccountRef": self.account_ref,
                "ClassRef": self.class_ref,
                "TaxCodeRef": self.tax_code_ref,
            },
        }


@dataclass(frozen=True)
class PensionBill:
    """Monthly pension payable. A bill, so it has no balancing line of its own."""

    transaction_date: str
    document_number: str
    vendor_ref: str
    lines: Tuple[BillLine, ...] = ()

    @property
    def total(self) -> Decimal:
        return round2(sum((l.amount for l in self.lines), Decimal("0")))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionDate": self.transaction_date,
            "documentNumber": self.document_number,
            "vendorRef": self.vendor_ref,
            "total": self.total,
            "lines": [l.to_dict() for l in self.lines],
        }

    def to_qbo(self) -> Dict[str, Any]:
        return {
            "TxnDate": self.transaction_date,
            "DocNumber": self.document_number,
            "VendorRef": self.vendor_ref,
            "TotalAmt": float(self.total),
            "Line": [l.to_qbo() for l in self.lines],
        }


@dataclass(frozen=True)
class AllocationRule:
    employee_key: str
    account: str
    class_ref: str
    percentage: Decimal

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AllocationRule":
        return cls(
            employee_key=str(d.get("employee_key", d.get("payroll_number", ""))),
            account=str(d["account"]),
            class_ref=str(d.get("class_ref", d.get("class", ""))),
            percentage=to_money(d["percentage"]),
        )


@dataclass(frozen=True)
class LineItem:
    employee_key: str
    account: str
    class_ref: str
    percentage: Decimal
    amount: Decimal

    def to_fact(self) -> Dict[str, Any]:
        """Shape expected by the employee and pension builders."""
        return {"amount": self.amount, "class": self.class_ref, "account": self.account}


class PayrollComponent(str, Enum):
    """Monetary fields of a PayrollSummary. Values are the field names."""

    TOTAL_PAY = "total_pay"
    EMPLOYER_NI = "employer_ni"
    EMPLOYEE_NI = "employee_ni"
    PAYE = "paye"
    STUDENT_LOAN = "student_loan"
    OTHER_DEDUCTIONS = "other_deductions"
    SALARY_SACRIFICE = "salary_sacrifice"
    EMPLOYEE_PENSION = "employee_pension"
    EMPLOYER_PENSION = "employer_pension"
    NET_PAY = "net_pay"


_ZERO = Decimal("0")


@dataclass(frozen=True)
class PayrollSummary:
    """
    Per-employee payroll aggregate.

    Deductions and net pay carry their natural sign (negative), gross pay and
    employer costs are positive.
    """

    employee_key: str
    employee_name: str = ""
    external_id: Optional[str] = None
    total_pay: Decimal = _ZERO
    employer_ni: Decimal = _ZERO
    employee_ni: Decimal = _ZERO
    paye: Decimal = _ZERO
    student_loan: Decimal = _ZERO
    other_deductions: Decimal = _ZERO
    salary_sacrifice: Decimal = _ZERO
    employee_pension: Decimal = _ZERO
    employer_pension: Decimal = _ZERO
    net_pay: Decimal = _ZERO

    def add(self, component: PayrollComponent, amount: Any) -> "PayrollSummary":
        name = PayrollComponent(component).value
        return replace(self, **{name: getattr(self, name) + to_money(amount)})

    def get(self, component: PayrollComponent) -> Decimal:
        return getattr(self, PayrollComponent(component).value)

    @property
    def deductions(self) -> Decimal:
        return (self.paye + self.employee_ni + self.student_loan + self.other_deductions
                + self.salary_sacrifice + self.employee_pension)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SUMMARY_MONEY_FIELDS: List[str] = [c.value for c in PayrollComponent]
