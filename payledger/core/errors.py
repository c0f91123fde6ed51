"""
Exception hierarchy for payroll posting and reconciliation.

Every error carries a machine readable code plus a context dict so that an
API layer can turn it into a response without string parsing.
"""
from typing import Any, Dict, Iterable, Optional


class PayrollError(Exception):
    """Base class for all payledger errors."""

    error_code = "PAYROLL_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"error_code": self.error_code, "message": self.message, "context": self.context}


class ValidationError(PayrollError):
    """Input failed validation. Names the offending field and value."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None,
                 context: Optional[Dict[str, Any]] = None):
        context = dict(context or {})
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = value
        super().__init__(message, context)
        self.field = field
        self.value = value


class StructuralError(ValidationError):
    error_code = "VALIDATION_MISSING_REQUIRED_FIELD"

    @classmethod
    def missing(cls, field: str) -> "StructuralError":
        return cls(f"Required field '{field}' is missing", field)


class AmountError(ValidationError):
    error_code = "VALIDATION_INVALID_AMOUNT"

    @classmethod
    def invalid(cls, field: str, value: Any) -> "AmountError":
        return cls(f"Invalid amount for field '{field}'. Amount must be a valid number", field, value)

    @classmethod
    def negative(cls, field: str, value: Any) -> "AmountError":
        err = cls(f"Amount for field '{field}' cannot be negative", field, value)
        err.error_code = "VALIDATION_AMOUNT_NEGATIVE"
        return err


class DateError(ValidationError):
    error_code = "VALIDATION_INVALID_DATE"


class BalanceError(ValidationError):
    """Debits and credits disagree beyond tolerance."""

    error_code = "VALIDATION_UNBALANCED_JOURNAL"

    def __init__(self, debits, credits, line_count: Optional[int] = None):
        self.debits = debits
        self.credits = credits
        self.imbalance = debits - credits
        context = {"debits": debits, "credits": credits, "balance": self.imbalance}
        if line_count is not None:
            context["line_count"] = line_count
        super().__init__(
            f"Journal entry is not balanced. Debits must equal credits. Imbalance: {self.imbalance:.2f}",
            None, self.imbalance, context,
        )


class PercentageSumError(ValidationError):
    error_code = "VALIDATION_PERCENTAGE_SUM"


class TransactionKindError(ValidationError):
    error_code = "VALIDATION_INVALID_TRANSACTION_TYPE"

    def __init__(self, kind: Any, valid_kinds: Iterable[str]):
        valid = sorted(valid_kinds)
        super().__init__(
            f"Invalid transaction kind '{kind}'. Valid kinds: {', '.join(valid)}",
            "transaction_kind", kind, {"valid_kinds": valid},
        )
