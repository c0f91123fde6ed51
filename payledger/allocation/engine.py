"""
Percentage-based cost allocation.

Splits one signed amount across a list of allocation rules so that the
allocated amounts always sum to the rounded original total.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

from payledger.core.constants import ALLOCATION_REMAINDER_THRESHOLD, AMOUNT_ZERO_THRESHOLD
from payledger.core.errors import PercentageSumError
from payledger.core.models import AllocationRule, LineItem
from payledger.core.utils import round2, to_money
from payledger.validation.validators import validate_percentage_sum

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def _active_rules(rules: Iterable[AllocationRule]) -> List[AllocationRule]:
    return [r for r in rules if abs(to_money(r.percentage)) >= AMOUNT_ZERO_THRESHOLD]


def _constrain(amount: Decimal, remainder: Decimal, negative: bool) -> Decimal:
    # never allocate more than is left, whichever direction the total runs
    return max(amount, remainder) if negative else min(amount, remainder)


def allocate(total_amount: Any, rules: Sequence[AllocationRule]) -> List[LineItem]:
    """
    Allocate ``total_amount`` across ``rules`` in rule order.

    Every rule but the last gets its rounded percentage share, clamped to what
    is still unallocated and snapped to the whole remainder when it comes
    within ALLOCATION_REMAINDER_THRESHOLD of it. The last rule gets the rounded
    remainder. Rules with a zero percentage are dropped first.

    Raises PercentageSumError when no rules remain, when a percentage is above
    100 or when the set does not add up to 100. A negative percentage is an
    AmountError.
    """
    total = to_money(total_amount)
    active = _active_rules(rules)
    if not active:
        raise PercentageSumError(
            "No allocation rules with a non-zero percentage", "rules", 0,
            {"rule_count": len(rules)},
        )
    validate_percentage_sum(active)

    negative = total < 0
    remainder = total
    items: List[LineItem] = []
    for rule in active[:-1]:
        pct = to_money(rule.percentage)
        amount = _constrain(round2(total * pct / HUNDRED), remainder, negative)
        if abs(remainder - amount) < ALLOCATION_REMAINDER_THRESHOLD:
            amount = round2(remainder)
        items.append(LineItem(rule.employee_key, rule.account, rule.class_ref, pct, amount))
        remainder -= amount

    last = active[-1]
    items.append(LineItem(last.employee_key, last.account, last.class_ref,
                          to_money(last.percentage), round2(remainder)))
    logger.debug("allocated %s across %d rules for %s", total, len(items), last.employee_key)
    return items


def allocate_by_employee(payslips: Iterable[Mapping[str, Any]], rules: Iterable[AllocationRule],
                         getter: Callable[[Mapping[str, Any]], Any]) -> List[LineItem]:
    """Allocate one payslip amount (picked by ``getter``) for every employee that has rules."""
    by_employee: Dict[str, List[AllocationRule]] = defaultdict(list)
    for r in rules:
        by_employee[str(r.employee_key)].append(r)

    items: List[LineItem] = []
    for payslip in payslips:
        amount = to_money(getter(payslip))
        if abs(amount) < AMOUNT_ZERO_THRESHOLD:
            continue
        key = str(payslip.get("payroll_number"))
        employee_rules = by_employee.get(key)
        if not employee_rules:
            logger.debug("no allocation rules for employee %s, skipped", key)
            continue
        items.extend(allocate(amount, employee_rules))
    return items


def total_by_class(items: Iterable[LineItem]) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for item in items:
        totals[item.class_ref] += item.amount
    return {k: round2(totals[k]) for k in sorted(totals)}


def calculate_total(payslips: Iterable[Mapping[str, Any]],
                    getter: Callable[[Mapping[str, Any]], Any]) -> Decimal:
    return round2(sum((to_money(getter(p)) for p in payslips), Decimal("0")))
