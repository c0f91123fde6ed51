"""
Payslip checks that do not block posting but should be looked at by a person.
"""
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from payledger.core.config import settings
from payledger.core.utils import round2, to_money

logger = logging.getLogger(__name__)

INFO = "info"
WARNING = "warning"


@dataclass
class Notice:
    level: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InspectionReport:
    notices: List[Notice] = field(default_factory=list)

    def add(self, level: str, message: str, **context):
        self.notices.append(Notice(level, message, context))
        logger.log(logging.WARNING if level == WARNING else logging.INFO, message)

    @property
    def warnings(self) -> List[Notice]:
        return [n for n in self.notices if n.level == WARNING]

    @property
    def infos(self) -> List[Notice]:
        return [n for n in self.notices if n.level == INFO]

    def to_dict(self) -> Dict[str, Any]:
        return {"notices": [asdict(n) for n in self.notices]}


def inspect_payslips(payslips: Iterable[Mapping[str, Any]]) -> InspectionReport:
    """Flag negative pensions, very high deductions and zero or negative pay."""
    report = InspectionReport()
    for p in payslips:
        name = p.get("employee_name") or "Unknown"
        who = {"employee_name": name, "payroll_number": p.get("payroll_number")}
        total_pay = to_money(p.get("total_pay"))
        net_pay = to_money(p.get("net_pay"))
        employee_pension = to_money(p.get("employee_pension"))
        employer_pension = to_money(p.get("employer_pension"))

        if employee_pension < 0:
            report.add(INFO, f"Employee {name} has negative pension contribution: £{employee_pension:.2f}",
                       field="employee_pension", value=employee_pension, **who)
        if employer_pension < 0:
            report.add(WARNING, f"Employee {name} has negative employer pension: £{employer_pension:.2f}, "
                                f"this will be processed as additional salary",
                       field="employer_pension", value=employer_pension, **who)
        if total_pay > 0 and net_pay > 0:
            pct = (total_pay - net_pay) / total_pay * 100
            if pct > Decimal(str(settings.HIGH_DEDUCTION_PERCENT)):
                report.add(WARNING, f"Employee {name} has unusually high deductions: {pct:.1f}% of gross pay",
                           total_pay=total_pay, net_pay=net_pay, deduction_percentage=round2(pct), **who)
        if total_pay == 0:
            report.add(INFO, f"Employee {name} has zero total pay for this period", net_pay=net_pay, **who)
        elif total_pay < 0:
            report.add(INFO, f"Employee {name} has negative total pay: £{total_pay:.2f}", net_pay=net_pay, **who)
    return report
