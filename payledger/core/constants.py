
from decimal import Decimal
from enum import Enum

# Charity company file accounts.
# If an Enterprises account id ever clashes with one of these, check the
# reconciliation account map carefully.
CHARITY_ACCOUNTS = {
    "AUEW_ACCOUNT": "65",
    "EMPLOYEE_PENSION_CONTRIB_ACCOUNT": "66",
    "EMPLOYER_NI_ACCOUNT": "95",
    "SALARY_SACRIFICE_ACCOUNT": "375",
    "NET_PAY_ACCOUNT": "98",
    "OTHER_DEDUCTIONS_ACCOUNT": "503",
    "PENSION_COSTS_ACCOUNT": "285",
    "STAFF_SALARIES_ACCOUNT": "261",
    "TAX_ACCOUNT": "256",
}

# Enterprises (shop) company file accounts
ENTERPRISES_ACCOUNTS = {
    "AUKW_INTERCO_ACCOUNT": "80",
    "AUEW_PAIDBYPARENT_ACCOUNT": "102",
    "AUEW_SALARIES_ACCOUNT": "106",
    "AUEW_NI_ACCOUNT": "150",
    "AUEW_PENSIONS_ACCOUNT": "139",
}

CLASSES = {
    "ADMIN_CLASS": "1400000000000130710",
    "HARROW_ROAD_CLASS": "400000000000618070",
}

DESCRIPTIONS = {
    "EMPLOYEE_NI": "Employee NI",
    "EMPLOYER_NI": "Employer NI",
    "EMPLOYEE_PENSION_CONT": "Employee Pension Contribution",
    "EMPLOYER_PENSION_CONT": "Employer Pension Contribution",
    "GROSS_SALARY": "Gross Salary",
    "NET_PAY": "Net Pay",
    "OTHER_DEDUCTIONS": "Other Deductions",
    "PAYE": "PAYE",
    "SALARY_SACRIFICE": "Salary Sacrifice",
    "STUDENT_LOAN": "Student Loan Deductions",
}

# An amount at or below this is treated as zero everywhere.
AMOUNT_ZERO_THRESHOLD = Decimal("0.005")
# Debits and credits must agree to within this.
BALANCE_TOLERANCE = Decimal("0.005")
# An allocation this close to the remainder takes the whole remainder.
ALLOCATION_REMAINDER_THRESHOLD = Decimal("1.00")

MAX_JOURNAL_LINES = 100
DOCNUMBER_MAX_LENGTH = 21
DESCRIPTION_MAX_LENGTH = 4000
DOCNUMBER_PREFIX = "Payroll_"
DATE_FORMAT = "%Y-%m-%d"

# Fiscal month 1 is April; months 10-12 fall in the following calendar year.
FISCAL_MONTHS = [4, 5, 6, 7, 8, 9, 10, 11, 12, 1, 2, 3]
PAYROLL_DAY_OF_MONTH = 25


class TransactionKind(str, Enum):
    EMPLOYEE = "employee"
    EMPLOYER_NI = "employer_ni"
    PENSIONS = "pensions"
    SHOP_PAYROLL = "shop_payroll"


def charity_account(key: str) -> str:
    if key not in CHARITY_ACCOUNTS:
        raise KeyError(f"Invalid charity account key: {key}")
    return CHARITY_ACCOUNTS[key]


def enterprises_account(key: str) -> str:
    if key not in ENTERPRISES_ACCOUNTS:
        raise KeyError(f"Invalid enterprises account key: {key}")
    return ENTERPRISES_ACCOUNTS[key]


def class_ref(key: str) -> str:
    if key not in CLASSES:
        raise KeyError(f"Invalid class key: {key}")
    return CLASSES[key]


def description(key: str) -> str:
    if key not in DESCRIPTIONS:
        raise KeyError(f"Invalid description key: {key}")
    return DESCRIPTIONS[key]
