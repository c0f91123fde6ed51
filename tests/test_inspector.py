from payledger.payroll.inspector import INFO, WARNING, inspect_payslips

def test_clean_payslip_has_no_notices():
    report = inspect_payslips([{"employee_name": "Ann", "total_pay": 2000, "net_pay": 1500, "employee_pension": 50}])
    assert report.notices == []

def test_flags():
    report = inspect_payslips([
        {"employee_name": "Ann", "payroll_number": 7, "total_pay": 2000, "net_pay": 900,
         "employee_pension": -5, "employer_pension": -10},
        {"employee_name": "Bob", "total_pay": 0, "net_pay": 0},
        {"total_pay": -20, "net_pay": -20},
    ])
    assert [n.level for n in report.notices] == [INFO, WARNING, WARNING, INFO, INFO]
    assert "additional salary" in report.warnings[0].message
    assert report.warnings[1].context["deduction_percentage"] == 55
    assert report.warnings[1].context["payroll_number"] == 7
    assert "Unknown" in report.infos[-1].message
    assert report.to_dict()["notices"][0]["level"] == INFO
