from decimal import Decimal

from fmpa_portal.payroll.calculator.standard_calculator import StandardPayrollCalculator


def test_standard_calculator_multiplies_hours_by_rate():
    calc = StandardPayrollCalculator()
    assert calc.amount(Decimal("3.5"), Decimal("12.50")) == Decimal("43.75")


def test_standard_calculator_keeps_exact_decimals():
    calc = StandardPayrollCalculator()
    assert calc.amount(Decimal("0.1"), Decimal("0.2")) == Decimal("0.02")
