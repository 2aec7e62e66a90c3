"""HR Payroll — attendance-driven monthly salary engine."""

__version__ = "1.0.0"
