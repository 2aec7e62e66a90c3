"""Employees module — the Employee model payroll reads from."""

from hr_payroll.employees.models import Employee

__all__ = ["Employee"]
