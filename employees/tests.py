from datetime import date, datetime, timezone
from decimal import Decimal

from django.test import TestCase
from rest_framework.exceptions import ValidationError

from core.exceptions import DuplicateSalaryRecord, EmployeeNotFound, NotFoundError

from .models import Department, DepartmentIncentiveHistory, Employee, SalaryRecord
from .services import record_salary, set_department_incentive


class SalaryRecordTests(TestCase):
    def setUp(self):
        self.employee = Employee.objects.create(employee_id="EMP-001", first_name="Jane", last_name="Doe")

    def test_record_salary(self):
        record = record_salary(self.employee.id, "4500.50", date(2024, 1, 1), notes="Annual review")
        self.assertEqual(record.base_salary, Decimal("4500.50"))
        self.assertEqual(self.employee.salary_records.count(), 1)

    def test_duplicate_effective_date_rejected(self):
        record_salary(self.employee.id, "4500", date(2024, 1, 1))
        with self.assertRaises(DuplicateSalaryRecord):
            record_salary(self.employee.id, "4800", date(2024, 1, 1))
        self.assertEqual(SalaryRecord.objects.filter(employee=self.employee).count(), 1)

    def test_base_salary_must_be_positive(self):
        for amount in ("0", "-10", None, "abc"):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError):
                    record_salary(self.employee.id, amount, date(2024, 1, 1))

    def test_unknown_employee(self):
        with self.assertRaises(EmployeeNotFound):
            record_salary("00000000-0000-0000-0000-000000000000", "100", date(2024, 1, 1))

    def test_employee_is_active(self):
        self.assertTrue(self.employee.is_active)
        self.employee.employment_status = Employee.STATUS_SUSPENDED
        self.assertFalse(self.employee.is_active)


class DepartmentIncentiveTests(TestCase):
    def setUp(self):
        self.department = Department.objects.create(name="Finance", code="FIN")

    def test_each_change_is_recorded_in_history(self):
        first = datetime(2024, 1, 1, tzinfo=timezone.utc)
        second = datetime(2024, 6, 1, tzinfo=timezone.utc)
        set_department_incentive(self.department.id, "5", effective_date=first)
        department = set_department_incentive(self.department.id, Decimal("7.5"), effective_date=second)

        self.assertEqual(department.incentive_percentage, Decimal("7.5"))
        self.assertEqual(department.incentive_set_date, second)
        history = list(DepartmentIncentiveHistory.objects.filter(department=self.department))
        self.assertEqual([entry.incentive_percentage for entry in history], [Decimal("7.50"), Decimal("5.00")])

    def test_percentage_range(self):
        with self.assertRaises(ValidationError):
            set_department_incentive(self.department.id, "101")
        with self.assertRaises(ValidationError):
            set_department_incentive(self.department.id, "-1")

    def test_unknown_department(self):
        with self.assertRaises(NotFoundError):
            set_department_incentive("00000000-0000-0000-0000-000000000000", "5")
