from decimal import Decimal

from django.test import TestCase
from rest_framework.exceptions import ValidationError

from core.exceptions import DuplicateAbsenceRecord
from employees.models import Employee
from payroll.models import Bracket

from .services import record_absence, update_absence_days


class AbsenceRecordTests(TestCase):
    def setUp(self):
        self.employee = Employee.objects.create(employee_id="EMP-001", first_name="Jane", last_name="Doe")
        Bracket.objects.create(
            kind=Bracket.KIND_ABSENCE_DAYS, name="Perfect", min_bound=0, max_bound=0, percentage=Decimal("2.00")
        )
        Bracket.objects.create(
            kind=Bracket.KIND_ABSENCE_DAYS, name="Frequent", min_bound=3, max_bound=None, percentage=Decimal("-5.00")
        )

    def test_adjustment_resolved_on_create(self):
        record = record_absence(self.employee.id, 2024, 3, 4, reason="Flu")
        self.assertEqual(record.adjustment_percentage, Decimal("-5.00"))

    def test_no_matching_bracket_leaves_adjustment_empty(self):
        record = record_absence(self.employee.id, 2024, 3, 1)
        self.assertIsNone(record.adjustment_percentage)

    def test_stored_adjustment_survives_bracket_changes(self):
        record = record_absence(self.employee.id, 2024, 3, 0)
        Bracket.objects.filter(name="Perfect").update(percentage=Decimal("9.00"))
        record.refresh_from_db()
        self.assertEqual(record.adjustment_percentage, Decimal("2.00"))

    def test_editing_days_re_resolves(self):
        record = record_absence(self.employee.id, 2024, 3, 0)
        record = update_absence_days(record.id, 6)
        record.refresh_from_db()
        self.assertEqual(record.absence_days, 6)
        self.assertEqual(record.adjustment_percentage, Decimal("-5.00"))

    def test_one_record_per_month(self):
        record_absence(self.employee.id, 2024, 3, 0)
        with self.assertRaises(DuplicateAbsenceRecord):
            record_absence(self.employee.id, 2024, 3, 2)

    def test_invalid_input(self):
        with self.assertRaises(ValidationError):
            record_absence(self.employee.id, 2024, 13, 1)
        with self.assertRaises(ValidationError):
            record_absence(self.employee.id, 2024, 3, -1)
