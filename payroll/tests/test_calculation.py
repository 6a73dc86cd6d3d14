import threading
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase
from rest_framework.exceptions import ValidationError

from attendance.models import AbsenceRecord
from core.exceptions import EmployeeNotFound, NoSalaryRecord
from employees.models import Department, Employee, SalaryRecord
from payroll.brackets import BracketRange
from payroll.models import Bracket, PayrollSnapshot
from payroll.services import (
    PayrollCalculationService,
    last_day_of_month,
    percentage_amount,
    required_successes,
    years_of_service,
)

from .fakes import (
    FailingSnapshotStore,
    FakeAbsenceLedger,
    FakeBracketStore,
    FakeEmployeeDirectory,
    FakeSalaryLedger,
    FakeSnapshotStore,
    make_employee,
)

SERVICE_BRACKETS = [
    BracketRange(min_bound=0, max_bound=2, percentage=Decimal("1")),
    BracketRange(min_bound=3, max_bound=5, percentage=Decimal("4")),
    BracketRange(min_bound=6, max_bound=None, percentage=Decimal("8")),
]


class CalendarHelperTests(SimpleTestCase):
    def test_last_day_of_month_handles_leap_years(self):
        self.assertEqual(last_day_of_month(2024, 2), date(2024, 2, 29))
        self.assertEqual(last_day_of_month(2023, 2), date(2023, 2, 28))
        self.assertEqual(last_day_of_month(2024, 4), date(2024, 4, 30))
        self.assertEqual(last_day_of_month(2024, 12), date(2024, 12, 31))

    def test_last_day_of_month_rejects_invalid_month(self):
        for month in (0, 13):
            with self.subTest(month=month):
                with self.assertRaises(ValidationError):
                    last_day_of_month(2024, month)

    def test_years_of_service_counts_completed_anniversaries(self):
        self.assertEqual(years_of_service(date(2020, 3, 20), date(2024, 3, 31)), 4)
        self.assertEqual(years_of_service(date(2020, 4, 1), date(2024, 3, 31)), 3)
        self.assertEqual(years_of_service(date(2020, 2, 29), date(2024, 2, 29)), 4)
        self.assertEqual(years_of_service(date(2020, 2, 29), date(2023, 2, 28)), 2)

    def test_years_of_service_is_never_negative(self):
        self.assertEqual(years_of_service(date(2025, 1, 1), date(2024, 3, 31)), 0)
        self.assertEqual(years_of_service(None, date(2024, 3, 31)), 0)

    def test_percentage_amount_truncates(self):
        self.assertEqual(percentage_amount(Decimal("333.33"), Decimal("3.33"), 2), Decimal("11.09"))
        self.assertEqual(percentage_amount(Decimal("333.33"), Decimal("-3.33"), 2), Decimal("-11.09"))
        self.assertEqual(percentage_amount(Decimal("1000"), None, 2), Decimal("0.00"))

    def test_required_successes_rounds_up(self):
        self.assertEqual(required_successes(10, Decimal("0.5")), 5)
        self.assertEqual(required_successes(7, Decimal("0.5")), 4)
        self.assertEqual(required_successes(1, Decimal("0.5")), 1)
        self.assertEqual(required_successes(0, Decimal("0.5")), 0)


class PayrollTestMixin:
    def build_service(self, employees, salaries=None, absences=None, snapshots=None, **kwargs):
        kwargs.setdefault("success_ratio", Decimal("0.5"))
        kwargs.setdefault("max_workers", 1)
        kwargs.setdefault("decimal_places", 2)
        return PayrollCalculationService(
            employees=FakeEmployeeDirectory(employees),
            salaries=FakeSalaryLedger(salaries or {}),
            brackets=FakeBracketStore({Bracket.KIND_SERVICE_YEARS: SERVICE_BRACKETS}),
            absences=FakeAbsenceLedger(absences or {}),
            snapshots=snapshots if snapshots is not None else FakeSnapshotStore(),
            **kwargs,
        )

    def salary(self, employee, amount, effective=date(2020, 1, 1)):
        return SalaryRecord(employee=employee, base_salary=Decimal(amount), effective_date=effective)

    def workforce(self, size, paid):
        employees = [make_employee(i, hire_date=date(2021, 1, 1)) for i in range(size)]
        salaries = {employee.pk: [self.salary(employee, "1000")] for employee in employees[:paid]}
        return employees, salaries


class CalculateTests(PayrollTestMixin, SimpleTestCase):
    def setUp(self):
        self.department = Department(name="Engineering", code="ENG", incentive_percentage=Decimal("10"))
        self.employee = make_employee(1, hire_date=date(2020, 3, 20), department=self.department)
        self.salaries = {self.employee.pk: [self.salary(self.employee, "50000")]}
        self.absences = {
            (self.employee.pk, 2024, 3): AbsenceRecord(
                employee=self.employee,
                year=2024,
                month=3,
                absence_days=3,
                adjustment_percentage=Decimal("-2"),
            )
        }

    def test_full_gross_pay_scenario(self):
        service = self.build_service([self.employee], self.salaries, self.absences)

        snapshot = service.calculate(self.employee.pk, 2024, 3)

        self.assertEqual(snapshot.years_of_service, 4)
        self.assertEqual(snapshot.base_salary, Decimal("50000"))
        self.assertEqual(snapshot.department_incentive_amount, Decimal("5000.00"))
        self.assertEqual(snapshot.service_years_incentive_amount, Decimal("2000.00"))
        self.assertEqual(snapshot.attendance_adjustment_amount, Decimal("-1000.00"))
        self.assertEqual(snapshot.gross_salary, Decimal("56000.00"))
        self.assertEqual(snapshot.absence_days, 3)
        self.assertEqual(snapshot.department_incentive_percentage, Decimal("10"))
        self.assertEqual(snapshot.service_years_incentive_percentage, Decimal("4"))
        self.assertEqual(snapshot.attendance_adjustment_percentage, Decimal("-2"))

    def test_gross_equals_base_plus_adjustments(self):
        self.salaries[self.employee.pk] = [self.salary(self.employee, "33333.33")]
        self.department.incentive_percentage = Decimal("7.77")
        service = self.build_service([self.employee], self.salaries, self.absences)

        snapshot = service.calculate(self.employee.pk, 2024, 3)

        self.assertEqual(snapshot.gross_salary, snapshot.base_salary + snapshot.total_adjustments)
        self.assertEqual(snapshot.department_incentive_amount, Decimal("2589.99"))

    def test_missing_sources_contribute_nothing(self):
        employee = make_employee(2, hire_date=None)
        salaries = {employee.pk: [self.salary(employee, "1200")]}
        service = self.build_service([employee], salaries)
        service.brackets = FakeBracketStore({})

        snapshot = service.calculate(employee.pk, 2024, 3)

        self.assertEqual(snapshot.gross_salary, Decimal("1200.00"))
        self.assertIsNone(snapshot.department_incentive_percentage)
        self.assertIsNone(snapshot.service_years_incentive_percentage)
        self.assertIsNone(snapshot.attendance_adjustment_percentage)
        self.assertEqual(snapshot.absence_days, 0)
        self.assertEqual(snapshot.years_of_service, 0)

    def test_uses_latest_salary_effective_by_month_end(self):
        self.salaries[self.employee.pk] = [
            self.salary(self.employee, "40000", date(2023, 1, 1)),
            self.salary(self.employee, "50000", date(2024, 3, 31)),
            self.salary(self.employee, "90000", date(2024, 4, 1)),
        ]
        service = self.build_service([self.employee], self.salaries)

        snapshot = service.calculate(self.employee.pk, 2024, 3)

        self.assertEqual(snapshot.base_salary, Decimal("50000"))

    def test_no_salary_record_raises(self):
        service = self.build_service([self.employee], {})
        with self.assertRaises(NoSalaryRecord):
            service.calculate(self.employee.pk, 2024, 3)

    def test_unknown_employee_raises(self):
        service = self.build_service([self.employee], self.salaries)
        with self.assertRaises(EmployeeNotFound):
            service.calculate(make_employee(99).pk, 2024, 3)

    def test_existing_snapshot_is_returned_unchanged(self):
        stored = PayrollSnapshot(
            employee=self.employee,
            year=2024,
            month=3,
            base_salary=Decimal("1"),
            gross_salary=Decimal("1"),
        )
        service = self.build_service(
            [self.employee], self.salaries, snapshots=FakeSnapshotStore(existing=[stored])
        )
        self.assertIs(service.calculate(self.employee.pk, 2024, 3), stored)

    def test_match_bracket_uses_active_brackets_of_kind(self):
        service = self.build_service([self.employee], self.salaries)
        self.assertEqual(service.match_bracket(Bracket.KIND_SERVICE_YEARS, 4).percentage, Decimal("4"))
        self.assertIsNone(service.match_bracket(Bracket.KIND_ABSENCE_DAYS, 4))

    def test_match_bracket_skips_inactive_and_rejects_unknown_kind(self):
        service = self.build_service([self.employee], self.salaries)
        service.brackets = FakeBracketStore(
            {
                Bracket.KIND_SERVICE_YEARS: [
                    BracketRange(min_bound=0, max_bound=10, percentage=Decimal("9"), is_active=False),
                    BracketRange(min_bound=3, max_bound=5, percentage=Decimal("4")),
                ]
            }
        )

        self.assertEqual(service.match_bracket(Bracket.KIND_SERVICE_YEARS, 4).percentage, Decimal("4"))
        self.assertIsNone(service.match_bracket(Bracket.KIND_SERVICE_YEARS, 1))
        with self.assertRaises(ValidationError):
            service.match_bracket("BONUS", 4)


class CalculateAllTests(PayrollTestMixin, SimpleTestCase):
    def test_preview_skips_failures_and_persists_nothing(self):
        employees, salaries = self.workforce(5, paid=3)
        store = FakeSnapshotStore()
        service = self.build_service(employees, salaries, snapshots=store)

        with self.assertLogs("payroll.services", level="WARNING") as logs:
            results = service.calculate_all(2024, 3)

        self.assertEqual(len(results), 3)
        self.assertEqual(store.all(), [])
        self.assertEqual(len(logs.records), 2)

    def test_inactive_employees_are_excluded(self):
        employees, salaries = self.workforce(3, paid=3)
        employees[0].employment_status = Employee.STATUS_TERMINATED
        employees[1].is_deleted = True
        service = self.build_service(employees, salaries)

        results = service.calculate_all(2024, 3)

        self.assertEqual([snapshot.employee for snapshot in results], [employees[2]])


class GenerateForMonthTests(PayrollTestMixin, SimpleTestCase):
    def test_six_of_ten_succeeds(self):
        employees, salaries = self.workforce(10, paid=6)
        service = self.build_service(employees, salaries)

        with self.assertLogs("payroll.services", level="INFO"):
            self.assertTrue(service.generate_for_month(2024, 3))

    def test_four_of_ten_fails(self):
        employees, salaries = self.workforce(10, paid=4)
        service = self.build_service(employees, salaries)

        with self.assertLogs("payroll.services", level="INFO"):
            result = service.run_month(2024, 3)

        self.assertFalse(result.succeeded)
        self.assertEqual(result.success_count, 4)
        self.assertEqual(result.required, 5)
        self.assertEqual(len(result.failed), 6)

    def test_exactly_half_succeeds(self):
        employees, salaries = self.workforce(10, paid=5)
        service = self.build_service(employees, salaries)
        with self.assertLogs("payroll.services", level="INFO"):
            self.assertTrue(service.generate_for_month(2024, 3))

    def test_empty_workforce_succeeds(self):
        service = self.build_service([])
        with self.assertLogs("payroll.services", level="INFO"):
            result = service.run_month(2024, 3)
        self.assertTrue(result.succeeded)
        self.assertEqual(result.total, 0)

    def test_ratio_is_configurable_per_service(self):
        employees, salaries = self.workforce(10, paid=6)
        service = self.build_service(employees, salaries, success_ratio=Decimal("0.8"))
        with self.assertLogs("payroll.services", level="INFO"):
            self.assertFalse(service.generate_for_month(2024, 3))

    def test_rerun_keeps_existing_snapshots(self):
        employees, salaries = self.workforce(4, paid=4)
        store = FakeSnapshotStore()
        service = self.build_service(employees, salaries, snapshots=store)

        with self.assertLogs("payroll.services", level="INFO"):
            first = service.run_month(2024, 3)
        stored = {snapshot.employee_id: snapshot for snapshot in store.all()}

        # Salary changes after the first run must not touch the stored month.
        for employee in employees:
            salaries[employee.pk].append(self.salary(employee, "9999", date(2024, 3, 15)))
        with self.assertLogs("payroll.services", level="INFO"):
            second = service.run_month(2024, 3)

        self.assertEqual(len(first.created), 4)
        self.assertEqual(second.created, [])
        self.assertEqual(sorted(map(str, second.existing)), sorted(str(e.pk) for e in employees))
        for snapshot in store.all():
            self.assertIs(snapshot, stored[snapshot.employee_id])
            self.assertEqual(snapshot.base_salary, Decimal("1000"))

    def test_unexpected_errors_are_logged_and_counted(self):
        employees, salaries = self.workforce(4, paid=4)
        store = FailingSnapshotStore([employees[0].pk])
        service = self.build_service(employees, salaries, snapshots=store)

        with self.assertLogs("payroll.services", level="ERROR") as logs:
            result = service.run_month(2024, 3)

        self.assertTrue(result.succeeded)
        self.assertEqual(result.failed, {employees[0].pk: "database unavailable"})
        self.assertTrue(any(record.exc_info for record in logs.records))

    def test_invalid_month_is_rejected_before_any_work(self):
        employees, salaries = self.workforce(2, paid=2)
        store = FakeSnapshotStore()
        service = self.build_service(employees, salaries, snapshots=store)
        with self.assertRaises(ValidationError):
            service.run_month(2024, 13)
        self.assertEqual(store.all(), [])


class ConcurrentGenerationTests(PayrollTestMixin, SimpleTestCase):
    def test_worker_pool_creates_each_snapshot_once(self):
        employees, salaries = self.workforce(20, paid=20)
        store = FakeSnapshotStore()
        service = self.build_service(employees, salaries, snapshots=store, max_workers=4)

        with self.assertLogs("payroll.services", level="INFO"):
            result = service.run_month(2024, 3)

        self.assertTrue(result.succeeded)
        self.assertEqual(len(result.created), 20)
        self.assertEqual(len(store.all()), 20)

    def test_overlapping_runs_converge(self):
        employees, salaries = self.workforce(12, paid=12)
        store = FakeSnapshotStore()
        results = []
        barrier = threading.Barrier(3)

        def run():
            service = self.build_service(employees, salaries, snapshots=store, max_workers=3)
            barrier.wait()
            results.append(service.run_month(2024, 3))

        with self.assertLogs("payroll.services", level="INFO"):
            threads = [threading.Thread(target=run) for _ in range(3)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.assertEqual(len(results), 3)
        self.assertTrue(all(result.succeeded for result in results))
        self.assertEqual(sum(len(result.created) for result in results), 12)
        self.assertEqual(len(store.all()), 12)
        self.assertTrue(all(count == 1 for count in store.insert_attempts.values()))
