import calendar
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_DOWN
from typing import Dict, List, Optional, Sequence, Tuple

from django.db import connections, transaction

from core.exceptions import (
    BracketNotFound,
    BracketOverlapError,
    BusinessRuleViolation,
    DuplicateBracketName,
    EmployeeNotFound,
    NoSalaryRecord,
    NotFoundError,
    SnapshotNotFound,
    ValidationError,
)

from . import conf
from .brackets import has_overlap, match_bracket, validate_bounds
from .models import Bracket, PayrollSnapshot
from .stores import AbsenceLedger, BracketStore, EmployeeDirectory, SalaryLedger, SnapshotStore

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

OUTCOME_CREATED = "CREATED"
OUTCOME_EXISTING = "EXISTING"
OUTCOME_FAILED = "FAILED"

# (min, max, min_inclusive)
PERCENTAGE_LIMITS = {
    Bracket.KIND_SERVICE_YEARS: (Decimal("0"), Decimal("100"), False),
    Bracket.KIND_ABSENCE_DAYS: (Decimal("-100"), Decimal("100"), True),
}


def _to_decimal(value, default=Decimal("0.00")) -> Decimal:
    if value is None:
        return default
    return Decimal(str(value))


def last_day_of_month(year: int, month: int) -> date:
    if not 1 <= month <= 12:
        raise ValidationError({"month": "Month must be between 1 and 12."})
    return date(year, month, calendar.monthrange(year, month)[1])


def years_of_service(hire_date: Optional[date], as_of: date) -> int:
    if hire_date is None:
        return 0
    years = as_of.year - hire_date.year
    if (as_of.month, as_of.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def _truncate_money(value: Decimal, places: int) -> Decimal:
    quant = Decimal("1").scaleb(-places)
    return value.quantize(quant, rounding=ROUND_DOWN)


def percentage_amount(base_salary: Decimal, percentage, places: int) -> Decimal:
    if percentage is None:
        return _truncate_money(Decimal("0"), places)
    return _truncate_money(base_salary * (_to_decimal(percentage) / HUNDRED), places)


def required_successes(total: int, ratio: Decimal) -> int:
    return math.ceil(Decimal(total) * ratio)


def _validate_kind(kind: str) -> None:
    if kind not in PERCENTAGE_LIMITS:
        raise ValidationError({"kind": f"Unknown bracket kind '{kind}'."})


class KeyedLock:
    """Mutex per key. Entries are dropped once no thread holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[object, list] = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


# Shared by every service instance in the process so that overlapping runs for
# the same month never compute one (employee, year, month) twice.
_snapshot_locks = KeyedLock()


@dataclass
class PayrollBatchResult:
    year: int
    month: int
    total: int
    required: int
    created: List = field(default_factory=list)
    existing: List = field(default_factory=list)
    failed: Dict = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.created) + len(self.existing)

    @property
    def succeeded(self) -> bool:
        return self.success_count >= self.required

    def record(self, employee_id, outcome: str, reason: Optional[str] = None) -> None:
        if outcome == OUTCOME_CREATED:
            self.created.append(employee_id)
        elif outcome == OUTCOME_EXISTING:
            self.existing.append(employee_id)
        else:
            self.failed[employee_id] = reason or "Unknown error"


class PayrollCalculationService:
    """
    Gross pay for one employee or the whole active workforce.

    Collaborators default to the ORM-backed stores on ``tenant_db``; pass any
    object with the same methods to run against something else.
    """

    def __init__(
        self,
        *,
        tenant_db: str = "default",
        employees=None,
        salaries=None,
        brackets=None,
        absences=None,
        snapshots=None,
        success_ratio=None,
        max_workers: Optional[int] = None,
        decimal_places: Optional[int] = None,
    ):
        self.tenant_db = tenant_db or "default"
        self.employees = employees or EmployeeDirectory(tenant_db=self.tenant_db)
        self.salaries = salaries or SalaryLedger(tenant_db=self.tenant_db)
        self.brackets = brackets or BracketStore(tenant_db=self.tenant_db)
        self.absences = absences or AbsenceLedger(tenant_db=self.tenant_db)
        self.snapshots = snapshots or SnapshotStore(tenant_db=self.tenant_db)
        if success_ratio is None:
            success_ratio = conf.batch_success_ratio()
        self.success_ratio = conf.validate_success_ratio(success_ratio)
        self.max_workers = conf.batch_max_workers() if max_workers is None else max(1, int(max_workers))
        if decimal_places is None:
            decimal_places = conf.currency_decimal_places()
        self.decimal_places = conf.validate_decimal_places(decimal_places)

    def match_bracket(self, kind: str, value: int) -> Optional[Bracket]:
        return BracketService(tenant_db=self.tenant_db, store=self.brackets).match(kind, value)

    def calculate(self, employee_id, year: int, month: int) -> PayrollSnapshot:
        """
        Snapshot for one employee and month. A stored snapshot is returned
        unchanged; otherwise the result is computed and left unsaved.
        """
        employee = self.employees.get_employee(employee_id)
        if employee is None:
            raise EmployeeNotFound(employee_id)
        existing = self.snapshots.get(employee.pk, year, month)
        if existing is not None:
            return existing
        return self.compute_snapshot(employee, year, month)

    def compute_snapshot(
        self,
        employee,
        year: int,
        month: int,
        service_brackets: Optional[Sequence] = None,
    ) -> PayrollSnapshot:
        month_end = last_day_of_month(year, month)

        salary = self.salaries.most_recent_salary(employee.pk, month_end)
        if salary is None:
            raise NoSalaryRecord(employee.pk, month_end)

        service_years = years_of_service(employee.hire_date, month_end)
        if service_brackets is None:
            service_brackets = self.brackets.list_active(Bracket.KIND_SERVICE_YEARS)
        service_bracket = match_bracket(service_brackets, service_years)
        service_percentage = service_bracket.percentage if service_bracket else None

        absence = self.absences.get_absence_record(employee.pk, year, month)
        attendance_percentage = absence.adjustment_percentage if absence else None
        absence_days = absence.absence_days if absence else 0

        department = employee.department
        department_percentage = department.incentive_percentage if department else None

        base_salary = _to_decimal(salary.base_salary)
        department_amount = percentage_amount(base_salary, department_percentage, self.decimal_places)
        service_amount = percentage_amount(base_salary, service_percentage, self.decimal_places)
        attendance_amount = percentage_amount(base_salary, attendance_percentage, self.decimal_places)
        gross_salary = base_salary + department_amount + service_amount + attendance_amount

        return PayrollSnapshot(
            employee=employee,
            year=year,
            month=month,
            base_salary=base_salary,
            department_incentive_amount=department_amount,
            service_years_incentive_amount=service_amount,
            attendance_adjustment_amount=attendance_amount,
            gross_salary=gross_salary,
            department_incentive_percentage=department_percentage,
            service_years_incentive_percentage=service_percentage,
            attendance_adjustment_percentage=attendance_percentage,
            absence_days=absence_days,
            years_of_service=service_years,
        )

    def calculate_all(self, year: int, month: int) -> List[PayrollSnapshot]:
        """Preview for every active employee. Nothing is persisted; failures are logged and skipped."""
        last_day_of_month(year, month)
        service_brackets = self.brackets.list_active(Bracket.KIND_SERVICE_YEARS)
        results = []
        for employee in self.employees.get_active_employees():
            try:
                snapshot = self.snapshots.get(employee.pk, year, month)
                if snapshot is None:
                    snapshot = self.compute_snapshot(employee, year, month, service_brackets)
                results.append(snapshot)
            except (NotFoundError, BusinessRuleViolation) as exc:
                logger.warning(
                    "Failed to calculate gross pay for employee %s for %02d/%s: %s",
                    employee.pk,
                    month,
                    year,
                    exc.detail,
                )
        return results

    def generate_for_month(self, year: int, month: int) -> bool:
        return self.run_month(year, month).succeeded

    def run_month(self, year: int, month: int) -> PayrollBatchResult:
        last_day_of_month(year, month)
        employees = list(self.employees.get_active_employees())
        service_brackets = self.brackets.list_active(Bracket.KIND_SERVICE_YEARS)
        result = PayrollBatchResult(
            year=year,
            month=month,
            total=len(employees),
            required=required_successes(len(employees), self.success_ratio),
        )
        logger.info(
            "Generating payroll snapshots for %02d/%s: %s active employee(s), %s worker(s).",
            month,
            year,
            result.total,
            self.max_workers,
        )

        if self.max_workers == 1 or len(employees) <= 1:
            outcomes = [
                (employee, self._generate_one(employee, year, month, service_brackets))
                for employee in employees
            ]
        else:
            outcomes = self._generate_parallel(employees, year, month, service_brackets)

        for employee, (outcome, reason) in outcomes:
            result.record(employee.pk, outcome, reason)

        log = logger.info if result.succeeded else logger.error
        log(
            "Payroll run %02d/%s finished: %s created, %s existing, %s failed (%s of %s required).",
            month,
            year,
            len(result.created),
            len(result.existing),
            len(result.failed),
            result.required,
            result.total,
        )
        return result

    def _generate_parallel(self, employees, year, month, service_brackets):
        def work(employee):
            try:
                return self._generate_one(employee, year, month, service_brackets)
            finally:
                connections.close_all()

        outcomes = []
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="payroll") as executor:
            future_to_employee = {executor.submit(work, employee): employee for employee in employees}
            for future in as_completed(future_to_employee):
                outcomes.append((future_to_employee[future], future.result()))
        return outcomes

    def _generate_one(self, employee, year, month, service_brackets) -> Tuple[str, Optional[str]]:
        try:
            with _snapshot_locks.hold((self.tenant_db, employee.pk, year, month)):
                if self.snapshots.exists(employee.pk, year, month):
                    logger.info(
                        "Payroll snapshot already exists for employee %s for %02d/%s",
                        employee.pk,
                        month,
                        year,
                    )
                    return OUTCOME_EXISTING, None
                snapshot = self.compute_snapshot(employee, year, month, service_brackets)
                _, created = self.snapshots.create(snapshot)
                return (OUTCOME_CREATED if created else OUTCOME_EXISTING), None
        except (NotFoundError, BusinessRuleViolation) as exc:
            logger.warning(
                "Skipping payroll snapshot for employee %s for %02d/%s: %s",
                employee.pk,
                month,
                year,
                exc.detail,
            )
            return OUTCOME_FAILED, str(exc.detail)
        except Exception as exc:
            logger.exception(
                "Failed to generate payroll snapshot for employee %s for %02d/%s",
                employee.pk,
                month,
                year,
            )
            return OUTCOME_FAILED, str(exc)

    def get_snapshot(self, employee_id, year: int, month: int) -> PayrollSnapshot:
        snapshot = self.snapshots.get(employee_id, year, month)
        if snapshot is None:
            raise SnapshotNotFound(employee_id, year, month)
        return snapshot

    def list_snapshots(self, year: int, month: int) -> List[PayrollSnapshot]:
        last_day_of_month(year, month)
        return self.snapshots.list_for_month(year, month)

    def list_snapshots_for_employee(self, employee_id) -> List[PayrollSnapshot]:
        return self.snapshots.list_for_employee(employee_id)

    def list_snapshots_for_department(self, department_id, year: int, month: int) -> List[PayrollSnapshot]:
        last_day_of_month(year, month)
        return self.snapshots.list_for_department(department_id, year, month)


class BracketService:
    """Create, edit and deactivate brackets without ever letting two active ranges of a kind overlap."""

    def __init__(self, *, tenant_db: str = "default", store=None):
        self.tenant_db = tenant_db or "default"
        self.store = store or BracketStore(tenant_db=self.tenant_db)

    def list(self, kind: str, active_only: bool = False) -> List[Bracket]:
        _validate_kind(kind)
        if active_only:
            return self.store.list_active(kind)
        return self.store.list_all(kind)

    def get(self, kind: str, bracket_id) -> Bracket:
        _validate_kind(kind)
        bracket = self.store.get(kind, bracket_id)
        if bracket is None:
            raise BracketNotFound(kind, bracket_id)
        return bracket

    def match(self, kind: str, value: int) -> Optional[Bracket]:
        _validate_kind(kind)
        return match_bracket(self.store.list_active(kind), value)

    def validate_no_overlap(self, kind: str, min_bound: int, max_bound: Optional[int], exclude_id=None) -> bool:
        """True when [min_bound, max_bound] fits next to the active brackets of ``kind``."""
        _validate_kind(kind)
        validate_bounds(min_bound, max_bound)
        return not has_overlap(self.store.list_active(kind), min_bound, max_bound, exclude_id=exclude_id)

    def create(
        self,
        kind: str,
        *,
        name: str,
        min_bound: int,
        percentage,
        max_bound: Optional[int] = None,
        description: str = "",
        is_active: bool = True,
    ) -> Bracket:
        _validate_kind(kind)
        validate_bounds(min_bound, max_bound)
        percentage = self._clean_percentage(kind, percentage)

        with transaction.atomic(using=self.tenant_db):
            self.store.lock_kind(kind)
            active = self.store.list_active(kind)
            if is_active:
                self._ensure_available(kind, name, min_bound, max_bound, active)
            bracket = self.store.create(
                kind,
                name=name,
                min_bound=min_bound,
                max_bound=max_bound,
                percentage=percentage,
                description=description or "",
                is_active=is_active,
            )
        logger.info("Created %s bracket %s [%s, %s] at %s%%", kind, bracket.pk, min_bound, max_bound, percentage)
        return bracket

    def update(self, kind: str, bracket_id, **changes) -> Bracket:
        allowed = {"name", "min_bound", "max_bound", "percentage", "description", "is_active"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError({name: "This field cannot be changed." for name in sorted(unknown)})

        _validate_kind(kind)
        with transaction.atomic(using=self.tenant_db):
            self.store.lock_kind(kind)
            active = self.store.list_active(kind)
            bracket = self.get(kind, bracket_id)
            min_bound = changes.get("min_bound", bracket.min_bound)
            max_bound = changes.get("max_bound", bracket.max_bound)
            name = changes.get("name", bracket.name)
            is_active = changes.get("is_active", bracket.is_active)

            validate_bounds(min_bound, max_bound)
            if "percentage" in changes:
                changes["percentage"] = self._clean_percentage(kind, changes["percentage"])
            if is_active:
                self._ensure_available(kind, name, min_bound, max_bound, active, exclude_id=bracket.pk)
            bracket = self.store.update(bracket, **changes)
        logger.info("Updated %s bracket %s: %s", kind, bracket.pk, sorted(changes))
        return bracket

    def deactivate(self, kind: str, bracket_id) -> Bracket:
        _validate_kind(kind)
        with transaction.atomic(using=self.tenant_db):
            self.store.lock_kind(kind)
            bracket = self.get(kind, bracket_id)
            if not bracket.is_active:
                return bracket
            bracket = self.store.update(bracket, is_active=False)
        logger.info("Deactivated %s bracket %s", kind, bracket.pk)
        return bracket

    def _ensure_available(self, kind, name, min_bound, max_bound, active, exclude_id=None) -> None:
        if has_overlap(active, min_bound, max_bound, exclude_id=exclude_id):
            raise BracketOverlapError(kind, min_bound, max_bound)
        if name and self.store.name_taken(kind, name, exclude_id=exclude_id):
            raise DuplicateBracketName(kind, name)

    @staticmethod
    def _clean_percentage(kind: str, percentage) -> Decimal:
        if percentage is None:
            raise ValidationError({"percentage": "Percentage is required."})
        value = _to_decimal(percentage)
        low, high, low_inclusive = PERCENTAGE_LIMITS[kind]
        too_low = value < low if low_inclusive else value <= low
        if too_low or value > high:
            bound = "at least" if low_inclusive else "greater than"
            raise ValidationError({"percentage": f"Percentage must be {bound} {low} and at most {high}."})
        return value
