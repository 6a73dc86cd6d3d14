"""
ORM-backed collaborators used by the payroll services.

The services only call the methods defined here, so any object with the same
methods (an in-memory fake, another backend) can be passed in instead.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from django.db import IntegrityError, transaction

from attendance.models import AbsenceRecord
from employees.models import Employee, SalaryRecord

from .models import Bracket, BracketKindLock, PayrollSnapshot

logger = logging.getLogger(__name__)


class EmployeeDirectory:
    def __init__(self, *, tenant_db: str = "default"):
        self.tenant_db = tenant_db

    def _queryset(self):
        return Employee.objects.using(self.tenant_db).select_related("department")

    def get_active_employees(self) -> List[Employee]:
        return list(
            self._queryset()
            .filter(employment_status=Employee.STATUS_ACTIVE, is_deleted=False)
            .order_by("employee_id")
        )

    def get_employee(self, employee_id) -> Optional[Employee]:
        return self._queryset().filter(id=employee_id).first()


class SalaryLedger:
    def __init__(self, *, tenant_db: str = "default"):
        self.tenant_db = tenant_db

    def most_recent_salary(self, employee_id, as_of: date) -> Optional[SalaryRecord]:
        return (
            SalaryRecord.objects.using(self.tenant_db)
            .filter(employee_id=employee_id, effective_date__lte=as_of)
            .order_by("-effective_date", "-created_at")
            .first()
        )


class AbsenceLedger:
    def __init__(self, *, tenant_db: str = "default"):
        self.tenant_db = tenant_db

    def get_absence_record(self, employee_id, year: int, month: int) -> Optional[AbsenceRecord]:
        return (
            AbsenceRecord.objects.using(self.tenant_db)
            .filter(employee_id=employee_id, year=year, month=month)
            .first()
        )


class BracketStore:
    def __init__(self, *, tenant_db: str = "default"):
        self.tenant_db = tenant_db

    def _queryset(self, kind: str):
        return Bracket.objects.using(self.tenant_db).filter(kind=kind)

    def lock_kind(self, kind: str) -> BracketKindLock:
        """Row lock serialising bracket writes of one kind. Call inside transaction.atomic."""
        lock, _ = BracketKindLock.objects.using(self.tenant_db).select_for_update().get_or_create(kind=kind)
        return lock

    def list_active(self, kind: str) -> List[Bracket]:
        return list(self._queryset(kind).filter(is_active=True).order_by("min_bound", "created_at"))

    def list_all(self, kind: str) -> List[Bracket]:
        return list(self._queryset(kind).order_by("min_bound", "created_at"))

    def get(self, kind: str, bracket_id) -> Optional[Bracket]:
        return self._queryset(kind).filter(id=bracket_id).first()

    def name_taken(self, kind: str, name: str, exclude_id=None) -> bool:
        queryset = self._queryset(kind).filter(is_active=True, name__iexact=name)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        return queryset.exists()

    def create(self, kind: str, **fields) -> Bracket:
        return Bracket.objects.using(self.tenant_db).create(kind=kind, **fields)

    def update(self, bracket: Bracket, **fields) -> Bracket:
        for name, value in fields.items():
            setattr(bracket, name, value)
        bracket.save(using=self.tenant_db)
        return bracket


class SnapshotStore:
    def __init__(self, *, tenant_db: str = "default"):
        self.tenant_db = tenant_db

    def _queryset(self):
        return PayrollSnapshot.objects.using(self.tenant_db).select_related("employee", "employee__department")

    def exists(self, employee_id, year: int, month: int) -> bool:
        return PayrollSnapshot.objects.using(self.tenant_db).filter(
            employee_id=employee_id, year=year, month=month
        ).exists()

    def get(self, employee_id, year: int, month: int) -> Optional[PayrollSnapshot]:
        return self._queryset().filter(employee_id=employee_id, year=year, month=month).first()

    def create(self, snapshot: PayrollSnapshot) -> Tuple[PayrollSnapshot, bool]:
        """
        Insert ``snapshot`` unless its (employee, year, month) already has a row.
        Returns the stored row and whether it was inserted by this call.
        """
        existing = self.get(snapshot.employee_id, snapshot.year, snapshot.month)
        if existing:
            return existing, False
        try:
            with transaction.atomic(using=self.tenant_db):
                snapshot.save(using=self.tenant_db, force_insert=True)
        except IntegrityError:
            existing = self.get(snapshot.employee_id, snapshot.year, snapshot.month)
            if existing is None:
                raise
            logger.info(
                "Snapshot for employee %s %02d/%s was created concurrently; keeping the stored one.",
                snapshot.employee_id,
                snapshot.month,
                snapshot.year,
            )
            return existing, False
        return snapshot, True

    def list_for_month(self, year: int, month: int) -> List[PayrollSnapshot]:
        return list(self._queryset().filter(year=year, month=month))

    def list_for_employee(self, employee_id) -> List[PayrollSnapshot]:
        return list(self._queryset().filter(employee_id=employee_id).order_by("-year", "-month"))

    def list_for_department(self, department_id, year: int, month: int) -> List[PayrollSnapshot]:
        return list(
            self._queryset().filter(employee__department_id=department_id, year=year, month=month)
        )
