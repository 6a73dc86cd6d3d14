import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction

from core.exceptions import DuplicateAbsenceRecord, EmployeeNotFound, NotFoundError, ValidationError
from employees.models import Employee
from payroll.brackets import match_bracket
from payroll.models import Bracket
from payroll.stores import BracketStore

from .models import AbsenceRecord

logger = logging.getLogger(__name__)


def _validate_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError({"month": "Month must be between 1 and 12."})
    if year < 1:
        raise ValidationError({"year": "Year must be a positive number."})


def _validate_days(absence_days: int) -> None:
    if absence_days is None or absence_days < 0:
        raise ValidationError({"absence_days": "Absence days must be zero or more."})


def resolve_adjustment_percentage(absence_days: int, tenant_db: str = "default") -> Optional[Decimal]:
    """Percentage of the active absence-day bracket covering ``absence_days``, if any."""
    brackets = BracketStore(tenant_db=tenant_db).list_active(Bracket.KIND_ABSENCE_DAYS)
    bracket = match_bracket(brackets, absence_days)
    return bracket.percentage if bracket else None


def record_absence(
    employee_id,
    year: int,
    month: int,
    absence_days: int,
    reason: Optional[str] = None,
    tenant_db: str = "default",
) -> AbsenceRecord:
    _validate_period(year, month)
    _validate_days(absence_days)

    employee = Employee.objects.using(tenant_db).filter(id=employee_id).first()
    if employee is None:
        raise EmployeeNotFound(employee_id)

    records = AbsenceRecord.objects.using(tenant_db)
    if records.filter(employee=employee, year=year, month=month).exists():
        raise DuplicateAbsenceRecord(employee.pk, year, month)

    percentage = resolve_adjustment_percentage(absence_days, tenant_db)
    try:
        with transaction.atomic(using=tenant_db):
            record = records.create(
                employee=employee,
                year=year,
                month=month,
                absence_days=absence_days,
                adjustment_percentage=percentage,
                reason=reason,
            )
    except IntegrityError:
        raise DuplicateAbsenceRecord(employee.pk, year, month)

    logger.info(
        "Recorded %s absence day(s) for employee %s in %02d/%s (adjustment %s)",
        absence_days,
        employee.pk,
        month,
        year,
        percentage,
    )
    return record


def update_absence_days(
    record_id,
    absence_days: int,
    reason: Optional[str] = None,
    tenant_db: str = "default",
) -> AbsenceRecord:
    """Change the day count and re-resolve the adjustment against today's brackets."""
    _validate_days(absence_days)
    record = AbsenceRecord.objects.using(tenant_db).filter(id=record_id).first()
    if record is None:
        raise NotFoundError("AbsenceRecord", record_id)

    update_fields = ["absence_days", "adjustment_percentage", "updated_at"]
    record.absence_days = absence_days
    record.adjustment_percentage = resolve_adjustment_percentage(absence_days, tenant_db)
    if reason is not None:
        record.reason = reason
        update_fields.append("reason")
    record.save(using=tenant_db, update_fields=update_fields)
    return record
