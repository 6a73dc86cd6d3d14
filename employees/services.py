import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.exceptions import DuplicateSalaryRecord, EmployeeNotFound, NotFoundError, ValidationError

from .models import Department, DepartmentIncentiveHistory, Employee, SalaryRecord

logger = logging.getLogger(__name__)


def _parse_decimal(value, field_name: str) -> Decimal:
    if value is None or value == "":
        raise ValidationError({field_name: "This field is required."})
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError({field_name: "A valid number is required."})


def record_salary(
    employee_id,
    base_salary,
    effective_date: date,
    notes: Optional[str] = None,
    tenant_db: str = "default",
) -> SalaryRecord:
    """Add a salary record. An employee cannot have two records on the same effective date."""
    amount = _parse_decimal(base_salary, "base_salary")
    if amount <= 0:
        raise ValidationError({"base_salary": "Base salary must be greater than zero."})
    if effective_date is None:
        raise ValidationError({"effective_date": "This field is required."})

    employee = Employee.objects.using(tenant_db).filter(id=employee_id).first()
    if employee is None:
        raise EmployeeNotFound(employee_id)

    records = SalaryRecord.objects.using(tenant_db)
    if records.filter(employee=employee, effective_date=effective_date).exists():
        raise DuplicateSalaryRecord(employee.pk, effective_date)
    try:
        with transaction.atomic(using=tenant_db):
            record = records.create(
                employee=employee,
                base_salary=amount,
                effective_date=effective_date,
                notes=notes,
            )
    except IntegrityError:
        raise DuplicateSalaryRecord(employee.pk, effective_date)

    logger.info("Recorded salary %s for employee %s from %s", amount, employee.pk, effective_date)
    return record


def set_department_incentive(
    department_id,
    incentive_percentage,
    effective_date: Optional[datetime] = None,
    tenant_db: str = "default",
) -> Department:
    """Change a department's incentive and append the change to its history."""
    percentage = _parse_decimal(incentive_percentage, "incentive_percentage")
    if percentage < 0 or percentage > 100:
        raise ValidationError({"incentive_percentage": "Incentive percentage must be between 0 and 100."})
    effective_date = effective_date or timezone.now()

    with transaction.atomic(using=tenant_db):
        department = (
            Department.objects.using(tenant_db).select_for_update().filter(id=department_id).first()
        )
        if department is None:
            raise NotFoundError("Department", department_id)
        department.incentive_percentage = percentage
        department.incentive_set_date = effective_date
        department.save(using=tenant_db, update_fields=["incentive_percentage", "incentive_set_date", "updated_at"])
        DepartmentIncentiveHistory.objects.using(tenant_db).create(
            department=department,
            incentive_percentage=percentage,
            effective_date=effective_date,
        )

    logger.info("Department %s incentive set to %s%%", department.code, percentage)
    return department
