from decimal import Decimal
import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class Department(models.Model):
    """Department within the company, carrying the flat department incentive"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    code = models.CharField(max_length=20, unique=True, help_text='Department code (e.g., HR, IT, FIN)')
    description = models.TextField(blank=True, null=True)
    incentive_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text='Current department incentive as a percentage of base salary',
    )
    incentive_set_date = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'departments'
        verbose_name = 'Department'
        verbose_name_plural = 'Departments'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.code})"


class DepartmentIncentiveHistory(models.Model):
    """Every incentive percentage a department has had, newest first"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='incentive_history')
    incentive_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    effective_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'department_incentive_history'
        verbose_name = 'Department Incentive History'
        verbose_name_plural = 'Department Incentive History'
        ordering = ['-effective_date', '-created_at']

    def __str__(self):
        return f"{self.department.code}: {self.incentive_percentage}% from {self.effective_date:%Y-%m-%d}"


class Employee(models.Model):
    """Employee master record, maintained by the HR workflow"""

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_ON_LEAVE = 'ON_LEAVE'
    STATUS_SUSPENDED = 'SUSPENDED'
    STATUS_TERMINATED = 'TERMINATED'

    EMPLOYMENT_STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_ON_LEAVE, 'On Leave'),
        (STATUS_SUSPENDED, 'Suspended'),
        (STATUS_TERMINATED, 'Terminated'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee_id = models.CharField(max_length=50, unique=True, help_text='Company-assigned employee number')
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True, null=True)
    department = models.ForeignKey(
        Department, on_delete=models.SET_NULL, null=True, blank=True, related_name='employees'
    )
    hire_date = models.DateField(blank=True, null=True)
    employment_status = models.CharField(
        max_length=20, choices=EMPLOYMENT_STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True
    )
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'employees'
        verbose_name = 'Employee'
        verbose_name_plural = 'Employees'
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.employee_id})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self):
        return self.employment_status == self.STATUS_ACTIVE and not self.is_deleted


class SalaryRecord(models.Model):
    """Base salary effective from a given date. The latest record on or before a date is the current one."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee = models.ForeignKey(Employee, on_delete=models.CASCADE, related_name='salary_records')
    base_salary = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    effective_date = models.DateField()
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'salary_records'
        verbose_name = 'Salary Record'
        verbose_name_plural = 'Salary Records'
        ordering = ['-effective_date', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['employee', 'effective_date'],
                name='uniq_salary_record_per_effective_date',
            ),
            models.CheckConstraint(
                condition=Q(base_salary__gt=0),
                name='salary_record_base_salary_positive',
            ),
        ]

    def __str__(self):
        return f"{self.employee_id}: {self.base_salary} from {self.effective_date}"
