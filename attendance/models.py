import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from employees.models import Employee


class AbsenceRecord(models.Model):
    """
    Days absent for one employee and month.

    adjustment_percentage is resolved against the active absence-day brackets
    when the record is created or its day count changes, and is then used
    as-is by payroll so past months keep the rule that applied at the time.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name="absence_records")
    year = models.IntegerField()
    month = models.IntegerField(validators=[MinValueValidator(1), MaxValueValidator(12)])
    absence_days = models.PositiveIntegerField(default=0)
    adjustment_percentage = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True)
    reason = models.CharField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "absence_records"
        verbose_name = "Absence Record"
        verbose_name_plural = "Absence Records"
        ordering = ["-year", "-month"]
        constraints = [
            models.UniqueConstraint(
                fields=["employee", "year", "month"],
                name="uniq_absence_record_per_employee_month",
            ),
        ]

    def __str__(self):
        return f"{self.employee_id} {self.month:02d}/{self.year}: {self.absence_days} day(s)"
