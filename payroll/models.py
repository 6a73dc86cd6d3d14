import uuid
from decimal import Decimal

from django.db import models
from django.db.models import F, Q


class Bracket(models.Model):
    """
    Interval [min_bound, max_bound] mapped to a percentage of base salary.
    One table serves both kinds; a null max_bound is unbounded above.
    """

    KIND_SERVICE_YEARS = "SERVICE_YEARS"
    KIND_ABSENCE_DAYS = "ABSENCE_DAYS"

    KIND_CHOICES = [
        (KIND_SERVICE_YEARS, "Years of service"),
        (KIND_ABSENCE_DAYS, "Absence days"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, db_index=True)
    name = models.CharField(max_length=100)
    min_bound = models.PositiveIntegerField()
    max_bound = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Inclusive upper bound. Leave empty for an open-ended range.",
    )
    percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text="Positive for an incentive, negative for a deduction.",
    )
    description = models.CharField(max_length=500, blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payroll_brackets"
        verbose_name = "Bracket"
        verbose_name_plural = "Brackets"
        ordering = ["kind", "min_bound"]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_bound__isnull=True) | Q(max_bound__gte=F("min_bound")),
                name="payroll_bracket_max_gte_min",
            ),
        ]

    def __str__(self):
        upper = "+" if self.max_bound is None else f"-{self.max_bound}"
        return f"{self.get_kind_display()} {self.min_bound}{upper}: {self.percentage}%"


class PayrollSnapshot(models.Model):
    """
    Gross pay computed for one employee and month. Written once and never
    recomputed: later salary, incentive or bracket changes do not touch it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employee = models.ForeignKey(
        "employees.Employee",
        on_delete=models.PROTECT,
        related_name="payroll_snapshots",
    )
    year = models.IntegerField()
    month = models.IntegerField()

    base_salary = models.DecimalField(max_digits=18, decimal_places=2)
    department_incentive_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    service_years_incentive_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    attendance_adjustment_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    gross_salary = models.DecimalField(max_digits=18, decimal_places=2)

    department_incentive_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    service_years_incentive_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    attendance_adjustment_percentage = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    absence_days = models.IntegerField(default=0)
    years_of_service = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payroll_snapshots"
        verbose_name = "Payroll Snapshot"
        verbose_name_plural = "Payroll Snapshots"
        ordering = ["-year", "-month", "employee__last_name", "employee__first_name"]
        constraints = [
            models.UniqueConstraint(
                fields=["employee", "year", "month"],
                name="uniq_payroll_snapshot_per_employee_month",
            ),
            models.CheckConstraint(
                condition=Q(month__gte=1) & Q(month__lte=12),
                name="payroll_snapshot_month_range",
            ),
        ]

    def __str__(self):
        return f"Snapshot {self.employee_id} {self.month:02d}/{self.year}: {self.gross_salary}"

    @property
    def total_adjustments(self) -> Decimal:
        return (
            self.department_incentive_amount
            + self.service_years_incentive_amount
            + self.attendance_adjustment_amount
        )


class BracketKindLock(models.Model):
    """
    One row per bracket kind. Bracket writes lock it before checking for
    overlaps, so concurrent writers of a kind run one after another even
    when the kind has no brackets yet.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=20, choices=Bracket.KIND_CHOICES, unique=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payroll_bracket_kind_locks"

    def __str__(self):
        return self.kind
