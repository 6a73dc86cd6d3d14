from decimal import Decimal

import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("employees", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Bracket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[("SERVICE_YEARS", "Years of service"), ("ABSENCE_DAYS", "Absence days")],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("min_bound", models.PositiveIntegerField()),
                (
                    "max_bound",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Inclusive upper bound. Leave empty for an open-ended range.",
                        null=True,
                    ),
                ),
                (
                    "percentage",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Positive for an incentive, negative for a deduction.",
                        max_digits=5,
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Bracket",
                "verbose_name_plural": "Brackets",
                "db_table": "payroll_brackets",
                "ordering": ["kind", "min_bound"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("max_bound__isnull", True), ("max_bound__gte", models.F("min_bound")), _connector="OR"),
                        name="payroll_bracket_max_gte_min",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayrollSnapshot",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("year", models.IntegerField()),
                ("month", models.IntegerField()),
                ("base_salary", models.DecimalField(decimal_places=2, max_digits=18)),
                ("department_incentive_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("service_years_incentive_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("attendance_adjustment_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("gross_salary", models.DecimalField(decimal_places=2, max_digits=18)),
                ("department_incentive_percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("service_years_incentive_percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("attendance_adjustment_percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("absence_days", models.IntegerField(default=0)),
                ("years_of_service", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payroll_snapshots",
                        to="employees.employee",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payroll Snapshot",
                "verbose_name_plural": "Payroll Snapshots",
                "db_table": "payroll_snapshots",
                "ordering": ["-year", "-month", "employee__last_name", "employee__first_name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("employee", "year", "month"),
                        name="uniq_payroll_snapshot_per_employee_month",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("month__gte", 1), ("month__lte", 12)),
                        name="payroll_snapshot_month_range",
                    ),
                ],
            },
        ),
    ]
