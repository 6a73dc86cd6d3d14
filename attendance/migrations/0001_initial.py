import django.core.validators
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
            name="AbsenceRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("year", models.IntegerField()),
                (
                    "month",
                    models.IntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ]
                    ),
                ),
                ("absence_days", models.PositiveIntegerField(default=0)),
                ("adjustment_percentage", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("reason", models.CharField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="absence_records",
                        to="employees.employee",
                    ),
                ),
            ],
            options={
                "verbose_name": "Absence Record",
                "verbose_name_plural": "Absence Records",
                "db_table": "absence_records",
                "ordering": ["-year", "-month"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("employee", "year", "month"),
                        name="uniq_absence_record_per_employee_month",
                    ),
                ],
            },
        ),
    ]
