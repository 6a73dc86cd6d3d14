import uuid

from django.db import migrations, models


def create_kind_locks(apps, schema_editor):
    BracketKindLock = apps.get_model("payroll", "BracketKindLock")
    alias = schema_editor.connection.alias
    for kind in ("SERVICE_YEARS", "ABSENCE_DAYS"):
        BracketKindLock.objects.using(alias).get_or_create(kind=kind)


class Migration(migrations.Migration):

    dependencies = [
        ("payroll", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BracketKindLock",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[("SERVICE_YEARS", "Years of service"), ("ABSENCE_DAYS", "Absence days")],
                        max_length=20,
                        unique=True,
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "payroll_bracket_kind_locks",
            },
        ),
        migrations.RunPython(create_kind_locks, migrations.RunPython.noop),
    ]
