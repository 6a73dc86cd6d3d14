from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Department',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, unique=True)),
                ('code', models.CharField(help_text='Department code (e.g., HR, IT, FIN)', max_length=20, unique=True)),
                ('description', models.TextField(blank=True, null=True)),
                (
                    'incentive_percentage',
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text='Current department incentive as a percentage of base salary',
                        max_digits=5,
                        null=True,
                    ),
                ),
                ('incentive_set_date', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Department',
                'verbose_name_plural': 'Departments',
                'db_table': 'departments',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='DepartmentIncentiveHistory',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('incentive_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('effective_date', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                (
                    'department',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='incentive_history',
                        to='employees.department',
                    ),
                ),
            ],
            options={
                'verbose_name': 'Department Incentive History',
                'verbose_name_plural': 'Department Incentive History',
                'db_table': 'department_incentive_history',
                'ordering': ['-effective_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Employee',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('employee_id', models.CharField(help_text='Company-assigned employee number', max_length=50, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('hire_date', models.DateField(blank=True, null=True)),
                (
                    'employment_status',
                    models.CharField(
                        choices=[
                            ('ACTIVE', 'Active'),
                            ('ON_LEAVE', 'On Leave'),
                            ('SUSPENDED', 'Suspended'),
                            ('TERMINATED', 'Terminated'),
                        ],
                        db_index=True,
                        default='ACTIVE',
                        max_length=20,
                    ),
                ),
                ('is_deleted', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                (
                    'department',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='employees',
                        to='employees.department',
                    ),
                ),
            ],
            options={
                'verbose_name': 'Employee',
                'verbose_name_plural': 'Employees',
                'db_table': 'employees',
                'ordering': ['last_name', 'first_name'],
            },
        ),
        migrations.CreateModel(
            name='SalaryRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    'base_salary',
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=18,
                        validators=[django.core.validators.MinValueValidator(Decimal('0.01'))],
                    ),
                ),
                ('effective_date', models.DateField()),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                (
                    'employee',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='salary_records',
                        to='employees.employee',
                    ),
                ),
            ],
            options={
                'verbose_name': 'Salary Record',
                'verbose_name_plural': 'Salary Records',
                'db_table': 'salary_records',
                'ordering': ['-effective_date', '-created_at'],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('employee', 'effective_date'),
                        name='uniq_salary_record_per_effective_date',
                    ),
                    models.CheckConstraint(
                        condition=models.Q(('base_salary__gt', 0)),
                        name='salary_record_base_salary_positive',
                    ),
                ],
            },
        ),
    ]
