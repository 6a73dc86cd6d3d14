from django.contrib import admin

from .models import AbsenceRecord


@admin.register(AbsenceRecord)
class AbsenceRecordAdmin(admin.ModelAdmin):
    list_display = ['employee', 'year', 'month', 'absence_days', 'adjustment_percentage']
    list_filter = ['year', 'month']
    search_fields = ['employee__employee_id', 'employee__last_name']
    readonly_fields = ['id', 'adjustment_percentage', 'created_at', 'updated_at']
