from django.contrib import admin

from .models import Department, DepartmentIncentiveHistory, Employee, SalaryRecord


class DepartmentIncentiveHistoryInline(admin.TabularInline):
    model = DepartmentIncentiveHistory
    extra = 0
    readonly_fields = ['incentive_percentage', 'effective_date', 'created_at']
    can_delete = False


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'incentive_percentage', 'incentive_set_date', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'code']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [DepartmentIncentiveHistoryInline]


class SalaryRecordInline(admin.TabularInline):
    model = SalaryRecord
    extra = 0
    readonly_fields = ['created_at']


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ['employee_id', 'first_name', 'last_name', 'department', 'hire_date', 'employment_status', 'is_deleted']
    list_filter = ['employment_status', 'is_deleted', 'department']
    search_fields = ['employee_id', 'first_name', 'last_name', 'email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [SalaryRecordInline]


@admin.register(SalaryRecord)
class SalaryRecordAdmin(admin.ModelAdmin):
    list_display = ['employee', 'base_salary', 'effective_date', 'created_at']
    list_filter = ['effective_date']
    search_fields = ['employee__employee_id', 'employee__last_name']
    readonly_fields = ['id', 'created_at']
