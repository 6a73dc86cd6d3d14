from django.contrib import admin

from .models import Bracket, PayrollSnapshot


@admin.register(Bracket)
class BracketAdmin(admin.ModelAdmin):
    list_display = ["name", "kind", "min_bound", "max_bound", "percentage", "is_active"]
    list_filter = ["kind", "is_active"]
    search_fields = ["name"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(PayrollSnapshot)
class PayrollSnapshotAdmin(admin.ModelAdmin):
    list_display = ["employee", "year", "month", "base_salary", "gross_salary", "created_at"]
    list_filter = ["year", "month"]
    search_fields = ["employee__employee_id", "employee__last_name"]

    # Snapshots are written once by the payroll run.
    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False
