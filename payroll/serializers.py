from rest_framework import serializers

from .models import Bracket, PayrollSnapshot


class BracketSerializer(serializers.ModelSerializer):
    class Meta:
        model = Bracket
        fields = "__all__"
        read_only_fields = ["id", "created_at", "updated_at"]


class BracketWriteSerializer(serializers.Serializer):
    """Input shape for bracket create/update. Range and percentage rules live in BracketService."""

    kind = serializers.ChoiceField(choices=Bracket.KIND_CHOICES)
    name = serializers.CharField(max_length=100)
    min_bound = serializers.IntegerField()
    max_bound = serializers.IntegerField(required=False, allow_null=True, default=None)
    percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    is_active = serializers.BooleanField(required=False, default=True)


class BracketMatchSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Bracket.KIND_CHOICES)
    value = serializers.IntegerField(min_value=0)


class BracketOverlapCheckSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Bracket.KIND_CHOICES)
    min_bound = serializers.IntegerField()
    max_bound = serializers.IntegerField(required=False, allow_null=True, default=None)
    exclude_id = serializers.UUIDField(required=False, allow_null=True, default=None)


class PayrollPeriodSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=1)
    month = serializers.IntegerField(min_value=1, max_value=12)


class PayrollGenerateSerializer(PayrollPeriodSerializer):
    workers = serializers.IntegerField(required=False, min_value=1)


class PayrollSnapshotSerializer(serializers.ModelSerializer):
    employee_number = serializers.CharField(source="employee.employee_id", read_only=True)
    employee_name = serializers.CharField(source="employee.full_name", read_only=True)
    department_name = serializers.CharField(source="employee.department.name", read_only=True, default=None)
    total_adjustments = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)

    class Meta:
        model = PayrollSnapshot
        fields = "__all__"
        read_only_fields = [field.name for field in PayrollSnapshot._meta.fields]
