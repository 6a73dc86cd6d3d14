from rest_framework import permissions, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.views import APIView

from core.exceptions import NotFoundError
from core.utils import api_response

from .models import Bracket
from .serializers import (
    BracketMatchSerializer,
    BracketOverlapCheckSerializer,
    BracketSerializer,
    BracketWriteSerializer,
    PayrollGenerateSerializer,
    PayrollPeriodSerializer,
    PayrollSnapshotSerializer,
)
from .services import BracketService, PayrollCalculationService


def _period(request):
    serializer = PayrollPeriodSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data["year"], serializer.validated_data["month"]


class BracketViewSet(viewsets.ViewSet):
    permission_classes = [permissions.AllowAny]
    lookup_value_regex = "[0-9a-f-]{36}"

    def _kind_of(self, pk):
        kind = Bracket.objects.filter(pk=pk).values_list("kind", flat=True).first()
        if kind is None:
            raise NotFoundError("Bracket", pk)
        return kind

    def list(self, request):
        service = BracketService()
        kinds = [request.query_params["kind"]] if request.query_params.get("kind") else [
            kind for kind, _ in Bracket.KIND_CHOICES
        ]
        active_only = request.query_params.get("active") in ("1", "true", "True")
        brackets = []
        for kind in kinds:
            brackets.extend(service.list(kind, active_only=active_only))
        data = BracketSerializer(brackets, many=True).data
        return api_response(success=True, message="Brackets retrieved.", data={"results": data, "count": len(data)})

    def retrieve(self, request, pk=None):
        bracket = BracketService().get(self._kind_of(pk), pk)
        return api_response(success=True, message="Bracket retrieved.", data=BracketSerializer(bracket).data)

    def create(self, request):
        serializer = BracketWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fields = dict(serializer.validated_data)
        kind = fields.pop("kind")
        bracket = BracketService().create(kind, **fields)
        return api_response(
            success=True,
            message="Bracket created.",
            data=BracketSerializer(bracket).data,
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None):
        return self._update(request, pk, partial=False)

    def partial_update(self, request, pk=None):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        kind = self._kind_of(pk)
        serializer = BracketWriteSerializer(data={**request.data, "kind": kind}, partial=partial)
        serializer.is_valid(raise_exception=True)
        changes = {name: value for name, value in serializer.validated_data.items() if name != "kind"}
        if partial:
            changes = {name: value for name, value in changes.items() if name in request.data}
        bracket = BracketService().update(kind, pk, **changes)
        return api_response(success=True, message="Bracket updated.", data=BracketSerializer(bracket).data)

    def destroy(self, request, pk=None):
        bracket = BracketService().deactivate(self._kind_of(pk), pk)
        return api_response(success=True, message="Bracket deactivated.", data=BracketSerializer(bracket).data)

    @action(detail=False, methods=["get"])
    def match(self, request):
        serializer = BracketMatchSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        bracket = BracketService().match(serializer.validated_data["kind"], serializer.validated_data["value"])
        return api_response(
            success=True,
            message="Bracket matched." if bracket else "No bracket covers this value.",
            data={"bracket": BracketSerializer(bracket).data if bracket else None},
        )

    @action(detail=False, methods=["post"], url_path="check-overlap")
    def check_overlap(self, request):
        serializer = BracketOverlapCheckSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        available = BracketService().validate_no_overlap(
            data["kind"],
            data["min_bound"],
            data["max_bound"],
            exclude_id=data["exclude_id"],
        )
        return api_response(success=True, message="Overlap check completed.", data={"valid": available})


class PayrollCalculateView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, employee_id):
        year, month = _period(request)
        snapshot = PayrollCalculationService().calculate(employee_id, year, month)
        return api_response(
            success=True,
            message="Gross pay calculated.",
            data=PayrollSnapshotSerializer(snapshot).data,
        )


class PayrollCalculateAllView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        year, month = _period(request)
        snapshots = PayrollCalculationService().calculate_all(year, month)
        data = PayrollSnapshotSerializer(snapshots, many=True).data
        return api_response(success=True, message="Gross pay calculated.", data={"results": data, "count": len(data)})


class PayrollGenerateView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = PayrollGenerateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = PayrollCalculationService(max_workers=data.get("workers"))
        result = service.run_month(data["year"], data["month"])

        payload = {
            "year": result.year,
            "month": result.month,
            "total": result.total,
            "required": result.required,
            "success_count": result.success_count,
            "created": [str(employee_id) for employee_id in result.created],
            "existing": [str(employee_id) for employee_id in result.existing],
            "failed": {str(employee_id): reason for employee_id, reason in result.failed.items()},
        }
        if result.succeeded:
            return api_response(success=True, message="Payroll snapshots generated.", data=payload)
        return api_response(
            success=False,
            message="Payroll run did not reach the success threshold.",
            data=payload,
            status=status.HTTP_409_CONFLICT,
        )


class PayrollSnapshotListView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        service = PayrollCalculationService()
        employee_id = request.query_params.get("employee_id")
        if employee_id:
            employee_id = serializers.UUIDField().to_internal_value(employee_id)
            snapshots = service.list_snapshots_for_employee(employee_id)
        else:
            year, month = _period(request)
            department_id = request.query_params.get("department_id")
            if department_id:
                department_id = serializers.UUIDField().to_internal_value(department_id)
                snapshots = service.list_snapshots_for_department(department_id, year, month)
            else:
                snapshots = service.list_snapshots(year, month)
        data = PayrollSnapshotSerializer(snapshots, many=True).data
        return api_response(success=True, message="Payroll snapshots retrieved.", data={"results": data, "count": len(data)})


class PayrollSnapshotDetailView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, employee_id, year, month):
        snapshot = PayrollCalculationService().get_snapshot(employee_id, year, month)
        return api_response(success=True, message="Payroll snapshot retrieved.", data=PayrollSnapshotSerializer(snapshot).data)
