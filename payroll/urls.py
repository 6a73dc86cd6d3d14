from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    BracketViewSet,
    PayrollCalculateAllView,
    PayrollCalculateView,
    PayrollGenerateView,
    PayrollSnapshotDetailView,
    PayrollSnapshotListView,
)

router = DefaultRouter()
router.register(r"brackets", BracketViewSet, basename="payroll-brackets")

urlpatterns = [
    path("", include(router.urls)),
    path("calculate/<uuid:employee_id>/", PayrollCalculateView.as_view()),
    path("calculate-all/", PayrollCalculateAllView.as_view()),
    path("generate/", PayrollGenerateView.as_view()),
    path("snapshots/", PayrollSnapshotListView.as_view()),
    path("snapshots/<uuid:employee_id>/<int:year>/<int:month>/", PayrollSnapshotDetailView.as_view()),
]
