from django.urls import path

from .views import (
    BarrierHistoryView,
    BarrierOpenView,
    GuardBarrierScanView,
    GuestAccessCancelView,
    GuestAccessDetailView,
    GuestAccessListCreateView,
)

urlpatterns = [
    path("guest-access/", GuestAccessListCreateView.as_view(), name="guest-access-list"),
    path("guest-access/<uuid:pk>/", GuestAccessDetailView.as_view(), name="guest-access-detail"),
    path("guest-access/<uuid:pk>/cancel/", GuestAccessCancelView.as_view(), name="guest-access-cancel"),
    path("guard/barrier-scan/", GuardBarrierScanView.as_view(), name="guard-barrier-scan"),
    path("barriers/history/", BarrierHistoryView.as_view(), name="barrier-history"),
    path("barriers/<uuid:pk>/open/", BarrierOpenView.as_view(), name="barrier-open"),
]
