import logging
import uuid

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import BelongsToResidential, IsGuardUser, IsResidentOrChairman
from accounts.roles import Role, resolve_user

from . import ledger, store
from .exceptions import (
    CodeSpaceExhausted,
    CredentialNotFound,
    GuestAccessError,
    InvalidDuration,
    NotAllowed,
    StorageUnavailable,
)
from .serializers import (
    BarrierAccessLogSerializer,
    BarrierOpenRequestSerializer,
    BarrierScanRequestSerializer,
    CredentialStatusSerializer,
    GuestAccessCreateSerializer,
    GuestAccessDetailSerializer,
)
from .services import (
    GuestInfo,
    cancel_guest_access,
    get_credential_status,
    issue_guest_access,
    list_active_guests,
    open_barrier_for_resident,
    validate_at_barrier,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidDuration: status.HTTP_400_BAD_REQUEST,
    NotAllowed: status.HTTP_403_FORBIDDEN,
    CredentialNotFound: status.HTTP_404_NOT_FOUND,
    StorageUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    CodeSpaceExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class GuestAccessPagination(PageNumberPagination):
    """?page= y ?per_page= (máximo ledger.MAX_PAGE_SIZE)."""
    page_size = ledger.DEFAULT_PAGE_SIZE
    page_size_query_param = "per_page"
    max_page_size = ledger.MAX_PAGE_SIZE

    def get_paginated_response(self, data):
        paginator = self.page.paginator
        return Response({
            "results": data,
            "pagination": {
                "total": paginator.count,
                "page": self.page.number,
                "per_page": paginator.per_page,
                "pages": paginator.num_pages,
                "has_next": self.page.has_next(),
                "has_prev": self.page.has_previous(),
            },
        })


class GuestAccessAPIView(APIView):
    """Traduce los errores del motor de pases a respuestas HTTP con `detail`."""

    def handle_exception(self, exc):
        if isinstance(exc, GuestAccessError):
            code = ERROR_STATUS.get(type(exc))
            if code is not None:
                if code >= 500:
                    logger.warning("%s en %s: %s", type(exc).__name__, self.request.path, exc)
                return Response({"detail": str(exc)}, status=code)
        return super().handle_exception(exc)

    def paginated(self, queryset, serializer_class):
        paginator = GuestAccessPagination()
        page = paginator.paginate_queryset(queryset, self.request, view=self)
        return paginator.get_paginated_response(serializer_class(page, many=True).data)


class GuestAccessListCreateView(GuestAccessAPIView):
    """
    GET: pases vivos (pending/active). El dueño ve los suyos; el presidente,
    los de todo su residencial.
    POST: emite un pase nuevo en el residencial del usuario.
    """
    permission_classes = [IsResidentOrChairman]

    def get(self, request):
        identity = resolve_user(request.user)
        created_by = None if identity.role == Role.CHAIRMAN else request.user
        qs = list_active_guests(identity.residential_id, created_by=created_by).select_related("residential")
        return self.paginated(qs, GuestAccessDetailSerializer)

    def post(self, request):
        s = GuestAccessCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        identity = resolve_user(request.user)
        credential = issue_guest_access(
            request.user,
            identity.residential_id,
            guest_info=GuestInfo(
                name=data["guest_name"],
                phone=data["guest_phone"],
                vehicle_number=data["vehicle_number"],
            ),
            duration_minutes=data["duration_minutes"],
        )
        return Response(GuestAccessDetailSerializer(credential).data, status=status.HTTP_201_CREATED)


class GuestAccessDetailView(GuestAccessAPIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        credential_status = get_credential_status(pk, by_user=request.user)
        return Response(CredentialStatusSerializer(credential_status).data)


class GuestAccessCancelView(GuestAccessAPIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        outcome = cancel_guest_access(pk, request.user)
        if not outcome.won:
            return Response(
                {"detail": "El pase ya no se puede cancelar.", "status": outcome.credential.status},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(GuestAccessDetailSerializer(outcome.credential).data, status=status.HTTP_200_OK)


class GuardBarrierScanView(GuestAccessAPIView):
    permission_classes = [IsGuardUser]

    def post(self, request):
        s = BarrierScanRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        guard = request.user.guard_account
        barrier = None
        barrier_id = data.get("barrier_id") or guard.barrier_id
        if barrier_id is not None:
            # Solo barreras del residencial del guardia
            barrier = store.find_barrier(barrier_id, residential_id=guard.residential_id)
            if barrier is None:
                return Response(
                    {"detail": "Barrera no encontrada para este residencial."},
                    status=status.HTTP_404_NOT_FOUND,
                )

        result = validate_at_barrier(
            data["code"],
            data["action"],
            barrier=barrier,
            residential_id=guard.residential_id,
            vehicle_number=data["vehicle_number"],
        )
        payload = {"granted": result.granted, "reason": result.reason}
        if result.granted:
            credential = result.credential
            payload.update({
                "credential_id": str(credential.pk),
                "guest_name": credential.guest_name,
                "vehicle_number": credential.vehicle_number,
                "status": credential.status,
            })
        return Response(payload, status=status.HTTP_200_OK)


class BarrierHistoryView(GuestAccessAPIView):
    permission_classes = [BelongsToResidential]

    def get(self, request):
        identity = resolve_user(request.user)
        qs = ledger.history(identity.residential_id)
        barrier_id = request.query_params.get("barrier")
        if barrier_id:
            try:
                qs = qs.filter(barrier_id=uuid.UUID(barrier_id))
            except ValueError:
                return Response({"detail": "Parámetro barrier inválido."}, status=status.HTTP_400_BAD_REQUEST)
        return self.paginated(qs, BarrierAccessLogSerializer)


class BarrierOpenView(GuestAccessAPIView):
    permission_classes = [IsResidentOrChairman]

    def post(self, request, pk):
        s = BarrierOpenRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        barrier = store.find_barrier(pk)
        if barrier is None:
            return Response({"detail": "Barrera no encontrada."}, status=status.HTTP_404_NOT_FOUND)

        result = open_barrier_for_resident(
            request.user, barrier, vehicle_number=s.validated_data["vehicle_number"],
        )
        return Response({"granted": result.granted, "reason": result.reason}, status=status.HTTP_200_OK)
