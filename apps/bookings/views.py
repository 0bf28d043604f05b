"""API views for the booking domain.

The views only translate HTTP into booking engine commands and engine
errors back into HTTP; every rule lives in the engine.
"""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus
from shared.domain.exceptions import DomainError

from apps.bookings.application.command_handlers import (
    ApproveBookingCommand,
    CancelBookingCommand,
    ConfirmPaymentCommand,
    CreateBookingCommand,
    RejectBookingCommand,
    RetryRefundCommand,
)
from apps.bookings.application.queries import CheckAvailabilityQuery
from apps.bookings.application.reconciliation import ReconcileBookingCommand
from apps.bookings.bootstrap import build_reconciliation_service

from .filters import BookingFilterSet
from .models import Booking
from .serializers import (
    AvailabilityQuerySerializer,
    BookingCreateSerializer,
    BookingSerializer,
    ConfirmPaymentSerializer,
    DecisionSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "permission": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "external": status.HTTP_502_BAD_GATEWAY,
    "data_integrity": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def domain_error_response(exc: DomainError) -> Response:
    return Response(exc.to_dict(), status=ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST))


def is_platform_admin(user) -> bool:
    return bool(getattr(user, "is_platform_admin", None) and user.is_platform_admin())


class IsPlatformAdmin(permissions.BasePermission):

    def has_permission(self, request, view):  # type: ignore
        return request.user.is_authenticated and is_platform_admin(request.user)


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """Booking lifecycle endpoints.

    Reads are limited to the renter, the warehouse owner and platform
    admins. Every write goes through the message bus.
    """

    queryset = Booking.objects.select_related("warehouse", "renter", "owner").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_field = "booking_id"
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = BookingFilterSet
    ordering_fields = ["created_at", "start_date", "end_date", "total_amount"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if is_platform_admin(user):
            return qs
        return qs.filter(renter=user) | qs.filter(owner=user)

    def _booking_response(self, result, status_code=status.HTTP_200_OK) -> Response:
        booking = Booking.objects.select_related("warehouse").get(pk=result.booking.id)
        data = dict(BookingSerializer(booking, context=self.get_serializer_context()).data)
        data["warnings"] = list(getattr(result, "warnings", []))
        if hasattr(result, "changes"):
            data["changes"] = list(result.changes)
        return Response(data, status=status_code)

    def _run(self, command, status_code=status.HTTP_200_OK) -> Response:
        try:
            result = message_bus.handle_command(command)
        except DomainError as exc:
            return domain_error_response(exc)
        return self._booking_response(result, status_code)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        command = CreateBookingCommand(
            warehouse_id=data["warehouse"],
            renter_id=request.user.id,
            start_date=data["start_date"],
            end_date=data["end_date"],
            quantity=data["quantity"],
            unit=data.get("unit", ""),
            produce_type=data.get("produce_type", ""),
            produce_description=data.get("produce_description", ""),
            notes=data.get("notes", ""),
        )
        return self._run(command, status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def availability(self, request):  # type: ignore
        serializer = AvailabilityQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        query = CheckAvailabilityQuery(
            warehouse_id=data["warehouse"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            quantity=data["quantity"],
        )
        try:
            result = message_bus.handle_command(query)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(result.to_dict())

    @action(detail=True, methods=["post"], url_path="confirm-payment")
    def confirm_payment(self, request, booking_id=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        if booking.renter_id != request.user.id:
            return Response({"detail": "Only the renter can pay for a booking."}, status=status.HTTP_403_FORBIDDEN)
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(ConfirmPaymentCommand(booking_id=booking.booking_id, **serializer.validated_data))

    @action(detail=True, methods=["post"])
    def approve(self, request, booking_id=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            ApproveBookingCommand(
                booking_id=booking.booking_id,
                actor_id=request.user.id,
                notes=serializer.validated_data["notes"],
            )
        )

    @action(detail=True, methods=["post"])
    def reject(self, request, booking_id=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            RejectBookingCommand(
                booking_id=booking.booking_id,
                actor_id=request.user.id,
                reason=serializer.validated_data["reason"],
                notes=serializer.validated_data["notes"],
            )
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, booking_id=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            CancelBookingCommand(
                booking_id=booking.booking_id,
                actor_id=request.user.id,
                reason=serializer.validated_data["reason"],
            )
        )

    @action(detail=True, methods=["post"])
    def reconcile(self, request, booking_id=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        return self._run(
            ReconcileBookingCommand(
                booking_id=booking.booking_id,
                actor_id=request.user.id,
                actor_is_admin=is_platform_admin(request.user),
            )
        )

    @action(detail=True, methods=["post"], url_path="retry-refund", permission_classes=[IsPlatformAdmin])
    def retry_refund(self, request, booking_id=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        return self._run(RetryRefundCommand(booking_id=booking.booking_id))

    @action(detail=False, methods=["post"], url_path="reconcile-all", permission_classes=[IsPlatformAdmin])
    def reconcile_all(self, request):  # type: ignore
        report = build_reconciliation_service().reconcile_all()
        logger.info(f"Bulk reconciliation requested by {request.user.email}: {report['fixed']} fixed")
        return Response(report)
