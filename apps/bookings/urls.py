"""Booking API routes.

Lifecycle actions are exposed as ``/api/v1/bookings/<booking_id>/<action>/``.
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter  # type: ignore

from .views import BookingViewSet

router = DefaultRouter(trailing_slash=True)
router.register(r"", BookingViewSet, basename="booking")

urlpatterns = router.urls
