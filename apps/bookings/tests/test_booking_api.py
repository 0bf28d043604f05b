"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from shared.domain.base import utcnow

from apps.bookings.models import Booking
from apps.payments.gateway import SandboxPaymentGateway
from apps.users.models import CustomUser

from .factories import create_user, create_warehouse


class BookingAPITests(APITestCase):
    """Covers creation, payment, owner decisions, cancellation and reconciliation."""

    def setUp(self) -> None:
        self.farmer = create_user("farmer@example.com", phone="+919800000001")
        self.owner = create_user(
            "owner@example.com",
            CustomUser.RoleChoices.WAREHOUSE_OWNER,
            phone="+919800000002",
        )
        self.admin = create_user("admin@example.com", CustomUser.RoleChoices.ADMIN)
        self.stranger = create_user("stranger@example.com")
        self.warehouse = create_warehouse(self.owner)
        self.client.force_authenticate(self.farmer)
        self.list_url = reverse("booking-list")

    def _payload(self, days_ahead: int = 10, days: int = 4, quantity: str = "100") -> dict[str, str]:
        start = (utcnow() + timedelta(days=days_ahead)).replace(microsecond=0)
        return {
            "warehouse": str(self.warehouse.id),
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=days)).isoformat(),
            "quantity": quantity,
            "produce_type": "onion",
        }

    def _create(self, **kwargs) -> dict:
        response = self.client.post(self.list_url, self._payload(**kwargs), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def _url(self, name: str, booking_id: str) -> str:
        return reverse(f"booking-{name}", kwargs={"booking_id": booking_id})

    def _pay(self, booking: dict, payment_id: str = "pay_001"):
        order_id = booking["provider_order_ref"]
        return self.client.post(
            self._url("confirm-payment", booking["booking_id"]),
            {
                "order_id": order_id,
                "payment_id": payment_id,
                "signature": SandboxPaymentGateway().sign(order_id, payment_id),
            },
            format="json",
        )

    def _paid(self, **kwargs) -> dict:
        booking = self._create(**kwargs)
        response = self._pay(booking)
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        return response.data

    def test_farmer_can_create_booking(self) -> None:
        data = self._create()

        self.assertEqual(data["status"], "pending")
        self.assertEqual(Decimal(data["total_amount"]), Decimal("20000"))
        self.assertEqual(Decimal(data["platform_fee"]), Decimal("1000"))
        self.assertEqual(Decimal(data["owner_amount"]), Decimal("19000"))
        self.assertEqual(data["warnings"], [])
        self.assertTrue(data["booking_id"].startswith("BK"))
        booking = Booking.objects.get(booking_id=data["booking_id"])
        self.assertEqual(booking.renter, self.farmer)
        self.assertEqual(booking.owner, self.owner)

    def test_anonymous_user_cannot_book(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.post(self.list_url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_window_is_bad_request(self) -> None:
        response = self.client.post(self.list_url, self._payload(days=0), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["error"], "InvalidWindow")

    def test_non_positive_quantity_is_bad_request(self) -> None:
        response = self.client.post(self.list_url, self._payload(quantity="0"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["error"], "InvalidQuantity")

    def test_prevent_overbooking_on_overlap(self) -> None:
        self._create(quantity="600")

        conflict = self.client.post(self.list_url, self._payload(days_ahead=12, quantity="500"), format="json")

        self.assertEqual(conflict.status_code, status.HTTP_409_CONFLICT, conflict.data)
        self.assertEqual(conflict.data["kind"], "conflict")
        self.assertEqual(Booking.objects.count(), 1)

    def test_availability_preview(self) -> None:
        first = self._create(quantity="600")
        payload = self._payload(days_ahead=12, quantity="500")
        payload.pop("produce_type")

        response = self.client.post(reverse("booking-availability"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["available"])
        self.assertEqual(
            [ref["booking_id"] for ref in response.data["conflicting_bookings"]],
            [first["booking_id"]],
        )
        self.assertEqual(response.data["quote"]["total_amount"], "100000")

    def test_unknown_warehouse_is_not_found(self) -> None:
        payload = self._payload()
        payload["warehouse"] = "5b0f8c0e-0000-4000-8000-000000000000"

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_confirm_payment(self) -> None:
        data = self._paid()

        self.assertEqual(data["status"], "awaiting-approval")
        self.assertEqual(data["payment_status"], "paid")
        self.assertEqual(Decimal(data["amount_due"]), Decimal("0"))
        self.warehouse.refresh_from_db()
        self.assertEqual(self.warehouse.capacity_available, Decimal("900"))

    def test_forged_signature_is_rejected(self) -> None:
        booking = self._create()

        response = self.client.post(
            self._url("confirm-payment", booking["booking_id"]),
            {"order_id": booking["provider_order_ref"], "payment_id": "pay_001", "signature": "forged"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "PaymentVerificationFailed")

    def test_owner_approves(self) -> None:
        booking = self._paid()
        self.client.force_authenticate(self.owner)

        response = self.client.post(self._url("approve", booking["booking_id"]), {"notes": "Bay 4"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "approved")
        self.assertEqual(response.data["approval_status"], "approved")

    def test_farmer_cannot_approve(self) -> None:
        booking = self._paid()

        response = self.client.post(self._url("approve", booking["booking_id"]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approving_unpaid_booking_is_conflict(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.owner)

        response = self.client.post(self._url("approve", booking["booking_id"]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_owner_rejection_refunds_in_full(self) -> None:
        booking = self._paid()
        self.client.force_authenticate(self.owner)

        response = self.client.post(
            self._url("reject", booking["booking_id"]),
            {"reason": "Cold room under repair"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "rejected")
        self.assertEqual(response.data["payment_status"], "refunded")
        self.assertEqual(Decimal(response.data["refunded_amount"]), Decimal("20000"))

    def test_cancel_five_days_ahead_refunds_half(self) -> None:
        booking = self._paid(days_ahead=5)
        self.client.force_authenticate(self.owner)
        self.client.post(self._url("approve", booking["booking_id"]), {}, format="json")
        self.client.force_authenticate(self.farmer)

        response = self.client.post(self._url("cancel", booking["booking_id"]), {"reason": "Sold early"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertEqual(Decimal(response.data["refund_amount"]), Decimal("10000"))
        self.assertEqual(response.data["payment_status"], "partially-refunded")

    def test_cancel_inside_grace_period(self) -> None:
        booking = self._create(days_ahead=0)

        response = self.client.post(self._url("cancel", booking["booking_id"]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "CancellationNotAllowed")

    def test_stranger_cannot_see_booking(self) -> None:
        booking = self._create()
        self.client.force_authenticate(self.stranger)

        detail = self.client.get(self._url("detail", booking["booking_id"]))
        listing = self.client.get(self.list_url)

        self.assertEqual(detail.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(listing.data, [])

    def test_owner_and_admin_see_booking(self) -> None:
        booking = self._create()

        for user in (self.owner, self.admin):
            self.client.force_authenticate(user)
            response = self.client.get(self._url("detail", booking["booking_id"]))
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data["booking_id"], booking["booking_id"])

    def test_reconcile_zero_priced_booking(self) -> None:
        booking = self._create()
        Booking.objects.filter(booking_id=booking["booking_id"]).update(
            total_amount=Decimal("0"), platform_fee=Decimal("0"), owner_amount=Decimal("0")
        )

        response = self.client.post(self._url("reconcile", booking["booking_id"]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertIn("pricing", response.data["changes"])
        self.assertEqual(Decimal(response.data["total_amount"]), Decimal("20000"))

    def test_reconcile_with_broken_rate_card(self) -> None:
        booking = self._create()
        Booking.objects.filter(booking_id=booking["booking_id"]).update(total_amount=None)
        type(self.warehouse).objects.filter(pk=self.warehouse.pk).update(base_rate=Decimal("0"))

        response = self.client.post(self._url("reconcile", booking["booking_id"]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data["kind"], "data_integrity")

    def test_bulk_reconcile_is_admin_only(self) -> None:
        url = reverse("booking-reconcile-all")

        self.assertEqual(self.client.post(url, {}, format="json").status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.post(url, {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total"], 0)

    def test_retry_refund_is_admin_only(self) -> None:
        booking = self._create()

        response = self.client.post(self._url("retry-refund", booking["booking_id"]), {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters_by_status(self) -> None:
        paid = self._paid()
        pending = self._create(days_ahead=40)

        awaiting = self.client.get(self.list_url, {"status": Booking.Status.AWAITING_APPROVAL})
        unpaid = self.client.get(self.list_url, {"payment_status": Booking.PaymentStatus.PENDING})

        self.assertEqual([row["booking_id"] for row in awaiting.data], [paid["booking_id"]])
        self.assertEqual([row["booking_id"] for row in unpaid.data], [pending["booking_id"]])

    def test_list_filters_bookings_needing_reconciliation(self) -> None:
        broken = self._create()
        self._create(days_ahead=40)
        Booking.objects.filter(booking_id=broken["booking_id"]).update(total_amount=None)

        response = self.client.get(self.list_url, {"needs_reconciliation": "true"})

        self.assertEqual([row["booking_id"] for row in response.data], [broken["booking_id"]])
