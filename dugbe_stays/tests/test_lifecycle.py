from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone

from dugbe_stays.exceptions import InvalidTransition
from dugbe_stays.lifecycle import (
    BOOKING_TRANSITIONS,
    cancel_booking,
    cancellation_deadline,
    record_payment,
    set_booking_status,
    set_contact_status,
)
from dugbe_stays.models import Booking, ContactMessage, Profile
from dugbe_stays.payments import PaymentResult

from .helpers import make_booking, make_room, make_user

ALLOWED = {
    ("pending", "confirmed"),
    ("pending", "cancelled"),
    ("confirmed", "cancelled"),
    ("confirmed", "completed"),
}


class BookingTransitionTestCase(TestCase):
    """Admin moderation of the booking lifecycle"""

    def setUp(self):
        self.room = make_room()
        self.guest = make_user()

    def test_every_status_pair_follows_the_lifecycle_graph(self):
        statuses = [choice for choice, _ in Booking.Status.choices]
        for current in statuses:
            for target in statuses:
                with self.subTest(current=current, target=target):
                    booking = make_booking(self.room, self.guest, status=current)
                    if (current, target) in ALLOWED:
                        set_booking_status(booking.pk, target)
                        booking.refresh_from_db()
                        self.assertEqual(booking.status, target)
                    else:
                        with self.assertRaises(InvalidTransition):
                            set_booking_status(booking.pk, target)
                        booking.refresh_from_db()
                        self.assertEqual(booking.status, current)
                    booking.delete()

    def test_graph_has_no_exit_from_terminal_states(self):
        self.assertEqual(BOOKING_TRANSITIONS["cancelled"], set())
        self.assertEqual(BOOKING_TRANSITIONS["completed"], set())

    def test_confirm_then_complete_then_reopen(self):
        booking = make_booking(self.room, self.guest)

        set_booking_status(booking.pk, Booking.Status.CONFIRMED)
        set_booking_status(booking.pk, Booking.Status.COMPLETED)
        with self.assertRaises(InvalidTransition):
            set_booking_status(booking.pk, Booking.Status.PENDING)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.COMPLETED)

    def test_cancelling_paid_booking_refunds_it(self):
        booking = make_booking(
            self.room, self.guest,
            status=Booking.Status.CONFIRMED,
            payment_status=Booking.PaymentStatus.PAID,
            payment_reference="DGS-123",
        )

        set_booking_status(booking.pk, Booking.Status.CANCELLED)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.REFUNDED)
        self.assertEqual(booking.payment_reference, "DGS-123")

    def test_cancelling_unpaid_booking_keeps_payment_status(self):
        booking = make_booking(self.room, self.guest, payment_status=Booking.PaymentStatus.FAILED)

        set_booking_status(booking.pk, Booking.Status.CANCELLED)

        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.FAILED)

    def test_completing_stay_credits_loyalty_points(self):
        booking = make_booking(
            self.room, self.guest,
            status=Booking.Status.CONFIRMED,
            total_amount_kobo=15_187_500,
        )

        set_booking_status(booking.pk, Booking.Status.COMPLETED)

        self.assertEqual(Profile.objects.get(user=self.guest).loyalty_points, 151)

    def test_failed_transition_credits_nothing(self):
        booking = make_booking(self.room, self.guest, total_amount_kobo=15_187_500)

        with self.assertRaises(InvalidTransition):
            set_booking_status(booking.pk, Booking.Status.COMPLETED)

        self.assertEqual(Profile.objects.get(user=self.guest).loyalty_points, 0)


class GuestCancellationTestCase(TestCase):
    """Guests cancel their own bookings up to the check-in cutoff"""

    def setUp(self):
        self.room = make_room()
        self.guest = make_user()

    def test_pending_booking_can_be_cancelled_any_time(self):
        booking = make_booking(self.room, self.guest, start=1)

        cancel_booking(booking.pk, self.guest)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)

    def test_confirmed_booking_cancelled_before_cutoff(self):
        booking = make_booking(self.room, self.guest, start=5, status=Booking.Status.CONFIRMED)

        cancel_booking(booking.pk, self.guest)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CANCELLED)

    def test_confirmed_booking_inside_cutoff_is_kept(self):
        booking = make_booking(self.room, self.guest, start=5, status=Booking.Status.CONFIRMED)
        just_late = cancellation_deadline(booking) + timedelta(minutes=1)

        with self.assertRaises(InvalidTransition):
            cancel_booking(booking.pk, self.guest, now=just_late)

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)

    @override_settings(CANCELLATION_CUTOFF_HOURS=48)
    def test_cutoff_follows_settings(self):
        booking = make_booking(self.room, self.guest, start=5, status=Booking.Status.CONFIRMED)
        deadline = cancellation_deadline(booking)

        check_in_at = deadline + timedelta(hours=48)
        self.assertEqual(timezone.localtime(check_in_at).date(), booking.check_in_date)

    def test_guest_cannot_cancel_someone_elses_booking(self):
        booking = make_booking(self.room, self.guest)
        other = make_user(email="other@example.com")

        with self.assertRaises(Booking.DoesNotExist):
            cancel_booking(booking.pk, other)


class ContactTransitionTestCase(TestCase):

    def setUp(self):
        self.message = ContactMessage.objects.create(
            name="Ada", email="ada@example.com", subject="Airport pickup", message="Do you offer it?"
        )

    def test_status_moves_forward_one_step_at_a_time(self):
        set_contact_status(self.message.pk, ContactMessage.Status.REPLIED)
        set_contact_status(self.message.pk, ContactMessage.Status.RESOLVED)

        self.message.refresh_from_db()
        self.assertEqual(self.message.status, ContactMessage.Status.RESOLVED)

    def test_skipping_or_regressing_is_rejected(self):
        with self.assertRaises(InvalidTransition):
            set_contact_status(self.message.pk, ContactMessage.Status.RESOLVED)

        set_contact_status(self.message.pk, ContactMessage.Status.REPLIED)
        set_contact_status(self.message.pk, ContactMessage.Status.RESOLVED)
        for target in (ContactMessage.Status.NEW, ContactMessage.Status.REPLIED, ContactMessage.Status.RESOLVED):
            with self.subTest(target=target):
                with self.assertRaises(InvalidTransition):
                    set_contact_status(self.message.pk, target)

        self.message.refresh_from_db()
        self.assertEqual(self.message.status, ContactMessage.Status.RESOLVED)


class PaymentRecordingTestCase(TestCase):
    """Gateway results mirrored onto bookings"""

    def setUp(self):
        self.booking = make_booking(make_room(), make_user(), total_amount_kobo=10_125_000)

    def test_capture_after_cancellation_is_kept_and_refunded(self):
        set_booking_status(self.booking.pk, Booking.Status.CANCELLED)

        booking = record_payment(
            self.booking.pk, PaymentResult(Booking.PaymentStatus.PAID, "DGS-LATE", "Payment received")
        )

        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.REFUNDED)
        self.assertEqual(booking.payment_reference, "DGS-LATE")

    def test_decline_after_cancellation_is_rejected(self):
        set_booking_status(self.booking.pk, Booking.Status.CANCELLED)

        with self.assertRaises(InvalidTransition):
            record_payment(
                self.booking.pk, PaymentResult(Booking.PaymentStatus.FAILED, "DGS-LATE", "Payment was declined")
            )

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.PENDING)
