"""Status transitions for bookings and contact messages.

Every operation locks the row it changes and commits all of its writes in a
single transaction, so a booking is never left cancelled while still paid.
"""
import logging
from datetime import datetime, time, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import InvalidTransition
from .loyalty import loyalty_points_for
from .models import Booking, ContactMessage, Profile

logger = logging.getLogger(__name__)


def _graph(edges):
    return {str(state): {str(target) for target in targets} for state, targets in edges.items()}


BOOKING_TRANSITIONS = _graph({
    Booking.Status.PENDING: {Booking.Status.CONFIRMED, Booking.Status.CANCELLED},
    Booking.Status.CONFIRMED: {Booking.Status.CANCELLED, Booking.Status.COMPLETED},
    Booking.Status.CANCELLED: set(),
    Booking.Status.COMPLETED: set(),
})

CONTACT_TRANSITIONS = _graph({
    ContactMessage.Status.NEW: {ContactMessage.Status.REPLIED},
    ContactMessage.Status.REPLIED: {ContactMessage.Status.RESOLVED},
    ContactMessage.Status.RESOLVED: set(),
})

# A failed charge may be retried; settled payments only move on cancellation.
PAYMENT_TRANSITIONS = _graph({
    Booking.PaymentStatus.PENDING: {Booking.PaymentStatus.PAID, Booking.PaymentStatus.FAILED},
    Booking.PaymentStatus.FAILED: {Booking.PaymentStatus.PAID, Booking.PaymentStatus.FAILED},
    Booking.PaymentStatus.PAID: set(),
    Booking.PaymentStatus.REFUNDED: set(),
})


def check_transition(graph, current, requested):
    if str(requested) not in graph.get(str(current), ()):
        raise InvalidTransition(current, requested)


def cancellation_deadline(booking):
    check_in_at = timezone.make_aware(datetime.combine(booking.check_in_date, time.min))
    return check_in_at - timedelta(hours=settings.CANCELLATION_CUTOFF_HOURS)


def _apply_booking_status(booking, new_status):
    check_transition(BOOKING_TRANSITIONS, booking.status, new_status)

    previous = booking.status
    booking.status = new_status
    update_fields = ["status", "updated_at"]

    if new_status == Booking.Status.CANCELLED and booking.payment_status == Booking.PaymentStatus.PAID:
        booking.payment_status = Booking.PaymentStatus.REFUNDED
        update_fields.append("payment_status")
        logger.info("Booking %s cancelled after payment; marked refunded", booking.pk)

    booking.save(update_fields=update_fields)

    if new_status == Booking.Status.COMPLETED:
        points = loyalty_points_for(booking.total_amount_kobo)
        if points:
            profile, _ = Profile.objects.get_or_create(user_id=booking.user_id)
            Profile.objects.filter(pk=profile.pk).update(
                loyalty_points=F("loyalty_points") + points
            )
            logger.info("Credited %s loyalty points to user %s", points, booking.user_id)

    logger.info("Booking %s: %s -> %s", booking.pk, previous, new_status)
    return booking


def set_booking_status(booking_id, new_status):
    """Admin moderation of a booking's lifecycle status."""
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking_id)
        return _apply_booking_status(booking, new_status)


def cancel_booking(booking_id, user, now=None):
    """Guest self-service cancellation, subject to the check-in cutoff."""
    now = now or timezone.now()
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking_id, user=user)
        if booking.status == Booking.Status.CONFIRMED and now >= cancellation_deadline(booking):
            raise InvalidTransition(
                booking.status,
                Booking.Status.CANCELLED,
                detail=(
                    "Confirmed bookings can only be cancelled up to "
                    f"{settings.CANCELLATION_CUTOFF_HOURS} hours before check-in"
                ),
            )
        return _apply_booking_status(booking, Booking.Status.CANCELLED)


def set_contact_status(contact_id, new_status):
    with transaction.atomic():
        message = ContactMessage.objects.select_for_update().get(pk=contact_id)
        check_transition(CONTACT_TRANSITIONS, message.status, new_status)
        previous = message.status
        message.status = new_status
        message.save(update_fields=["status"])
    logger.info("Contact message %s: %s -> %s", contact_id, previous, new_status)
    return message


def record_payment(booking_id, result):
    """Mirror a payment collaborator result onto the booking.

    A charge that settles after the booking was cancelled is kept on record and
    refunded straight away.
    """
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking_id)
        if booking.status == Booking.Status.CANCELLED and result.succeeded:
            booking.payment_status = Booking.PaymentStatus.REFUNDED
            booking.payment_reference = result.reference
            booking.save(update_fields=["payment_status", "payment_reference", "updated_at"])
            logger.warning(
                "Payment %s captured for cancelled booking %s; marked refunded",
                result.reference, booking.pk,
            )
            return booking
        if booking.status == Booking.Status.CANCELLED:
            raise InvalidTransition(
                booking.payment_status,
                result.status,
                detail=f"Booking is {booking.status}; payment can no longer change",
            )
        check_transition(PAYMENT_TRANSITIONS, booking.payment_status, result.status)
        booking.payment_status = result.status
        if result.reference:
            booking.payment_reference = result.reference
        booking.save(update_fields=["payment_status", "payment_reference", "updated_at"])
    return booking
