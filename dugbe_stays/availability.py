from django.db.models import Exists, OuterRef

from .models import Booking, Room

# Bookings in these states hold their room for the booked nights.
BLOCKING_STATUSES = (Booking.Status.PENDING, Booking.Status.CONFIRMED)


def overlapping_bookings(check_in, check_out, room=None):
    """Bookings whose [check_in, check_out) range overlaps the requested one."""
    qs = Booking.objects.filter(
        status__in=BLOCKING_STATUSES,
        check_in_date__lt=check_out,
        check_out_date__gt=check_in,
    )
    if room is not None:
        qs = qs.filter(room=room)
    return qs


def is_room_available(room_id, check_in, check_out, exclude_booking_id=None):
    qs = overlapping_bookings(check_in, check_out).filter(room_id=room_id)
    if exclude_booking_id is not None:
        qs = qs.exclude(pk=exclude_booking_id)
    return not qs.exists()


def available_rooms_qs(check_in, check_out, max_price_kobo=None, queryset=None):
    overlap = Exists(overlapping_bookings(check_in, check_out, room=OuterRef("pk")))
    qs = queryset if queryset is not None else Room.objects.all()
    qs = qs.filter(is_available=True).annotate(has_overlap=overlap).filter(has_overlap=False)
    if max_price_kobo is not None:
        qs = qs.filter(price_per_night_kobo__lte=max_price_kobo)
    return qs
