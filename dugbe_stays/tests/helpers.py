from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from dugbe_stays.models import AdminUser, Booking, Profile, Room


def days_from_today(days):
    return timezone.localdate() + timedelta(days=days)


def make_user(email="guest@example.com", password="s3cure-pass", **profile):
    user = get_user_model().objects.create_user(username=email, email=email, password=password)
    Profile.objects.create(user=user, **profile)
    return user


def make_admin(email="admin@example.com"):
    user = make_user(email=email)
    AdminUser.objects.create(user=user, role="admin", permissions=["bookings", "rooms", "contact"])
    return user


def make_room(name="Deluxe Room", price_naira=45000, capacity=2, **extra):
    extra.setdefault("room_type", Room.RoomType.DELUXE)
    return Room.objects.create(
        name=name,
        price_per_night_kobo=price_naira * 100,
        capacity=capacity,
        **extra,
    )


def make_booking(room, user, start=1, nights=2, **extra):
    check_in = days_from_today(start)
    extra.setdefault("total_amount_kobo", room.price_per_night_kobo * nights)
    return Booking.objects.create(
        room=room,
        user=user,
        check_in_date=check_in,
        check_out_date=check_in + timedelta(days=nights),
        **extra,
    )
