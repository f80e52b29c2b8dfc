import logging
from decimal import Decimal

from django.contrib.auth import authenticate, get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework import serializers
from rest_framework.authtoken.models import Token

from . import loyalty
from .availability import is_room_available, overlapping_bookings
from .exceptions import InvalidDateRange, RoomUnavailable
from .models import Booking, ContactMessage, Profile, Review, Room
from .pricing import compute_quote

logger = logging.getLogger(__name__)


def kobo_display(amount):
    return None if amount is None else amount / 100.0


class RoomSerializer(serializers.ModelSerializer):

    class Meta:
        model = Room
        fields = '__all__'
        read_only_fields = ('rating', 'review_count', 'created_at', 'updated_at')

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['price_per_night'] = kobo_display(instance.price_per_night_kobo)
        data['original_price'] = kobo_display(instance.original_price_kobo)
        return data

    def validate_amenities(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("amenities must be a list of strings")
        # Order-preserving de-duplication.
        return list(dict.fromkeys(item.strip() for item in value if item.strip()))

    def validate(self, data):
        price = data.get('price_per_night_kobo', getattr(self.instance, 'price_per_night_kobo', None))
        original = data.get('original_price_kobo', getattr(self.instance, 'original_price_kobo', None))
        if price is not None and original is not None and original < price:
            raise serializers.ValidationError(
                {'original_price_kobo': "original price must not be below the nightly price"}
            )
        return data


class BookingSerializer(serializers.ModelSerializer):
    room_id = serializers.IntegerField()
    room = RoomSerializer(read_only=True)
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, default=1)
    client_token = serializers.UUIDField(write_only=True, required=False)  # idempotency key
    total_amount_kobo = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = (
            'id', 'room_id', 'room', 'user', 'check_in_date', 'check_out_date', 'guests',
            'total_amount_kobo', 'status', 'payment_status', 'payment_reference',
            'special_requests', 'client_token', 'created_at', 'updated_at',
        )
        read_only_fields = ('user', 'status', 'payment_status', 'payment_reference')

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['total_amount'] = kobo_display(instance.total_amount_kobo)
        data['nights'] = instance.nights
        return data

    def validate(self, data):
        check_in = data['check_in_date']
        check_out = data['check_out_date']

        if check_out <= check_in:
            raise InvalidDateRange()
        if check_in < timezone.localdate():
            raise serializers.ValidationError("check_in_date cannot be in the past")

        try:
            room = Room.objects.get(pk=data['room_id'])
        except Room.DoesNotExist:
            raise serializers.ValidationError({'room_id': "Room not found"})
        if not room.is_available:
            raise RoomUnavailable("This room is currently not accepting bookings")
        if data['guests'] > room.capacity:
            raise serializers.ValidationError(
                {'guests': f"This room accommodates at most {room.capacity} guests"}
            )

        # A retried request with a known client_token is answered in create().
        token = data.get('client_token')
        if token and self._booking_for_token(token, self._requesting_user()) is not None:
            return data

        if not is_room_available(room.pk, check_in, check_out):
            raise RoomUnavailable()
        return data

    def _requesting_user(self):
        request = self.context.get('request')
        return getattr(request, 'user', None)

    def _booking_for_token(self, token, user):
        """Booking already created with this client_token; tokens never cross accounts."""
        booking = Booking.objects.filter(client_token=token).first()
        if booking is None:
            return None
        if user is not None and user.is_authenticated and booking.user_id != user.pk:
            raise serializers.ValidationError({'client_token': "This client_token is already in use"})
        return booking

    def create(self, validated):
        token = validated.get('client_token')
        user = validated['user']
        if token:
            existing = self._booking_for_token(token, user)
            if existing:
                return existing

        try:
            with transaction.atomic():
                # Lock the room so concurrent requests re-check availability one at a time.
                room = Room.objects.select_for_update().get(pk=validated['room_id'])

                # A concurrent retry may have won the lock with the same token.
                if token:
                    existing = self._booking_for_token(token, user)
                    if existing:
                        return existing

                if overlapping_bookings(validated['check_in_date'], validated['check_out_date'], room=room).exists():
                    raise RoomUnavailable()

                quote = compute_quote(
                    room.price_per_night_kobo, validated['check_in_date'], validated['check_out_date']
                )
                booking = Booking.objects.create(
                    room=room,
                    user=user,
                    check_in_date=validated['check_in_date'],
                    check_out_date=validated['check_out_date'],
                    guests=validated['guests'],
                    special_requests=validated.get('special_requests', ''),
                    client_token=token,
                    total_amount_kobo=quote.total,
                    status=Booking.Status.PENDING,
                    payment_status=Booking.PaymentStatus.PENDING,
                )
        except IntegrityError:
            existing = self._booking_for_token(token, user) if token else None
            if existing is None:
                raise
            logger.info("Booking %s already created for client_token %s", existing.pk, token)
            return existing

        logger.info(
            "Created booking %s for room %s (%s nights, %s kobo)",
            booking.pk, room.pk, quote.nights, quote.total,
        )
        return booking


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)


class ContactStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ContactMessage.Status.choices)


class StayDatesSerializer(serializers.Serializer):
    check_in = serializers.DateField()
    check_out = serializers.DateField()

    def validate(self, data):
        if data['check_out'] <= data['check_in']:
            raise InvalidDateRange()
        return data


class QuoteRequestSerializer(StayDatesSerializer):
    guests = serializers.IntegerField(min_value=1, default=1)


class ContactMessageSerializer(serializers.ModelSerializer):

    class Meta:
        model = ContactMessage
        fields = '__all__'
        read_only_fields = ('status', 'created_at')


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = ('id', 'booking', 'room', 'user', 'reviewer', 'rating', 'comment', 'created_at')
        read_only_fields = ('booking', 'room', 'user', 'created_at')

    def get_reviewer(self, obj):
        profile = getattr(obj.user, 'profile', None)
        if profile and (profile.first_name or profile.last_name):
            return f"{profile.first_name} {profile.last_name}".strip()
        return "Guest"

    def validate(self, data):
        booking = self.context['booking']
        if booking.status != Booking.Status.COMPLETED:
            raise serializers.ValidationError("Only completed stays can be reviewed")
        if Review.objects.filter(booking=booking).exists():
            raise serializers.ValidationError("This stay has already been reviewed")
        return data

    def create(self, validated):
        booking = self.context['booking']
        with transaction.atomic():
            room = Room.objects.select_for_update().get(pk=booking.room_id)
            review = Review.objects.create(booking=booking, room=room, user=booking.user, **validated)
            stats = Review.objects.filter(room=room).aggregate(avg=Avg('rating'), count=Count('id'))
            room.rating = Decimal(str(round(stats['avg'], 2)))
            room.review_count = stats['count']
            room.save(update_fields=['rating', 'review_count', 'updated_at'])
        return review


class ProfileSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)
    loyalty = serializers.SerializerMethodField()

    class Meta:
        model = Profile
        fields = (
            'first_name', 'last_name', 'email', 'phone', 'date_of_birth', 'nationality',
            'loyalty_points', 'loyalty', 'created_at', 'updated_at',
        )
        read_only_fields = ('loyalty_points', 'created_at', 'updated_at')

    def get_loyalty(self, obj):
        data = loyalty.summary(obj.loyalty_points)
        data['discount_rate'] = float(data['discount_rate'])
        data['reward_value'] = kobo_display(data['reward_value_kobo'])
        return data


class SignUpSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    first_name = serializers.CharField(required=False, allow_blank=True)
    last_name = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)

    def validate_email(self, value):
        value = value.lower()
        if get_user_model().objects.filter(username=value).exists():
            raise serializers.ValidationError("An account with this email already exists")
        return value

    def create(self, validated):
        with transaction.atomic():
            user = get_user_model().objects.create_user(
                username=validated['email'],
                email=validated['email'],
                password=validated['password'],
                first_name=validated.get('first_name', ''),
                last_name=validated.get('last_name', ''),
            )
            Profile.objects.create(
                user=user,
                first_name=validated.get('first_name', ''),
                last_name=validated.get('last_name', ''),
                phone=validated.get('phone', ''),
            )
            Token.objects.create(user=user)
        return user


class SignInSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        user = authenticate(
            request=self.context.get('request'),
            username=data['email'].lower(),
            password=data['password'],
        )
        if user is None:
            raise serializers.ValidationError("Invalid email or password")
        data['user'] = user
        return data
