import logging
from datetime import datetime

from django.contrib.auth import login, logout
from django.db import DatabaseError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from rest_framework import generics, mixins, serializers, status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .availability import available_rooms_qs, is_room_available
from .exceptions import InvalidTransition, ReferentialConflict
from .lifecycle import cancel_booking, record_payment, set_booking_status, set_contact_status
from .models import AdminUser, Booking, ContactMessage, Profile, Room
from .payments import SimulatedPaymentGateway, run_charge
from .permissions import IsHotelAdmin, IsHotelAdminOrReadOnly, is_admin
from .pricing import compute_quote
from .serializers import (
    BookingSerializer,
    BookingStatusSerializer,
    ContactMessageSerializer,
    ContactStatusSerializer,
    ProfileSerializer,
    QuoteRequestSerializer,
    ReviewSerializer,
    RoomSerializer,
    SignInSerializer,
    SignUpSerializer,
    StayDatesSerializer,
    kobo_display,
)

logger = logging.getLogger(__name__)

# Nightly price bands in kobo, as offered by the room catalog filters.
PRICE_RANGES = {
    'budget': (None, 4_000_000),
    'mid': (4_000_000, 7_000_000),
    'luxury': (7_000_000, None),
}

ROOM_ORDERINGS = {
    'price': ('price_per_night_kobo', 'id'),
    'rating': ('-rating', 'id'),
    'capacity': ('-capacity', 'id'),
}


def welcome(request):
    return JsonResponse({"message": "Welcome to Dugbe Stays"})


def health_check(request):
    return JsonResponse({"status": "ok"})


class RoomViewSet(viewsets.ModelViewSet):
    queryset = Room.objects.all()
    serializer_class = RoomSerializer
    permission_classes = [IsHotelAdminOrReadOnly]

    def list(self, request):
        """Search rooms with catalog filters and optional stay dates"""
        params = request.query_params
        # Disabled rooms stay visible to admins only.
        rooms = Room.objects.all() if is_admin(request) else Room.objects.filter(is_available=True)

        check_in_str = params.get('check_in')
        check_out_str = params.get('check_out')
        if check_in_str and check_out_str:
            try:
                check_in = datetime.strptime(check_in_str, '%Y-%m-%d').date()
                check_out = datetime.strptime(check_out_str, '%Y-%m-%d').date()
            except ValueError:
                return Response({'error': 'Invalid date format. Use YYYY-MM-DD'},
                                status=status.HTTP_400_BAD_REQUEST)
            if check_out <= check_in:
                return Response({'error': 'check_out must be after check_in'},
                                status=status.HTTP_400_BAD_REQUEST)
            rooms = available_rooms_qs(check_in, check_out, queryset=rooms)

        room_type = params.get('room_type')
        if room_type and room_type != 'all':
            rooms = rooms.filter(room_type=room_type)

        price_range = params.get('price_range')
        if price_range and price_range != 'all':
            if price_range not in PRICE_RANGES:
                return Response({'error': f"price_range must be one of {', '.join(PRICE_RANGES)}"},
                                status=status.HTTP_400_BAD_REQUEST)
            low, high = PRICE_RANGES[price_range]
            if low is not None:
                rooms = rooms.filter(price_per_night_kobo__gt=low)
            if high is not None:
                rooms = rooms.filter(price_per_night_kobo__lte=high)

        try:
            max_price = params.get('max_price')
            if max_price:
                rooms = rooms.filter(price_per_night_kobo__lte=int(max_price) * 100)
            guests = params.get('guests')
            if guests:
                rooms = rooms.filter(capacity__gte=int(guests))
        except ValueError:
            return Response({'error': 'max_price and guests must be whole numbers'},
                            status=status.HTTP_400_BAD_REQUEST)

        ordering = ROOM_ORDERINGS.get(params.get('ordering', 'price'), ROOM_ORDERINGS['price'])
        serializer = self.get_serializer(rooms.order_by(*ordering), many=True)
        return Response(serializer.data)

    def destroy(self, request, *args, **kwargs):
        room = self.get_object()
        if room.bookings.exists():
            raise ReferentialConflict()
        room.delete()
        logger.info("Deleted room %s", room.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], permission_classes=[AllowAny])
    def quote(self, request, pk=None):
        """Price a prospective stay without creating a booking"""
        room = self.get_object()
        query = QuoteRequestSerializer(data=request.data)
        query.is_valid(raise_exception=True)
        if query.validated_data['guests'] > room.capacity:
            raise serializers.ValidationError(
                {'guests': f"This room accommodates at most {room.capacity} guests"}
            )

        quote = compute_quote(
            room.price_per_night_kobo,
            query.validated_data['check_in'],
            query.validated_data['check_out'],
        )
        data = quote.as_dict()
        data.update({
            'room_id': room.id,
            'price_per_night_kobo': room.price_per_night_kobo,
            'total_amount': kobo_display(quote.total),
        })
        return Response(data)

    @action(detail=True, methods=['get'], permission_classes=[AllowAny])
    def availability(self, request, pk=None):
        room = self.get_object()
        query = StayDatesSerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        available = room.is_available and is_room_available(
            room.pk, query.validated_data['check_in'], query.validated_data['check_out']
        )
        return Response({'room_id': room.id, 'available': available})

    @action(detail=True, methods=['get'], permission_classes=[AllowAny])
    def reviews(self, request, pk=None):
        """Room reviews; a failed fetch degrades to an empty list"""
        room = self.get_object()
        try:
            reviews = list(room.reviews.select_related('user__profile'))
        except DatabaseError:
            logger.warning("Could not fetch reviews for room %s", room.pk, exc_info=True)
            reviews = []
        return Response(ReviewSerializer(reviews, many=True).data)


class BookingViewSet(mixins.CreateModelMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated]
    payment_gateway_class = SimulatedPaymentGateway

    def get_queryset(self):
        qs = Booking.objects.select_related('room')
        if is_admin(self.request):
            booking_status = self.request.query_params.get('status')
            if booking_status:
                qs = qs.filter(status=booking_status)
            return qs
        return qs.filter(user=self.request.user)

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)

    def _own_booking(self, pk):
        return get_object_or_404(Booking, pk=pk, user=self.request.user)

    @action(detail=True, methods=['post'], permission_classes=[IsHotelAdmin])
    def status(self, request, pk=None):
        """Admin moderation of the booking lifecycle"""
        booking = self.get_object()
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = set_booking_status(booking.pk, serializer.validated_data['status'])
        return Response(self.get_serializer(booking).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Guest cancellation of their own booking"""
        booking = self._own_booking(pk)
        booking = cancel_booking(booking.pk, request.user)
        return Response(self.get_serializer(booking).data)

    @action(detail=True, methods=['post'])
    def pay(self, request, pk=None):
        """Run the payment for a booking and mirror the gateway's result"""
        booking = self._own_booking(pk)
        if booking.is_terminal or booking.payment_status not in (
            Booking.PaymentStatus.PENDING, Booking.PaymentStatus.FAILED
        ):
            raise InvalidTransition(
                booking.payment_status,
                Booking.PaymentStatus.PAID,
                detail="This booking is not awaiting payment",
            )

        # The simulated gateway can be told to decline for testing flows.
        succeed = request.data.get('success', True) not in (False, 'false', 'False', '0', 0)
        result = run_charge(
            self.payment_gateway_class(),
            booking.total_amount_kobo,
            reference=request.data.get('reference') or None,
            succeed=succeed,
        )
        booking = record_payment(booking.pk, result)
        message = result.message
        if booking.payment_status == Booking.PaymentStatus.REFUNDED:
            message = "Booking was cancelled during payment; the charge has been refunded"
        return Response({
            'booking_id': booking.id,
            'payment_status': booking.payment_status,
            'payment_reference': booking.payment_reference,
            'amount': kobo_display(booking.total_amount_kobo),
            'message': message,
        })

    @action(detail=True, methods=['post'])
    def review(self, request, pk=None):
        booking = self._own_booking(pk)
        serializer = ReviewSerializer(data=request.data, context={'booking': booking})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class ContactMessageViewSet(mixins.CreateModelMixin,
                            mixins.ListModelMixin,
                            mixins.RetrieveModelMixin,
                            viewsets.GenericViewSet):
    queryset = ContactMessage.objects.all()
    serializer_class = ContactMessageSerializer

    def get_permissions(self):
        if self.action == 'create':
            return [AllowAny()]
        return [IsHotelAdmin()]

    def perform_create(self, serializer):
        message = serializer.save()
        logger.info("Received contact message %s", message.pk)

    @action(detail=True, methods=['post'])
    def status(self, request, pk=None):
        message = self.get_object()
        serializer = ContactStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = set_contact_status(message.pk, serializer.validated_data['status'])
        return Response(self.get_serializer(message).data)


class ProfileView(generics.RetrieveUpdateAPIView):
    serializer_class = ProfileSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'patch', 'head', 'options']

    def get_object(self):
        profile, _ = Profile.objects.get_or_create(user=self.request.user)
        return profile


def _session_payload(user, token):
    return {
        'token': token.key,
        'user_id': user.id,
        'email': user.email,
        'is_admin': AdminUser.objects.filter(user=user).exists(),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def sign_up(request):
    serializer = SignUpSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info("New account %s", user.pk)
    return Response(_session_payload(user, user.auth_token), status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def sign_in(request):
    serializer = SignInSerializer(data=request.data, context={'request': request})
    serializer.is_valid(raise_exception=True)
    user = serializer.validated_data['user']
    token, _ = Token.objects.get_or_create(user=user)
    login(request._request, user)
    return Response(_session_payload(user, token))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sign_out(request):
    Token.objects.filter(user=request.user).delete()
    logout(request._request)
    return Response(status=status.HTTP_204_NO_CONTENT)
