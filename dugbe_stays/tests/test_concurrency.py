import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed

from django.db import connection
from django.test import TransactionTestCase

from dugbe_stays.availability import available_rooms_qs
from dugbe_stays.models import Booking
from dugbe_stays.serializers import BookingSerializer

from .helpers import days_from_today, make_room, make_user


class RaceConditionTestCase(TransactionTestCase):
    """Test race conditions in booking creation"""

    def setUp(self):
        self.room = make_room(name="Standard 101", price_naira=35000, capacity=2)
        self.guest = make_user()
        self.check_in = days_from_today(1)
        self.check_out = days_from_today(3)

    def create_booking(self, room_id, client_token=None):
        try:
            serializer = BookingSerializer(data={
                'room_id': room_id,
                'check_in_date': self.check_in,
                'check_out_date': self.check_out,
                'client_token': client_token or str(uuid.uuid4()),
            })
            if serializer.is_valid():
                booking = serializer.save(user=self.guest)
                return {'success': True, 'booking_id': booking.id}
            return {'success': False, 'errors': serializer.errors}
        except Exception as e:
            return {'success': False, 'error': str(e)}
        finally:
            connection.close()

    def test_concurrent_booking_attempts_race_condition(self):
        """Concurrent attempts for the same room and dates produce exactly one booking"""
        num_attempts = 5

        with ThreadPoolExecutor(max_workers=num_attempts) as executor:
            futures = [executor.submit(self.create_booking, self.room.id) for _ in range(num_attempts)]
            results = [future.result() for future in as_completed(futures)]

        successful_bookings = [r for r in results if r['success']]
        self.assertEqual(len(successful_bookings), 1,
                         f"Expected exactly 1 successful booking, got {len(successful_bookings)}")
        self.assertEqual(
            Booking.objects.filter(room=self.room, check_in_date=self.check_in).count(), 1
        )

    def test_concurrent_room_availability_check(self):
        """Bookings never exceed the number of rooms free for the dates"""
        for number in range(2, 5):
            make_room(name=f"Standard 10{number}", price_naira=35000, capacity=2)

        def book_any_available_room():
            room = available_rooms_qs(self.check_in, self.check_out).first()
            if room is None:
                connection.close()
                return {'success': False, 'error': 'No rooms available'}
            return self.create_booking(room.id)

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(book_any_available_room) for _ in range(10)]
            results = [future.result() for future in as_completed(futures)]

        successful_bookings = [r for r in results if r['success']]
        self.assertLessEqual(len(successful_bookings), 4,
                             "More bookings succeeded than rooms available")

    def test_concurrent_retries_with_one_client_token_share_a_booking(self):
        """Simultaneous retries of one checkout all receive the booking that won"""
        client_token = str(uuid.uuid4())

        with ThreadPoolExecutor(max_workers=5) as executor:
            futures = [executor.submit(self.create_booking, self.room.id, client_token) for _ in range(5)]
            results = [future.result() for future in as_completed(futures)]

        self.assertTrue(all(r['success'] for r in results), results)
        booking = Booking.objects.get(client_token=client_token)
        self.assertEqual({r['booking_id'] for r in results}, {booking.id})
