from django.core.management.base import BaseCommand

from dugbe_stays.models import Room
from dugbe_stays.pricing import naira_to_kobo


class Command(BaseCommand):
    help = 'Populate database with the Dugbe Stays room catalog'

    def handle(self, *args, **options):
        rooms_data = [
            {
                'name': 'Standard Room',
                'room_type': Room.RoomType.STANDARD,
                'price_per_night_kobo': naira_to_kobo(35000),
                'original_price_kobo': naira_to_kobo(40000),
                'capacity': 2,
                'beds': '1 Queen Bed',
                'size_sqm': 25,
                'amenities': ['Free WiFi', 'Air Conditioning', 'Smart TV', 'Work Desk'],
                'description': 'Comfortable room with modern amenities, perfect for business or leisure travelers.',
            },
            {
                'name': 'Deluxe Room',
                'room_type': Room.RoomType.DELUXE,
                'price_per_night_kobo': naira_to_kobo(45000),
                'original_price_kobo': naira_to_kobo(50000),
                'capacity': 2,
                'beds': '1 King Bed',
                'size_sqm': 32,
                'amenities': ['Free WiFi', 'Air Conditioning', 'Mini Bar', 'City View'],
                'description': 'Spacious room with premium furnishings and city views.',
            },
            {
                'name': 'Executive Suite',
                'room_type': Room.RoomType.SUITE,
                'price_per_night_kobo': naira_to_kobo(75000),
                'capacity': 3,
                'beds': '1 King Bed + Sofa Bed',
                'size_sqm': 55,
                'amenities': ['Free WiFi', 'Living Area', 'Mini Bar', 'Room Service'],
                'description': 'Separate living area with premium amenities for an elevated stay.',
            },
            {
                'name': 'Family Room',
                'room_type': Room.RoomType.FAMILY,
                'price_per_night_kobo': naira_to_kobo(65000),
                'capacity': 5,
                'beds': '2 Queen Beds',
                'size_sqm': 48,
                'amenities': ['Free WiFi', 'Air Conditioning', 'Smart TV', 'Kitchenette'],
                'description': 'Generous space for families, with room for everyone to relax.',
            },
            {
                'name': 'Presidential Suite',
                'room_type': Room.RoomType.PRESIDENTIAL,
                'price_per_night_kobo': naira_to_kobo(120000),
                'capacity': 4,
                'beds': '1 King Bed + 1 Queen Bed',
                'size_sqm': 95,
                'amenities': ['Free WiFi', 'Butler Service', 'Jacuzzi', 'Private Lounge'],
                'description': 'Our most luxurious accommodation with exclusive services.',
            },
            {
                'name': 'Business Room',
                'room_type': Room.RoomType.BUSINESS,
                'price_per_night_kobo': naira_to_kobo(55000),
                'capacity': 2,
                'beds': '1 King Bed',
                'size_sqm': 30,
                'amenities': ['Free WiFi', 'Work Desk', 'Printer Access', 'Express Check-in'],
                'description': 'Designed for business travelers with dedicated workspace.',
            },
        ]

        for room_data in rooms_data:
            room, created = Room.objects.get_or_create(
                name=room_data['name'],
                defaults=room_data
            )

            if created:
                self.stdout.write(f'Created room: {room.name} - {room.room_type}')
            else:
                self.stdout.write(f'Room {room.name} already exists')

        self.stdout.write(
            self.style.SUCCESS('Successfully populated database with sample data')
        )
