from django.contrib import admin

from .models import AdminUser, Booking, ContactMessage, Profile, Review, Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('name', 'room_type', 'price_per_night_kobo', 'capacity', 'is_available')
    list_filter = ('room_type', 'is_available')
    search_fields = ('name',)


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('id', 'room', 'user', 'check_in_date', 'check_out_date', 'status', 'payment_status')
    list_filter = ('status', 'payment_status')
    # Lifecycle changes go through the moderation endpoints.
    readonly_fields = ('status', 'payment_status', 'total_amount_kobo', 'created_at', 'updated_at')


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'subject', 'status', 'created_at')
    list_filter = ('status',)
    readonly_fields = ('status',)


admin.site.register(Profile)
admin.site.register(AdminUser)
admin.site.register(Review)
