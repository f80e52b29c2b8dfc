from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q


class Room(models.Model):
    class RoomType(models.TextChoices):
        STANDARD = "standard"
        DELUXE = "deluxe"
        SUITE = "suite"
        FAMILY = "family"
        BUSINESS = "business"
        PRESIDENTIAL = "presidential"

    name = models.CharField(max_length=150)
    room_type = models.CharField(max_length=20, choices=RoomType.choices)
    description = models.TextField(blank=True)
    price_per_night_kobo = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    original_price_kobo = models.PositiveIntegerField(null=True, blank=True)
    capacity = models.PositiveIntegerField(default=2, validators=[MinValueValidator(1)])
    amenities = models.JSONField(default=list, blank=True)
    beds = models.CharField(max_length=100, blank=True)
    bathrooms = models.PositiveIntegerField(null=True, blank=True)
    size_sqm = models.PositiveIntegerField(null=True, blank=True)
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    review_count = models.PositiveIntegerField(default=0)
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["price_per_night_kobo", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(original_price_kobo__isnull=True)
                | Q(original_price_kobo__gte=F("price_per_night_kobo")),
                name="room_original_price_not_below_price",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.room_type})"


class Booking(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        CANCELLED = "cancelled"
        COMPLETED = "completed"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending"
        PAID = "paid"
        FAILED = "failed"
        REFUNDED = "refunded"

    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name="bookings")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="bookings"
    )
    check_in_date = models.DateField()
    check_out_date = models.DateField()  # exclusive
    guests = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    total_amount_kobo = models.PositiveIntegerField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    payment_reference = models.CharField(max_length=100, blank=True)
    special_requests = models.TextField(blank=True)
    client_token = models.UUIDField(null=True, blank=True, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(check_out_date__gt=F("check_in_date")),
                name="booking_check_out_after_check_in",
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk} - {self.room_id} ({self.status})"

    @property
    def nights(self):
        return (self.check_out_date - self.check_in_date).days

    @property
    def is_terminal(self):
        return self.status in (self.Status.CANCELLED, self.Status.COMPLETED)


class ContactMessage(models.Model):
    class Status(models.TextChoices):
        NEW = "new"
        REPLIED = "replied"
        RESOLVED = "resolved"

    name = models.CharField(max_length=150)
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True)
    subject = models.CharField(max_length=200)
    message = models.TextField()
    inquiry_type = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.NEW)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Message from {self.name} - {self.subject}"


class Profile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile"
    )
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    nationality = models.CharField(max_length=100, blank=True)
    loyalty_points = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Profile of {self.user}"


class AdminUser(models.Model):
    """Presence of a row grants admin access to its user."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="admin_record"
    )
    role = models.CharField(max_length=50, default="admin")
    permissions = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} ({self.role})"


class Review(models.Model):
    booking = models.OneToOneField(Booking, on_delete=models.CASCADE, related_name="review")
    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name="reviews")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reviews"
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"Review of {self.room_id} by {self.user_id}: {self.rating}"
