from django.urls import path
from rest_framework.routers import DefaultRouter

from dugbe_stays.views import (
    BookingViewSet,
    ContactMessageViewSet,
    ProfileView,
    RoomViewSet,
    sign_in,
    sign_out,
    sign_up,
)

router = DefaultRouter()
router.register(r'rooms', RoomViewSet)
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'contact', ContactMessageViewSet)

urlpatterns = [
    path('profile/', ProfileView.as_view(), name='profile'),
    path('auth/sign-up/', sign_up, name='sign-up'),
    path('auth/sign-in/', sign_in, name='sign-in'),
    path('auth/sign-out/', sign_out, name='sign-out'),
] + router.urls
