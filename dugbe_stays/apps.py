from django.apps import AppConfig


class DugbeStaysConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'dugbe_stays'
    verbose_name = 'Dugbe Stays'
