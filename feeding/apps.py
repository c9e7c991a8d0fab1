from django.apps import AppConfig


class FeedingConfig(AppConfig):
    name = "feeding"
