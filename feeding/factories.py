import factory
import factory.django
import factory.fuzzy

from .models import GLOBAL_STATS_KEY


class VisitorFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = "feeding.Visitor"
        django_get_or_create = ("visitor_id",)

    visitor_id = factory.Faker("uuid4")
    count = factory.fuzzy.FuzzyInteger(1, 50)


class GlobalStatsFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = "feeding.GlobalStats"
        django_get_or_create = ("key",)

    key = GLOBAL_STATS_KEY
    total_feeds = 0
