import logging

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from .models import GLOBAL_STATS_KEY, GlobalStats, Visitor

logger = logging.getLogger(__name__)


def get_global_count():
    return (
        GlobalStats.objects.filter(key=GLOBAL_STATS_KEY)
        .values_list("total_feeds", flat=True)
        .first()
        or 0
    )


def get_visitor_count(visitor_id):
    return (
        Visitor.objects.filter(visitor_id=visitor_id)
        .values_list("count", flat=True)
        .first()
        or 0
    )


def get_counts(visitor_id=None):
    counts = {"globalCount": get_global_count()}
    if visitor_id:
        counts["visitorCount"] = get_visitor_count(visitor_id)
    return counts


def _increment(model, lookup, field):
    """
    Create the row with field=1, or bump field by one in the database.

    get_or_create copes with two requests racing to insert the first row;
    the update is a single UPDATE ... SET field = field + 1 so concurrent
    increments are never lost.
    """
    obj, created = model.objects.get_or_create(defaults={field: 1}, **lookup)
    if created:
        logger.info("Created %s %s", model.__name__, lookup)
        return
    model.objects.filter(pk=obj.pk).update(
        **{field: F(field) + 1, "updated": timezone.now()}
    )


def feed_platypus(visitor_id):
    "Record one feed for visitor_id, bumping their count and the global total"
    with transaction.atomic():
        _increment(Visitor, {"visitor_id": visitor_id}, "count")
        _increment(GlobalStats, {"key": GLOBAL_STATS_KEY}, "total_feeds")
    logger.debug("Fed platypus for visitor %s", visitor_id)


def recount_global():
    """
    Reset the global total to the sum of every visitor's count.

    Returns (old_total, new_total).
    """
    with transaction.atomic():
        stats, _ = GlobalStats.objects.select_for_update().get_or_create(
            key=GLOBAL_STATS_KEY
        )
        old_total = stats.total_feeds
        new_total = Visitor.objects.aggregate(total=Sum("count"))["total"] or 0
        if old_total != new_total:
            stats.total_feeds = new_total
            stats.save()
            logger.warning(
                "Global feed count was %d, reset to %d", old_total, new_total
            )
    return old_total, new_total
