from django.db import models

GLOBAL_STATS_KEY = "global"


class Visitor(models.Model):
    visitor_id = models.TextField(unique=True)
    count = models.PositiveIntegerField(default=0)
    created = models.DateTimeField(auto_now_add=True)
    updated = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-count",)

    def __str__(self):
        return "%s (%d)" % (self.visitor_id, self.count)


class GlobalStats(models.Model):
    # Only ever one row, stored under GLOBAL_STATS_KEY
    key = models.CharField(max_length=32, primary_key=True, default=GLOBAL_STATS_KEY)
    total_feeds = models.PositiveIntegerField(default=0)
    updated = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "global stats"

    def __str__(self):
        return "%d feeds" % self.total_feeds
