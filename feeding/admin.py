from django.contrib import admin
from .models import GlobalStats, Visitor

admin.site.register(
    Visitor,
    list_display=("visitor_id", "count", "created", "updated"),
    search_fields=("visitor_id",),
    ordering=("-count",),
)
admin.site.register(GlobalStats, list_display=("key", "total_feeds", "updated"))
