from django.urls import path
from . import views

app_name = "feeding"

urlpatterns = [
    path("global-count/", views.global_count, name="global_count"),
    path("visitors/<path:visitor_id>/count/", views.visitor_count, name="visitor_count"),
    path("counts/", views.counts, name="counts"),
    path("feed/", views.feed, name="feed"),
]
