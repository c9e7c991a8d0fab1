from io import StringIO
from unittest import mock

from django.contrib.auth.models import User
from django.core.management import call_command
from django.db import DatabaseError
from django.db.models import Sum
from django.test import TestCase
from django.urls import reverse

from .counters import (
    feed_platypus,
    get_counts,
    get_global_count,
    get_visitor_count,
    recount_global,
)
from .factories import GlobalStatsFactory, VisitorFactory
from .models import GLOBAL_STATS_KEY, GlobalStats, Visitor
import json


class CounterStoreTests(TestCase):
    def test_unknown_visitor_has_zero_count(self):
        self.assertEqual(0, get_visitor_count("never-seen"))
        self.assertEqual(0, get_visitor_count("another-one"))
        # Reading does not create anything
        self.assertEqual(0, Visitor.objects.count())

    def test_global_count_is_zero_before_any_feeds(self):
        self.assertEqual(0, get_global_count())
        self.assertFalse(GlobalStats.objects.exists())

    def test_first_feed(self):
        feed_platypus("v1")
        self.assertEqual(1, get_visitor_count("v1"))
        self.assertEqual(1, get_global_count())
        stats = GlobalStats.objects.get()
        self.assertEqual(GLOBAL_STATS_KEY, stats.key)

    def test_two_visitors(self):
        feed_platypus("v1")
        feed_platypus("v2")
        self.assertEqual(1, get_visitor_count("v1"))
        self.assertEqual(1, get_visitor_count("v2"))
        self.assertEqual(2, get_global_count())
        self.assertEqual(2, Visitor.objects.count())
        self.assertEqual(1, GlobalStats.objects.count())

    def test_repeated_feeds_accumulate(self):
        for _ in range(7):
            feed_platypus("v1")
        self.assertEqual(7, get_visitor_count("v1"))
        self.assertEqual(1, Visitor.objects.filter(visitor_id="v1").count())

    def test_global_count_equals_sum_of_visitor_counts(self):
        for visitor_id in ("a", "b", "a", "c", "a", "b"):
            feed_platypus(visitor_id)
        self.assertEqual(3, get_visitor_count("a"))
        self.assertEqual(2, get_visitor_count("b"))
        self.assertEqual(1, get_visitor_count("c"))
        total = Visitor.objects.aggregate(total=Sum("count"))["total"]
        self.assertEqual(total, get_global_count())

    def test_visitor_ids_are_opaque(self):
        odd_id = "  weird id ✨ with/slashes?  "
        feed_platypus(odd_id)
        self.assertEqual(1, get_visitor_count(odd_id))
        self.assertEqual(0, get_visitor_count(odd_id.strip()))

    def test_long_visitor_ids_are_stored_whole(self):
        long_id = "v" * 1000
        feed_platypus(long_id)
        feed_platypus(long_id)
        self.assertEqual(2, get_visitor_count(long_id))
        self.assertEqual(0, get_visitor_count(long_id[:-1]))

    def test_feed_bumps_updated_timestamp(self):
        feed_platypus("v1")
        before = Visitor.objects.get(visitor_id="v1").updated
        feed_platypus("v1")
        self.assertGreaterEqual(Visitor.objects.get(visitor_id="v1").updated, before)

    def test_failed_global_update_leaves_visitor_untouched(self):
        feed_platypus("v1")
        with mock.patch.object(
            GlobalStats.objects, "get_or_create", side_effect=DatabaseError("boom")
        ):
            with self.assertRaises(DatabaseError):
                feed_platypus("v1")
        self.assertEqual(1, get_visitor_count("v1"))
        self.assertEqual(1, get_global_count())

    def test_get_counts(self):
        feed_platypus("v1")
        feed_platypus("v2")
        self.assertEqual({"globalCount": 2}, get_counts())
        self.assertEqual({"globalCount": 2, "visitorCount": 1}, get_counts("v1"))
        self.assertEqual({"globalCount": 2, "visitorCount": 0}, get_counts("v3"))

    def test_recount_global(self):
        VisitorFactory(visitor_id="x", count=5)
        VisitorFactory(visitor_id="y", count=3)
        GlobalStatsFactory(total_feeds=2)
        self.assertEqual((2, 8), recount_global())
        self.assertEqual(8, get_global_count())
        # Running again is a no-op
        self.assertEqual((8, 8), recount_global())

    def test_recount_global_creates_singleton(self):
        VisitorFactory(visitor_id="x", count=4)
        self.assertEqual((0, 4), recount_global())
        self.assertEqual(4, get_global_count())


class FeedingApiTests(TestCase):
    def test_global_count(self):
        response = self.client.get("/api/global-count/")
        self.assertEqual(200, response.status_code)
        self.assertEqual({"globalCount": 0}, response.json())
        feed_platypus("v1")
        response = self.client.get(reverse("feeding:global_count"))
        self.assertEqual({"globalCount": 1}, response.json())

    def test_visitor_count(self):
        feed_platypus("abc-123")
        feed_platypus("abc-123")
        response = self.client.get("/api/visitors/abc-123/count/")
        self.assertEqual(200, response.status_code)
        self.assertEqual({"visitorId": "abc-123", "count": 2}, response.json())
        response = self.client.get("/api/visitors/unknown/count/")
        self.assertEqual({"visitorId": "unknown", "count": 0}, response.json())

    def test_visitor_id_with_slashes_round_trips(self):
        response = self.client.post("/api/feed/", {"visitorId": "a/b"})
        self.assertEqual(200, response.status_code)
        response = self.client.get("/api/visitors/a/b/count/")
        self.assertEqual(200, response.status_code)
        self.assertEqual({"visitorId": "a/b", "count": 1}, response.json())
        response = self.client.get("/api/visitors/a%2Fb/count/")
        self.assertEqual({"visitorId": "a/b", "count": 1}, response.json())

    def test_long_visitor_id(self):
        long_id = "x" * 500
        response = self.client.post("/api/feed/", {"visitorId": long_id})
        self.assertEqual(200, response.status_code)
        response = self.client.get("/api/visitors/{}/count/".format(long_id))
        self.assertEqual({"visitorId": long_id, "count": 1}, response.json())

    def test_counts(self):
        feed_platypus("v1")
        response = self.client.get("/api/counts/")
        self.assertEqual({"globalCount": 1}, response.json())
        response = self.client.get("/api/counts/", {"visitorId": "v1"})
        self.assertEqual({"globalCount": 1, "visitorCount": 1}, response.json())
        response = self.client.get("/api/counts/", {"visitorId": ""})
        self.assertEqual(400, response.status_code)

    def test_feed_with_form_data(self):
        response = self.client.post("/api/feed/", {"visitorId": "v1"})
        self.assertEqual(200, response.status_code)
        self.assertEqual(
            {"success": True, "visitorCount": 1, "globalCount": 1}, response.json()
        )
        response = self.client.post("/api/feed/", {"visitorId": "v2"})
        self.assertEqual(
            {"success": True, "visitorCount": 1, "globalCount": 2}, response.json()
        )

    def test_feed_with_json_body(self):
        for expected in (1, 2, 3):
            response = self.client.post(
                "/api/feed/",
                json.dumps({"visitorId": "json-visitor"}),
                content_type="application/json",
            )
            self.assertEqual(200, response.status_code)
            self.assertEqual(expected, response.json()["visitorCount"])
        self.assertEqual(3, get_global_count())

    def test_feed_does_not_need_csrf_token(self):
        self.client = self.client_class(enforce_csrf_checks=True)
        response = self.client.post("/api/feed/", {"visitorId": "v1"})
        self.assertEqual(200, response.status_code)

    def test_whitespace_visitor_id_is_accepted(self):
        response = self.client.post("/api/feed/", {"visitorId": "   "})
        self.assertEqual(200, response.status_code)
        self.assertEqual(
            {"success": True, "visitorCount": 1, "globalCount": 1}, response.json()
        )
        self.assertEqual(1, get_visitor_count("   "))
        self.assertEqual(0, get_visitor_count(" "))

    def test_feed_validation_errors(self):
        for kwargs, error in (
            ({"data": {}}, "Missing visitorId"),
            ({"data": {"visitorId": ""}}, "Missing visitorId"),
            (
                {"data": "{not json", "content_type": "application/json"},
                "Invalid JSON",
            ),
            (
                {"data": "[1, 2]", "content_type": "application/json"},
                "Invalid JSON",
            ),
            (
                {"data": json.dumps({"visitorId": 5}), "content_type": "application/json"},
                "Missing visitorId",
            ),
        ):
            response = self.client.post("/api/feed/", **kwargs)
            self.assertEqual(400, response.status_code)
            self.assertEqual({"error": error}, response.json())
        self.assertEqual(0, get_global_count())
        self.assertEqual(0, Visitor.objects.count())

    def test_feed_requires_post(self):
        response = self.client.get("/api/feed/", {"visitorId": "v1"})
        self.assertEqual(405, response.status_code)
        self.assertEqual(0, get_global_count())

    def test_read_endpoints_require_get(self):
        response = self.client.post("/api/global-count/")
        self.assertEqual(405, response.status_code)

    def test_responses_are_not_cached(self):
        for response in (
            self.client.get("/api/global-count/"),
            self.client.get("/api/visitors/v1/count/"),
            self.client.post("/api/feed/", {"visitorId": "v1"}),
        ):
            self.assertIn("no-cache", response["Cache-Control"])


class FeedingAdminTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_superuser("admin", "admin@example.com", "pw")
        self.client.force_login(self.user)

    def test_visitor_changelist(self):
        VisitorFactory(visitor_id="top-feeder", count=42)
        response = self.client.get("/admin/feeding/visitor/")
        self.assertEqual(200, response.status_code)
        self.assertContains(response, "top-feeder")

    def test_global_stats_changelist(self):
        feed_platypus("v1")
        response = self.client.get("/admin/feeding/globalstats/")
        self.assertEqual(200, response.status_code)


class FeedingCommandTests(TestCase):
    def call(self, name):
        out = StringIO()
        call_command(name, stdout=out)
        return out.getvalue()

    def test_feeding_stats_consistent(self):
        feed_platypus("v1")
        feed_platypus("v1")
        feed_platypus("v2")
        output = self.call("feeding_stats")
        self.assertIn("Global feeds: 3", output)
        self.assertIn("Visitors: 2", output)
        self.assertIn("Sum of visitor feeds: 3", output)
        self.assertIn("Counts are consistent.", output)

    def test_feeding_stats_empty(self):
        output = self.call("feeding_stats")
        self.assertIn("Global feeds: 0", output)
        self.assertIn("Counts are consistent.", output)

    def test_feeding_stats_warns_on_mismatch(self):
        VisitorFactory(visitor_id="x", count=5)
        GlobalStatsFactory(total_feeds=7)
        output = self.call("feeding_stats")
        self.assertIn("Global count is off by 2", output)

    def test_recount_feeds(self):
        VisitorFactory(visitor_id="x", count=5)
        GlobalStatsFactory(total_feeds=7)
        output = self.call("recount_feeds")
        self.assertIn("Global count changed from 7 to 5", output)
        self.assertEqual(5, get_global_count())
        output = self.call("recount_feeds")
        self.assertIn("Global count already correct: 5", output)
