import json

from django.test import TestCase, override_settings


class ConfigTests(TestCase):
    def test_robots_txt(self):
        response = self.client.get("/robots.txt")
        self.assertEqual(200, response.status_code)
        self.assertEqual("text/plain", response["Content-Type"])
        self.assertIn(b"Disallow: /api/", response.content)

    @override_settings(STAGING=True)
    def test_robots_txt_staging(self):
        response = self.client.get("/robots.txt")
        self.assertNotIn(b"/api/", response.content)
        self.assertIn(b"Disallow: /", response.content)

    def test_versions(self):
        response = self.client.get("/versions/")
        self.assertEqual(200, response.status_code)
        names = [name.lower() for name, version in json.loads(response.content)]
        self.assertIn("django", names)
