from django.urls import path, re_path, include
from django.contrib import admin
from django.http import HttpResponse
from django.views.decorators.cache import never_cache
from django.conf import settings
import importlib.metadata
import json


STAGING_ROBOTS_TXT = """
User-agent: *
Disallow: /
"""

PRODUCTION_ROBOTS_TXT = """
User-agent: *
Disallow: /admin/
Disallow: /api/
"""


def robots_txt(request):
    if settings.STAGING:
        txt = STAGING_ROBOTS_TXT
    else:
        txt = PRODUCTION_ROBOTS_TXT
    return HttpResponse(txt, content_type="text/plain")


@never_cache
def versions(request):
    installed_packages = [
        (dist.metadata["Name"], dist.version)
        for dist in sorted(
            importlib.metadata.distributions(), key=lambda d: d.metadata["Name"].lower()
        )
    ]
    return HttpResponse(
        json.dumps(installed_packages, indent=4), content_type="text/plain"
    )


urlpatterns = [
    path("api/", include("feeding.urls")),
    re_path(r"^versions/$", versions),
    re_path(r"^robots\.txt$", robots_txt),
    re_path(r"^admin/", admin.site.urls),
]
if settings.DEBUG:
    try:
        import debug_toolbar

        urlpatterns = [
            re_path(r"^__debug__/", include(debug_toolbar.urls))
        ] + urlpatterns
    except ImportError:
        pass
