from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from .counters import feed_platypus, get_counts, get_global_count, get_visitor_count
import json


def bad_request(message):
    return JsonResponse({"error": message}, status=400)


def validate_visitor_id(visitor_id):
    "Returns an error message, or None if visitor_id is usable"
    if not isinstance(visitor_id, str) or not visitor_id:
        return "Missing visitorId"
    return None


@never_cache
@require_GET
def global_count(request):
    return JsonResponse({"globalCount": get_global_count()})


@never_cache
@require_GET
def visitor_count(request, visitor_id):
    error = validate_visitor_id(visitor_id)
    if error:
        return bad_request(error)
    return JsonResponse(
        {
            "visitorId": visitor_id,
            "count": get_visitor_count(visitor_id),
        }
    )


@never_cache
@require_GET
def counts(request):
    visitor_id = request.GET.get("visitorId")
    if visitor_id is not None:
        error = validate_visitor_id(visitor_id)
        if error:
            return bad_request(error)
    return JsonResponse(get_counts(visitor_id))


@never_cache
@csrf_exempt
@require_POST
def feed(request):
    """
    Called by the page every time the ball is dropped on the platypus.
    Accepts visitorId as a form field or as a key in a JSON object body.
    """
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            return bad_request("Invalid JSON")
        if not isinstance(data, dict):
            return bad_request("Invalid JSON")
        visitor_id = data.get("visitorId")
    else:
        visitor_id = request.POST.get("visitorId")

    error = validate_visitor_id(visitor_id)
    if error:
        return bad_request(error)

    feed_platypus(visitor_id)

    return JsonResponse(
        {
            "success": True,
            "visitorCount": get_visitor_count(visitor_id),
            "globalCount": get_global_count(),
        }
    )
