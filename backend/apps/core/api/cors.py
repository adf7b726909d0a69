from django.conf import settings
from django.http import HttpResponse


class MillCORSMiddleware:
    allow_methods = "GET, POST, PATCH, DELETE, OPTIONS"
    allow_headers = "Content-Type, X-API-Key, Idempotency-Key"
    expose_headers = "Idempotent-Replayed"
    max_age = "600"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        origin = self._allowed_origin(request.headers.get("Origin"))
        preflight = request.method == "OPTIONS" and "Access-Control-Request-Method" in request.headers

        response = HttpResponse(status=204) if preflight else self.get_response(request)
        if not origin:
            return response

        response["Access-Control-Allow-Origin"] = origin
        response["Vary"] = "Origin"
        response["Access-Control-Expose-Headers"] = self.expose_headers
        if preflight:
            response["Access-Control-Allow-Methods"] = self.allow_methods
            response["Access-Control-Allow-Headers"] = self.allow_headers
            response["Access-Control-Max-Age"] = self.max_age
        return response

    def _allowed_origin(self, origin: str | None) -> str | None:
        if not origin:
            return None
        if settings.DEBUG or origin in settings.CORS_ALLOWED_ORIGINS:
            return origin
        return None
