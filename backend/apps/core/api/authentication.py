import hmac
import logging

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication, exceptions

logger = logging.getLogger(__name__)


class ApiKeyAuthentication(authentication.BaseAuthentication):
    keyword = "X-API-Key"

    def authenticate(self, request):
        api_key = request.headers.get(self.keyword)
        if not api_key:
            return None

        if not any(hmac.compare_digest(api_key, known) for known in settings.MILLOPS_API_KEYS):
            logger.warning("Rejected API key on %s %s", request.method, request.path)
            raise exceptions.AuthenticationFailed("Unknown API key.")

        return (AnonymousUser(), api_key)

    def authenticate_header(self, request):
        return self.keyword
