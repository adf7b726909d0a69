from django.db import transaction
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.core import idempotency


class IdempotentCreateMixin:
    """``create`` that posts a stock document once per Idempotency-Key.

    A repeated key answers with the stored response and an
    ``Idempotent-Replayed: true`` header.
    """

    idempotency_source = "api"
    idempotency_operation = None

    def create(self, request, *args, **kwargs):
        key = request.headers.get("Idempotency-Key")
        if not key:
            raise ValidationError({"idempotency_key": ["Idempotency-Key header is required."]})

        record, replay = idempotency.claim(self.idempotency_source, self.idempotency_operation, key, request.data)
        if replay:
            return Response(
                record.result.get("data", {}),
                status=record.result.get("status_code", status.HTTP_200_OK),
                headers={"Idempotent-Replayed": "true"},
            )

        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            idempotency.fail(record, status.HTTP_400_BAD_REQUEST, serializer.errors)
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            with transaction.atomic():
                instance = serializer.save()
                data = self.get_serializer(instance).data
                idempotency.finish(record, status.HTTP_201_CREATED, data)
        except Exception as exc:
            status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
            idempotency.fail(record, status_code, {"detail": str(exc)})
            raise

        return Response(data, status=status.HTTP_201_CREATED, headers=self.get_success_headers(data))
