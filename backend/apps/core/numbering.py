import logging
from typing import Callable

from django.db import IntegrityError, transaction

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


def create_numbered(model, field: str, next_number: Callable[[], str], **values):
    """Insert a ``model`` row whose unique ``field`` takes the next document number.

    ``next_number`` reads the highest existing number, so two writers can pick the
    same one. The losing insert is rolled back to its savepoint and retried with
    a freshly read number.
    """
    for attempt in range(1, MAX_ATTEMPTS + 1):
        number = next_number()
        try:
            with transaction.atomic():
                return model.objects.create(**{field: number}, **values)
        except IntegrityError:
            taken = model.objects.filter(**{field: number}).exists()
            if not taken or attempt == MAX_ATTEMPTS:
                raise
            logger.info("%s %s was taken concurrently, retrying (attempt %d)", model.__name__, number, attempt)
