from django.db import IntegrityError
from django.test import TestCase

from apps.core.models import Warehouse
from apps.core.numbering import MAX_ATTEMPTS, create_numbered


class CreateNumberedTests(TestCase):
    def test_taken_number_is_retried_with_the_next_one(self):
        Warehouse.objects.create(name="Main", code="WH-0001")
        numbers = iter(["WH-0001", "WH-0002"])

        warehouse = create_numbered(Warehouse, "code", lambda: next(numbers), name="Annex")

        self.assertEqual(warehouse.code, "WH-0002")
        self.assertEqual(Warehouse.objects.count(), 2)

    def test_gives_up_after_max_attempts(self):
        Warehouse.objects.create(name="Main", code="WH-0001")
        calls = []

        def always_taken():
            calls.append(1)
            return "WH-0001"

        with self.assertRaises(IntegrityError):
            create_numbered(Warehouse, "code", always_taken, name="Annex")
        self.assertEqual(len(calls), MAX_ATTEMPTS)
        self.assertEqual(Warehouse.objects.count(), 1)
