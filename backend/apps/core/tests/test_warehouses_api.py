from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Product
from apps.core.models import Warehouse
from apps.inventory import ledger


class HealthApiTests(APITestCase):
    def test_health_does_not_need_api_key(self):
        response = self.client.get("/api/v1/health")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["service"], "millops")


class WarehouseApiTests(APITestCase):
    def setUp(self):
        self.client.credentials(HTTP_X_API_KEY="dev-api-key")

    def test_create_warehouse_normalizes_code(self):
        response = self.client.post("/api/v1/warehouses/", {"name": "Main store", "code": "main store"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()["code"], "MAIN_STORE")

    def test_list_hides_inactive_by_default(self):
        Warehouse.objects.create(name="Active", code="A")
        Warehouse.objects.create(name="Closed", code="C", is_active=False)

        default = self.client.get("/api/v1/warehouses/")
        everything = self.client.get("/api/v1/warehouses/?include_inactive=1")

        self.assertEqual([row["code"] for row in default.json()], ["A"])
        self.assertEqual(len(everything.json()), 2)

    def test_delete_unused_warehouse_returns_204(self):
        warehouse = Warehouse.objects.create(name="Spare", code="SPARE")

        response = self.client.delete(f"/api/v1/warehouses/{warehouse.id}/")

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Warehouse.objects.exists())

    def test_delete_warehouse_with_stock_returns_422(self):
        warehouse = Warehouse.objects.create(name="Main", code="MAIN")
        product = Product.objects.create(sku="MAIZE", name="Maize")
        ledger.receive(None, Decimal("10"), product=product, warehouse=warehouse, unit_cost=Decimal("1.00"))

        response = self.client.delete(f"/api/v1/warehouses/{warehouse.id}/")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.json()["code"], "business_rule_violation")

    def test_delete_warehouse_with_history_deactivates_it(self):
        warehouse = Warehouse.objects.create(name="Main", code="MAIN")
        product = Product.objects.create(sku="MAIZE", name="Maize")
        batch = ledger.receive(None, Decimal("10"), product=product, warehouse=warehouse).batch
        ledger.consume(batch, Decimal("10"))

        response = self.client.delete(f"/api/v1/warehouses/{warehouse.id}/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        warehouse.refresh_from_db()
        self.assertFalse(warehouse.is_active)
