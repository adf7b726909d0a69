from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase

from apps.catalog.models import Product
from apps.core.models import Warehouse
from apps.formulas.services import create_formula
from apps.inventory import ledger
from apps.inventory.models import InventoryBatch
from apps.production.models import ProductionRun, RunStatus


class ProductionRunApiTests(APITestCase):
    def setUp(self):
        self.client.credentials(HTTP_X_API_KEY="dev-api-key")
        self.warehouse = Warehouse.objects.create(name="Mill", code="MILL")
        self.maize = Product.objects.create(sku="MAIZE", name="Maize", cost_price=Decimal("200.00"))
        self.soy = Product.objects.create(sku="SOY", name="Soybean meal", cost_price=Decimal("450.00"))
        self.feed = Product.objects.create(sku="LAYER", name="Layer mash", product_type="finished_good")
        self.formula = create_formula(
            {
                "name": "Layer mash",
                "finished_product": self.feed,
                "items": [
                    {"product": self.maize, "percentage": Decimal("75")},
                    {"product": self.soy, "percentage": Decimal("25")},
                ],
            }
        )

    def stock(self, product, quantity, number):
        ledger.receive(
            None,
            Decimal(quantity),
            product=product,
            warehouse=self.warehouse,
            unit_cost=product.cost_price,
            batch_number=number,
        )

    def plan(self, target="100"):
        response = self.client.post(
            "/api/v1/production-runs/",
            {"formula": str(self.formula.id), "warehouse": str(self.warehouse.id), "target_quantity": target},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.json()

    def test_plan_run_returns_items(self):
        body = self.plan("200")

        self.assertEqual(body["status"], "planned")
        self.assertEqual(
            sorted(Decimal(item["planned_quantity"]) for item in body["items"]),
            [Decimal("50.000"), Decimal("150.000")],
        )

    def test_plan_with_zero_target_returns_400(self):
        response = self.client.post(
            "/api/v1/production-runs/",
            {"formula": str(self.formula.id), "warehouse": str(self.warehouse.id), "target_quantity": "0"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("target_quantity", response.json()["field_errors"])

    def test_start_without_stock_returns_422_with_shortages(self):
        run = self.plan()

        response = self.client.post(f"/api/v1/production-runs/{run['id']}/start/", {}, format="json")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        body = response.json()
        self.assertEqual(body["code"], "insufficient_stock")
        self.assertEqual(len(body["data"]["shortages"]), 2)

    def test_full_lifecycle(self):
        self.stock(self.maize, "100", "MZ-1")
        self.stock(self.soy, "100", "SY-1")
        run = self.plan()

        materials = self.client.get(f"/api/v1/production-runs/{run['id']}/materials/")
        started = self.client.post(f"/api/v1/production-runs/{run['id']}/start/", {}, format="json")
        loss = self.client.post(
            f"/api/v1/production-runs/{run['id']}/losses/",
            {"loss_type": "spillage", "quantity": "2", "reason": "Mixer overflow", "product": str(self.maize.id)},
            format="json",
        )
        completed = self.client.post(
            f"/api/v1/production-runs/{run['id']}/complete/",
            {"actual_output": "97"},
            format="json",
        )

        self.assertTrue(materials.json()["all_sufficient"])
        self.assertEqual(started.json()["status"], "in_progress")
        self.assertEqual(loss.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(loss.json()["estimated_value"]), Decimal("400.00"))
        self.assertEqual(completed.status_code, status.HTTP_200_OK)
        body = completed.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual(Decimal(body["wastage_quantity"]), Decimal("2.000"))
        self.assertEqual(Decimal(body["efficiency_percentage"]), Decimal("97.00"))
        self.assertEqual(InventoryBatch.objects.get(id=body["output_batch"]).current_quantity, Decimal("97.000"))

    def test_complete_planned_run_returns_422(self):
        run = self.plan()

        response = self.client.post(
            f"/api/v1/production-runs/{run['id']}/complete/",
            {"actual_output": "100"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.json()["code"], "invalid_status_transition")
        self.assertEqual(response.json()["data"]["current_status"], "planned")

    def test_complete_with_wastage_above_target_returns_422_and_run_stays_readable(self):
        self.stock(self.maize, "10", "MZ-1")
        self.stock(self.soy, "10", "SY-1")
        run = self.plan("1")
        self.client.post(f"/api/v1/production-runs/{run['id']}/start/", {}, format="json")

        response = self.client.post(
            f"/api/v1/production-runs/{run['id']}/complete/",
            {"actual_output": "0.5", "wastage_quantity": "20"},
            format="json",
        )
        detail = self.client.get(f"/api/v1/production-runs/{run['id']}/")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.json()["data"]["target_quantity"], "1.000")
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.json()["status"], "in_progress")

    def test_cancel_requires_reason(self):
        run = self.plan()

        missing = self.client.post(f"/api/v1/production-runs/{run['id']}/cancel/", {}, format="json")
        response = self.client.post(
            f"/api/v1/production-runs/{run['id']}/cancel/",
            {"reason": "Order withdrawn"},
            format="json",
        )

        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["status"], "cancelled")

    def test_edit_and_delete_only_while_planned(self):
        self.stock(self.maize, "100", "MZ-1")
        self.stock(self.soy, "100", "SY-1")
        editable = self.plan()
        started = self.plan()
        self.client.post(f"/api/v1/production-runs/{started['id']}/start/", {}, format="json")

        edited = self.client.patch(
            f"/api/v1/production-runs/{editable['id']}/",
            {"target_quantity": "40"},
            format="json",
        )
        blocked = self.client.patch(
            f"/api/v1/production-runs/{started['id']}/",
            {"notes": "late change"},
            format="json",
        )
        deleted = self.client.delete(f"/api/v1/production-runs/{editable['id']}/")
        refused = self.client.delete(f"/api/v1/production-runs/{started['id']}/")

        self.assertEqual(edited.status_code, status.HTTP_200_OK)
        self.assertEqual(
            sorted(Decimal(item["planned_quantity"]) for item in edited.json()["items"]),
            [Decimal("10.000"), Decimal("30.000")],
        )
        self.assertEqual(blocked.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(refused.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(ProductionRun.objects.get().status, RunStatus.IN_PROGRESS)

    def test_summary_endpoint(self):
        self.plan()

        response = self.client.get("/api/v1/production-runs/summary/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["total_runs"], 1)
        self.assertEqual(response.json()["by_status"], {"planned": 1})
