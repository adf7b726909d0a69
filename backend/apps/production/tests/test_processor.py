from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db.models import Sum
from django.test import TestCase
from django.utils import timezone

from apps.catalog.models import Product
from apps.core.exceptions import BusinessRuleError, InsufficientStockError, InvalidFormulaError, InvalidTransitionError
from apps.core.models import Warehouse
from apps.formulas.models import Formula, FormulaItem
from apps.formulas.services import create_formula
from apps.inventory import ledger
from apps.inventory.models import BatchStatus, InventoryBatch, MovementType, StockLevel, StockMovement
from apps.production import processor
from apps.production.models import ProductionRun, RunStatus, efficiency


class ProcessorTestCase(TestCase):
    def setUp(self):
        self.warehouse = Warehouse.objects.create(name="Mill", code="MILL")
        self.maize = Product.objects.create(sku="MAIZE", name="Maize", cost_price=Decimal("200.00"))
        self.soy = Product.objects.create(sku="SOY", name="Soybean meal", cost_price=Decimal("450.00"))
        self.feed = Product.objects.create(
            sku="LAYER",
            name="Layer mash",
            product_type="finished_good",
            cost_price=Decimal("0"),
        )
        self.formula = create_formula(
            {
                "name": "Layer mash",
                "finished_product": self.feed,
                "items": [
                    {"product": self.maize, "percentage": Decimal("60")},
                    {"product": self.soy, "percentage": Decimal("40")},
                ],
            }
        )

    def stock(self, product, quantity, number, unit_cost, expiry=None):
        return ledger.receive(
            None,
            Decimal(quantity),
            product=product,
            warehouse=self.warehouse,
            unit_cost=Decimal(unit_cost),
            batch_number=number,
            expiry_date=expiry,
        ).batch

    def stock_everything(self):
        self.stock(self.maize, "400", "MZ-1", "200.00", expiry=timezone.localdate() + timedelta(days=10))
        self.stock(self.maize, "400", "MZ-2", "220.00", expiry=timezone.localdate() + timedelta(days=40))
        self.stock(self.soy, "500", "SY-1", "450.00")

    def assert_levels_match_batches(self):
        for level in StockLevel.objects.all():
            total = InventoryBatch.objects.filter(product=level.product, warehouse=level.warehouse).aggregate(
                total=Sum("current_quantity")
            )["total"]
            self.assertEqual(level.quantity, total)
        self.assertFalse(InventoryBatch.objects.filter(current_quantity__lt=0).exists())


class PlanTests(ProcessorTestCase):
    def test_plan_creates_items_from_formula(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("1000"))

        self.assertEqual(run.status, RunStatus.PLANNED)
        self.assertTrue(run.production_number.startswith(f"PRD{timezone.localdate():%Y%m%d}"))
        planned = {item.product_id: item.planned_quantity for item in run.items.all()}
        self.assertEqual(planned, {self.maize.id: Decimal("600.000"), self.soy.id: Decimal("400.000")})
        self.formula.refresh_from_db()
        self.assertEqual(self.formula.usage_count, 1)

    def test_production_numbers_are_sequential(self):
        first = processor.plan(self.formula, self.warehouse, Decimal("10"))
        second = processor.plan(self.formula, self.warehouse, Decimal("10"))

        self.assertEqual(int(second.production_number[-4:]), int(first.production_number[-4:]) + 1)

    def test_plan_retries_when_number_was_taken_concurrently(self):
        first = processor.plan(self.formula, self.warehouse, Decimal("10"))
        numbers = iter([first.production_number, "PRD209901010001"])

        with mock.patch.object(
            processor, "generate_production_number", side_effect=lambda config=None: next(numbers)
        ):
            second = processor.plan(self.formula, self.warehouse, Decimal("10"))

        self.assertEqual(second.production_number, "PRD209901010001")
        self.assertEqual(ProductionRun.objects.count(), 2)

    def test_plan_rejects_non_positive_target(self):
        with self.assertRaises(BusinessRuleError):
            processor.plan(self.formula, self.warehouse, 0)

    def test_plan_rejects_invalid_formula(self):
        formula = Formula.objects.create(formula_code="FRM-BROKEN", name="Broken")
        FormulaItem.objects.create(formula=formula, product=self.maize, percentage=Decimal("90"), sequence=1)

        with self.assertRaises(InvalidFormulaError):
            processor.plan(formula, self.warehouse, Decimal("100"))

    def test_update_plan_recalculates_items(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("1000"))

        run = processor.update_plan(run, {"target_quantity": Decimal("500")})

        self.assertEqual(run.items.get(product=self.maize).planned_quantity, Decimal("300.000"))

    def test_check_materials_reports_shortages(self):
        self.stock(self.maize, "100", "MZ-1", "200.00")
        run = processor.plan(self.formula, self.warehouse, Decimal("1000"))

        report = processor.check_materials(run)

        self.assertFalse(report["all_sufficient"])
        maize = next(row for row in report["materials"] if row["product_name"] == "Maize")
        self.assertEqual(maize["shortage"], Decimal("500.000"))


class StartTests(ProcessorTestCase):
    def test_start_consumes_fifo_and_costs_items(self):
        self.stock_everything()
        run = processor.plan(self.formula, self.warehouse, Decimal("1000"))

        run = processor.start(run)

        self.assertEqual(run.status, RunStatus.IN_PROGRESS)
        self.assertIsNotNone(run.started_at)
        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-1").status, BatchStatus.DEPLETED)
        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-2").current_quantity, Decimal("200.000"))
        maize_item = run.items.get(product=self.maize)
        self.assertEqual(maize_item.total_cost, Decimal("124000.00"))
        self.assertEqual(maize_item.unit_cost, Decimal("206.67"))
        consumed = ledger.movements_for(run).filter(movement_type=MovementType.PRODUCTION_OUT)
        self.assertEqual(consumed.count(), 3)
        self.assert_levels_match_batches()

    def test_start_with_shortage_consumes_nothing(self):
        self.stock(self.maize, "100", "MZ-1", "200.00")
        run = processor.plan(self.formula, self.warehouse, Decimal("1000"))

        with self.assertRaises(InsufficientStockError) as ctx:
            processor.start(run)

        shortages = ctx.exception.data["shortages"]
        self.assertEqual({row["product"] for row in shortages}, {"Maize", "Soybean meal"})
        run.refresh_from_db()
        self.assertEqual(run.status, RunStatus.PLANNED)
        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-1").current_quantity, Decimal("100.000"))
        self.assertFalse(StockMovement.objects.filter(movement_type=MovementType.PRODUCTION_OUT).exists())

    def test_expired_stock_does_not_count(self):
        self.stock(self.maize, "600", "MZ-OLD", "200.00", expiry=timezone.localdate() - timedelta(days=1))
        self.stock(self.soy, "400", "SY-1", "450.00")
        run = processor.plan(self.formula, self.warehouse, Decimal("1000"))

        with self.assertRaises(InsufficientStockError):
            processor.start(run)

    def test_start_twice_is_an_invalid_transition(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))

        with self.assertRaises(InvalidTransitionError):
            processor.start(run)


class CompleteTests(ProcessorTestCase):
    def test_complete_posts_finished_goods_batch(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("1000")))

        run = processor.complete(
            run,
            Decimal("980"),
            losses=[{"loss_type": "spillage", "quantity": Decimal("20"), "reason": "Conveyor spill"}],
        )

        self.assertEqual(run.status, RunStatus.COMPLETED)
        self.assertEqual(run.wastage_quantity, Decimal("20.000"))
        self.assertEqual(run.wastage_percentage, Decimal("2.00"))
        self.assertEqual(run.efficiency_percentage, Decimal("98.00"))
        output = run.output_batch
        self.assertEqual(output.product, self.feed)
        self.assertEqual(output.current_quantity, Decimal("980.000"))
        self.assertEqual(output.source_type, "production")
        # (124000 + 180000) / 980
        self.assertEqual(output.unit_cost, Decimal("310.20"))
        self.assertTrue(
            ledger.movements_for(run).filter(movement_type=MovementType.PRODUCTION_IN, batch=output).exists()
        )
        self.assert_levels_match_batches()

    def test_complete_settles_actual_usage(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("1000")))
        maize_item = run.items.get(product=self.maize)
        soy_item = run.items.get(product=self.soy)

        processor.complete(
            run,
            Decimal("1000"),
            item_usage=[
                {"item_id": maize_item.id, "quantity_used": Decimal("650")},
                {"item_id": soy_item.id, "quantity_used": Decimal("380")},
            ],
        )

        maize_item.refresh_from_db()
        soy_item.refresh_from_db()
        self.assertEqual(maize_item.variance, Decimal("50.000"))
        self.assertEqual(soy_item.variance, Decimal("-20.000"))
        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-2").current_quantity, Decimal("150.000"))
        self.assertEqual(InventoryBatch.objects.get(batch_number="SY-1").current_quantity, Decimal("120.000"))
        self.assert_levels_match_batches()

    def test_complete_without_finished_product_posts_no_output(self):
        self.formula.finished_product = None
        self.formula.save()
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))

        run = processor.complete(run, Decimal("95"))

        self.assertIsNone(run.output_batch)
        self.assertFalse(ledger.movements_for(run).filter(movement_type=MovementType.PRODUCTION_IN).exists())

    def test_wastage_defaults_to_recorded_losses(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))
        processor.record_loss(run, {"loss_type": "spillage", "quantity": Decimal("1.5"), "reason": "Mixer overflow"})
        processor.record_loss(run, {"loss_type": "drying", "quantity": Decimal("0.5"), "reason": "Moisture"})

        run = processor.complete(run, Decimal("98"))

        self.assertEqual(run.wastage_quantity, Decimal("2.000"))
        self.assertEqual(run.wastage_percentage, Decimal("2.00"))

    def test_wastage_above_loss_limit_logs_warning(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))

        with self.assertLogs("apps.production.processor", "WARNING") as logs:
            run = processor.complete(run, Decimal("90"), wastage_quantity=Decimal("10"))

        self.assertEqual(run.status, RunStatus.COMPLETED)
        self.assertEqual(run.wastage_percentage, Decimal("10.00"))
        self.assertIn("exceeds the 5", logs.output[0])

    def test_wastage_within_limit_logs_no_warning(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))

        with self.assertNoLogs("apps.production.processor", "WARNING"):
            processor.complete(run, Decimal("97"), wastage_quantity=Decimal("3"))

    def test_wastage_above_target_is_rejected(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))

        with self.assertRaises(BusinessRuleError):
            processor.complete(run, Decimal("50"), wastage_quantity=Decimal("101"))

        run.refresh_from_db()
        self.assertEqual(run.status, RunStatus.IN_PROGRESS)
        self.assertEqual(run.wastage_percentage, Decimal("0"))
        self.assertFalse(ledger.movements_for(run).filter(movement_type=MovementType.PRODUCTION_IN).exists())

    def test_losses_above_target_are_rejected_and_not_kept(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))

        with self.assertRaises(BusinessRuleError):
            processor.complete(
                run,
                Decimal("10"),
                losses=[{"loss_type": "other", "quantity": Decimal("150"), "reason": "Silo collapse"}],
            )

        self.assertFalse(run.losses.exists())
        self.assertEqual(InventoryBatch.objects.get(batch_number="SY-1").current_quantity, Decimal("460.000"))

    def test_complete_requires_in_progress(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("100"))

        with self.assertRaises(InvalidTransitionError):
            processor.complete(run, Decimal("100"))

    def test_losses_only_on_in_progress_runs(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("100"))

        with self.assertRaises(BusinessRuleError):
            processor.record_loss(run, {"loss_type": "damage", "quantity": Decimal("1"), "reason": "Torn bag"})


class CancelTests(ProcessorTestCase):
    def test_cancel_planned_run(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("100"))

        run = processor.cancel(run, "Customer withdrew order")

        self.assertEqual(run.status, RunStatus.CANCELLED)
        self.assertEqual(run.cancellation_reason, "Customer withdrew order")

    def test_cancel_in_progress_returns_stock(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("1000")))

        processor.cancel(run, "Breakdown")

        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-1").current_quantity, Decimal("400.000"))
        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-1").status, BatchStatus.ACTIVE)
        self.assertEqual(InventoryBatch.objects.get(batch_number="MZ-2").current_quantity, Decimal("400.000"))
        self.assertEqual(InventoryBatch.objects.get(batch_number="SY-1").current_quantity, Decimal("500.000"))
        self.assertEqual(
            ledger.movements_for(run).filter(movement_type=MovementType.ADJUSTMENT_IN).count(),
            3,
        )
        self.assert_levels_match_batches()

    def test_cancel_requires_reason(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("100"))

        with self.assertRaises(BusinessRuleError):
            processor.cancel(run, "")

    def test_blank_reason_is_rejected(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("100"))

        with self.assertRaises(BusinessRuleError):
            processor.cancel(run, "   ")
        with self.assertRaises(BusinessRuleError):
            processor.cancel(run, None)
        run.refresh_from_db()
        self.assertEqual(run.status, RunStatus.PLANNED)

    def test_reason_is_stored_trimmed(self):
        run = processor.plan(self.formula, self.warehouse, Decimal("100"))

        run = processor.cancel(run, "  Order withdrawn \n")

        self.assertEqual(run.cancellation_reason, "Order withdrawn")

    def test_completed_run_cannot_be_cancelled(self):
        self.stock_everything()
        run = processor.start(processor.plan(self.formula, self.warehouse, Decimal("100")))
        run = processor.complete(run, Decimal("100"))

        with self.assertRaises(InvalidTransitionError):
            processor.cancel(run, "Too late")


class EfficiencyAndSummaryTests(ProcessorTestCase):
    def test_efficiency(self):
        self.assertEqual(efficiency(Decimal("95"), Decimal("100")), Decimal("95.00"))
        self.assertEqual(efficiency(Decimal("2"), Decimal("3")), Decimal("66.67"))
        self.assertEqual(efficiency(Decimal("10"), Decimal("0")), Decimal("0"))
        self.assertEqual(efficiency(Decimal("10"), Decimal("-5")), Decimal("0"))

    def test_summary_counts_and_averages(self):
        today = timezone.localdate()
        ProductionRun.objects.create(
            production_number="PRD000000000001",
            formula=self.formula,
            warehouse=self.warehouse,
            target_quantity=Decimal("100"),
            actual_output=Decimal("90"),
            wastage_quantity=Decimal("4"),
            status=RunStatus.COMPLETED,
            production_date=today,
        )
        ProductionRun.objects.create(
            production_number="PRD000000000002",
            formula=self.formula,
            warehouse=self.warehouse,
            target_quantity=Decimal("200"),
            actual_output=Decimal("200"),
            wastage_quantity=Decimal("1"),
            status=RunStatus.COMPLETED,
            production_date=today,
        )
        ProductionRun.objects.create(
            production_number="PRD000000000003",
            formula=self.formula,
            warehouse=self.warehouse,
            target_quantity=Decimal("50"),
            production_date=today,
        )

        result = processor.summary(today, today)

        self.assertEqual(result["total_runs"], 3)
        self.assertEqual(result["completed_runs"], 2)
        self.assertEqual(result["total_output"], Decimal("290"))
        self.assertEqual(result["total_wastage"], Decimal("5"))
        self.assertEqual(result["average_efficiency"], Decimal("95.00"))
        self.assertEqual(result["by_status"], {"completed": 2, "planned": 1})
