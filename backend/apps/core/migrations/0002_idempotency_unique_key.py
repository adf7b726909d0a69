from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="idempotencyrecord",
            name="payload_hash",
            field=models.CharField(blank=True, default="", max_length=64),
        ),
        migrations.RemoveIndex(
            model_name="idempotencyrecord",
            name="idx_core_idem_lookup",
        ),
        migrations.AddConstraint(
            model_name="idempotencyrecord",
            constraint=models.UniqueConstraint(
                condition=models.Q(idempotency_key__isnull=False),
                fields=("source", "operation", "idempotency_key"),
                name="uq_core_idem_key",
            ),
        ),
    ]
