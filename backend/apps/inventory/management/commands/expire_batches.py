from datetime import date

from django.core.management.base import BaseCommand, CommandError

from apps.inventory.ledger import expire_batches


class Command(BaseCommand):
    help = "Mark active batches whose expiry date has passed as expired"

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            dest="on_date",
            help="Reference date in YYYY-MM-DD format (default: today)",
        )

    def handle(self, *args, **options):
        on_date = None
        if options.get("on_date"):
            try:
                on_date = date.fromisoformat(options["on_date"])
            except ValueError as exc:
                raise CommandError(f"Invalid date '{options['on_date']}', expected YYYY-MM-DD.") from exc

        expired = expire_batches(on_date)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} batches."))
