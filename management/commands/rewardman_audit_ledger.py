"""Compare cached customer totals with the transaction log."""

from django.core.management.base import BaseCommand, CommandError

from rewardman.services import ledger


class Command(BaseCommand):
    help = "Report customers whose cached points disagree with their ledger"

    def add_arguments(self, parser):
        parser.add_argument(
            "--customer",
            default=None,
            help="Audit a single customer code",
        )

    def handle(self, *args, **options):
        discrepancies = ledger.audit(customer_code=options["customer"])
        for d in discrepancies:
            self.stdout.write(
                f"{d.customer_code}: cached balance={d.cached_balance} "
                f"earned={d.cached_earned} spent={d.cached_spent}; "
                f"logged balance={d.logged_balance} "
                f"earned={d.logged_earned} spent={d.logged_spent}"
            )

        if discrepancies:
            raise CommandError(f"{len(discrepancies)} customer(s) out of balance.")
        self.stdout.write(self.style.SUCCESS("Ledger consistent."))
