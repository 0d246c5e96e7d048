"""Install the default tier table (Bronze .. Diamond)."""

from django.core.management.base import BaseCommand, CommandError

from rewardman.models import LoyaltyTier
from rewardman.services.tiers import seed_default_tiers


class Command(BaseCommand):
    help = "Create the default loyalty tiers if no tier exists yet"

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Create missing default tiers even if a table already exists",
        )

    def handle(self, *args, **options):
        if LoyaltyTier.objects.exists() and not options["force"]:
            raise CommandError("Tiers already configured; use --force to add missing defaults.")

        created = seed_default_tiers()
        self.stdout.write(self.style.SUCCESS(f"Created {len(created)} tier(s)."))
