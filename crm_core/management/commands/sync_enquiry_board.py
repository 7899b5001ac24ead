from django.core.management.base import BaseCommand, CommandError

from crm_core.exceptions import BackendError
from crm_core.services.enquiry_board import EnquiryBoard
from crm_core.tasks import sync_board


class Command(BaseCommand):
    help = "Refresh held enquiry boards from the CRM backend"

    def add_arguments(self, parser):
        parser.add_argument("--token", help="Backend token (defaults to CRM_SERVICE_TOKEN)")
        parser.add_argument("--namespace", help="Only this user's board")
        parser.add_argument(
            "--clear",
            action="store_true",
            help="Drop the boards instead of refreshing them; users reload on their next board request",
        )

    def handle(self, *args, **options):
        namespace = options["namespace"]

        if options["clear"]:
            names = [namespace] if namespace else EnquiryBoard.namespaces()
            for name in names:
                EnquiryBoard(name).clear()
            self.stdout.write(self.style.SUCCESS(f"Cleared {len(names)} boards"))
            return

        try:
            accepted = sync_board(token=options["token"], namespace=namespace)
        except BackendError as exc:
            raise CommandError(f"Board sync failed: {exc}")

        self.stdout.write(self.style.SUCCESS(f"Accepted {accepted} enquiry snapshots"))
