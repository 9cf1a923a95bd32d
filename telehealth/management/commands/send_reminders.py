from django.core.management.base import BaseCommand

from telehealth.services.reminders import dispatch_due_reminders


class Command(BaseCommand):
    help = "Send reminders that are due (same batch as GET /api/cron/send-reminders)."

    def add_arguments(self, parser):
        parser.add_argument('--batch-size', type=int, default=None, help='Max reminders to process.')

    def handle(self, *args, **options):
        result = dispatch_due_reminders(batch_size=options['batch_size'])
        style = self.style.SUCCESS if not result.failed else self.style.WARNING
        self.stdout.write(style(f"Reminders processed: {result.sent} sent, {result.failed} failed, {result.total} total"))
