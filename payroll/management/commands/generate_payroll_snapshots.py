from django.core.management.base import BaseCommand, CommandError

from payroll.services import PayrollCalculationService


class Command(BaseCommand):
    help = 'Generates payroll snapshots for every active employee for one month. Existing snapshots are kept.'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, required=True)
        parser.add_argument('--month', type=int, required=True)
        parser.add_argument('--workers', type=int, default=None, help='Worker threads (defaults to PAYROLL_BATCH_MAX_WORKERS)')
        parser.add_argument('--database', default='default', help='Database alias to run against')

    def handle(self, *args, **options):
        year = options['year']
        month = options['month']
        if not 1 <= month <= 12:
            raise CommandError('--month must be between 1 and 12.')

        self.stdout.write(f"Generating payroll snapshots for {month:02d}/{year}...")
        service = PayrollCalculationService(tenant_db=options['database'], max_workers=options['workers'])
        result = service.run_month(year, month)

        for employee_id, reason in result.failed.items():
            self.stdout.write(self.style.ERROR(f"Failed for employee {employee_id}: {reason}"))

        summary = (
            f"Created: {len(result.created)}, existing: {len(result.existing)}, "
            f"failed: {len(result.failed)} ({result.success_count}/{result.total}, {result.required} required)"
        )
        if not result.succeeded:
            raise CommandError(f"Payroll run for {month:02d}/{year} did not reach the success threshold. {summary}")
        self.stdout.write(self.style.SUCCESS(f"Payroll run complete. {summary}"))
