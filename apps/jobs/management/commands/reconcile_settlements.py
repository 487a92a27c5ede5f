"""
Settle completed jobs that already hold both ratings.

A settlement interrupted by a database failure leaves the job completed with
two ratings and no earning; running this command finishes it. Safe to run
repeatedly and alongside live traffic.
"""

from django.core.management.base import BaseCommand

from apps.jobs.settlement import jobs_pending_settlement, settle_pending_jobs


class Command(BaseCommand):
    help = 'Settle completed jobs that have both ratings but were never marked reviewed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the jobs that would be settled without changing anything'
        )

    def handle(self, *args, **options):
        if options.get('dry_run'):
            self.stdout.write(self.style.WARNING("=== DRY RUN MODE ===\n"))
            pending = jobs_pending_settlement()
            for job_id in pending:
                self.stdout.write(f"  Would settle job {job_id}")
            self.stdout.write(f"{len(pending)} job(s) pending settlement")
            return

        settled = settle_pending_jobs()
        for job_id in settled:
            self.stdout.write(f"  Settled job {job_id}")
        self.stdout.write(self.style.SUCCESS(f"Settled {len(settled)} job(s)"))
