from django.core.management.base import BaseCommand, CommandError

from clinic.models import CalendarSyncRun, Doctor
from clinic.services.calendar_sync import sync_all, sync_doctor


class Command(BaseCommand):
    help = "Sync doctors' external iCal calendars (run from cron, e.g. every 5 minutes)."

    def add_arguments(self, parser):
        parser.add_argument('--doctor', type=int, help='Only sync this doctor id.')

    def handle(self, *args, **options):
        if options.get('doctor'):
            doctor = Doctor.objects.filter(id=options['doctor']).first()
            if doctor is None:
                raise CommandError(f"Doctor {options['doctor']} does not exist.")
            runs = [sync_doctor(doctor)]
        else:
            runs = sync_all()

        failed = 0
        for run in runs:
            line = (f"doctor={run.doctor_id} status={run.status} created={run.created} updated={run.updated} "
                    f"cancelled={run.cancelled} conflicts={run.conflicts} pushed={run.pushed}")
            if run.status == CalendarSyncRun.STATUS_FAILED:
                failed += 1
                self.stdout.write(self.style.ERROR(f"{line} error={run.error}"))
            else:
                self.stdout.write(line)
        summary = f"{len(runs)} doctor calendar(s) processed, {failed} failed."
        self.stdout.write(self.style.WARNING(summary) if failed else self.style.SUCCESS(summary))
