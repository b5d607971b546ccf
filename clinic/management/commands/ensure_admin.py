import os

from django.core.management.base import BaseCommand, CommandError

from clinic.models import User


class Command(BaseCommand):
    help = "Create or repair the administrator account (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--username', default=os.getenv('ADMIN_USERNAME', 'admin'))
        parser.add_argument('--email', default=os.getenv('ADMIN_EMAIL', 'admin@example.com'))
        parser.add_argument('--password', default=os.getenv('ADMIN_PASSWORD'))

    def handle(self, *args, **opts):
        if not opts['password']:
            raise CommandError('Give --password or set ADMIN_PASSWORD.')
        u, created = User.objects.get_or_create(
            username=opts['username'],
            defaults={'email': opts['email'], 'role': User.ROLE_ADMIN},
        )
        u.email = u.email or opts['email']
        u.role = User.ROLE_ADMIN
        u.is_approved = True
        u.is_active = True
        u.is_staff = True
        u.set_password(opts['password'])
        u.save()
        verb = 'created' if created else 'updated'
        self.stdout.write(self.style.SUCCESS(f"Administrator {u.username} {verb}."))
