from datetime import time, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from accounts.models import Location, LocationMembership, Organization
from core.timezone_utils import combine_local
from scheduling.models import Shift, ShiftCategory
from scheduling.services import ShiftService

User = get_user_model()


class Command(BaseCommand):
    help = 'Seeds the database with a demo organization, two sites, staff and a week of shifts'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='password123', help='Password for every seeded user')

    def handle(self, *args, **options):
        self.stdout.write('Starting seeding process...')
        password = options['password']

        with transaction.atomic():
            organization, created = Organization.objects.get_or_create(
                email='ops@northside-group.test',
                defaults={'name': 'Northside Group', 'timezone': 'Europe/London', 'currency': 'GBP'},
            )
            if created:
                self.stdout.write(f'Created organization: {organization.name}')

            sites = {}
            for name, lat, lon in (
                ('Kings Cross', Decimal('51.530600'), Decimal('-0.123900')),
                ('Shoreditch', Decimal('51.526400'), Decimal('-0.078400')),
            ):
                sites[name], _ = Location.objects.get_or_create(
                    organization=organization, name=name,
                    defaults={'latitude': lat, 'longitude': lon, 'radius': 150},
                )

            categories = {}
            for name, rate, color in (
                ('Floor', Decimal('12.50'), '#3B82F6'),
                ('Kitchen', Decimal('14.00'), '#F97316'),
                ('Training', None, '#10B981'),
            ):
                categories[name], _ = ShiftCategory.objects.get_or_create(
                    organization=organization, name=name, defaults={'hourly_rate': rate, 'color': color},
                )

            people = [
                ('Priya', 'Shah', 'ADMIN', 'admin@northside-group.test', 'MONTHLY', None, 'Kings Cross'),
                ('Tom', 'Baker', 'MANAGER', 'tom@northside-group.test', 'MONTHLY', None, 'Kings Cross'),
                ('Ada', 'Okafor', 'EMPLOYEE', 'ada@northside-group.test', 'HOURLY', Decimal('12.00'), 'Kings Cross'),
                ('Liam', 'Hughes', 'EMPLOYEE', 'liam@northside-group.test', 'HOURLY', Decimal('11.80'), 'Shoreditch'),
                ('Mei', 'Lin', 'EMPLOYEE', 'mei@northside-group.test', 'HOURLY', Decimal('13.10'), 'Shoreditch'),
            ]
            employees = []
            admin = None
            for first, last, role, email, pay_type, rate, site in people:
                user, created = User.objects.get_or_create(
                    email=email,
                    defaults={
                        'first_name': first,
                        'last_name': last,
                        'role': role,
                        'organization': organization,
                        'primary_location': sites[site],
                        'pay_type': pay_type,
                        'hourly_rate': rate or Decimal('0'),
                        'monthly_salary': Decimal('2600.00') if pay_type == 'MONTHLY' else None,
                        'is_staff': role == 'ADMIN',
                    },
                )
                if created:
                    user.set_password(password)
                    user.save()
                self.stdout.write(f'{"Created" if created else "Ensured"} user: {first} {last} ({role})')
                if role == 'ADMIN':
                    admin = user
                elif role == 'EMPLOYEE':
                    employees.append(user)
                    LocationMembership.objects.get_or_create(staff=user, location=sites[site])

            if Shift.objects.filter(organization=organization).exists():
                self.stdout.write('Shifts already seeded, skipping.')
            else:
                today = timezone.localdate()
                for offset in range(7):
                    day = today + timedelta(days=offset)
                    for index, employee in enumerate(employees):
                        start = combine_local(day, time(8 + index * 2), organization)
                        ShiftService.create_shift(admin, {
                            'title': 'Morning' if index == 0 else 'Day',
                            'start': start,
                            'end': start + timedelta(hours=8),
                            'location': employee.primary_location,
                            'category': categories['Kitchen' if index == 1 else 'Floor'],
                            'assigned_to': employee,
                        })
                    open_start = combine_local(day, time(17), organization)
                    ShiftService.create_shift(admin, {
                        'title': 'Evening cover',
                        'start': open_start,
                        'end': open_start + timedelta(hours=6),
                        'location': sites['Shoreditch'],
                        'category': categories['Floor'],
                    })
                self.stdout.write('Created a week of shifts.')

        self.stdout.write(self.style.SUCCESS('Seeding complete.'))
