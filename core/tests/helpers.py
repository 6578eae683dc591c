from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from accounts.models import CustomUser, Location, Organization

LONDON = ZoneInfo('Europe/London')


def london(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=LONDON)


class WorkforceFixtureMixin:
    """Builders for organizations, sites and staff used across app tests"""

    def create_organization(self, name='Northside Group', **kwargs):
        kwargs.setdefault('require_geolocation', False)
        return Organization.objects.create(name=name, **kwargs)

    def create_location(self, organization, name='Kings Cross', **kwargs):
        return Location.objects.create(organization=organization, name=name, **kwargs)

    def create_user(self, email, organization, role='EMPLOYEE', **kwargs):
        kwargs.setdefault('first_name', email.split('@')[0].title())
        kwargs.setdefault('last_name', 'Test')
        kwargs.setdefault('hourly_rate', Decimal('10.00'))
        return CustomUser.objects.create_user(
            email=email,
            password='Pass12345!',
            role=role,
            organization=organization,
            **kwargs
        )
