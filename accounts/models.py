from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.core.validators import MinValueValidator
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
import uuid


class CustomUserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', 'ADMIN')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


def default_break_rules():
    return list(settings.DEFAULT_BREAK_RULES)


class Organization(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, null=True)
    timezone = models.CharField(max_length=50, default='Europe/London')
    currency = models.CharField(max_length=10, default='GBP')

    # Fallback coordinates when a location has none of its own
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    radius = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(5)])

    # Clock-in rules
    require_geolocation = models.BooleanField(default=True)
    clock_in_window_minutes = models.PositiveIntegerField(default=settings.DEFAULT_CLOCK_IN_WINDOW_MINUTES)
    late_grace_minutes = models.PositiveIntegerField(default=settings.DEFAULT_LATE_GRACE_MINUTES)
    clock_out_grace_minutes = models.PositiveIntegerField(default=settings.DEFAULT_CLOCK_OUT_GRACE_MINUTES)

    # Ordered tiers of {"min_hours", "break_minutes"}
    break_rules = models.JSONField(default=default_break_rules, blank=True)
    enforce_break_rules = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'organizations'

    def __str__(self):
        return self.name


class Location(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='locations')
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True, null=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    radius = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(5)])  # Geofence radius in metres
    # Empty list means "use the organization's rules"
    break_rules = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'locations'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['organization', 'name'], name='unique_location_name_per_org'),
        ]

    def __str__(self):
        return self.name


class CustomUser(AbstractUser):
    ROLE_CHOICES = settings.STAFF_ROLES_CHOICES

    PAY_TYPE_CHOICES = (
        ('HOURLY', 'Hourly'),
        ('MONTHLY', 'Monthly salary'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='EMPLOYEE')
    phone = models.CharField(max_length=20, blank=True, null=True)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='staff', null=True, blank=True)
    primary_location = models.ForeignKey(
        Location, on_delete=models.SET_NULL, related_name='primary_staff', null=True, blank=True
    )
    pay_type = models.CharField(max_length=10, choices=PAY_TYPE_CHOICES, default='HOURLY')
    hourly_rate = models.DecimalField(max_digits=8, decimal_places=2, default=0)
    monthly_salary = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    username = None
    email = models.EmailField(unique=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    objects = CustomUserManager()

    class Meta:
        db_table = 'users'

    def __str__(self):
        return self.get_full_name() or self.email

    @property
    def is_manager_role(self):
        return self.is_superuser or self.role in settings.MANAGER_ROLES

    @property
    def is_salaried(self):
        return self.pay_type == 'MONTHLY'


class LocationMembership(models.Model):
    """Location a staff member works at; limits which shifts they see"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name='memberships')
    staff = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='location_memberships')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'location_staff'
        constraints = [
            models.UniqueConstraint(fields=['location', 'staff'], name='unique_location_membership'),
        ]

    def __str__(self):
        return f'{self.staff} @ {self.location}'


class AuditLog(models.Model):
    """Audit trail for workforce actions (compliance & debugging)"""

    ACTION_TYPES = (
        ('CREATE', 'Created'),
        ('UPDATE', 'Updated'),
        ('DELETE', 'Deleted'),
        ('ARCHIVE', 'Archived'),
        ('ASSIGN', 'Assigned'),
        ('CLOCK_IN', 'Clock In'),
        ('CLOCK_OUT', 'Clock Out'),
        ('BREAK_START', 'Break Started'),
        ('BREAK_END', 'Break Ended'),
        ('APPROVE', 'Approved'),
        ('REJECT', 'Rejected'),
        ('CANCEL', 'Cancelled'),
        ('CORRECTION', 'Manager Correction'),
        ('OTHER', 'Other'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='audit_logs', null=True, blank=True)
    user = models.ForeignKey(CustomUser, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action_type = models.CharField(max_length=50, choices=ACTION_TYPES)
    entity_type = models.CharField(max_length=100)
    entity_id = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField()
    old_values = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_logs_entity_idx'),
        ]

    def __str__(self):
        return f"{self.get_action_type_display()} by {self.user.email if self.user else 'Unknown'}"

    @classmethod
    def create_log(cls, organization, user, action_type, entity_type, description,
                   entity_id=None, old_values=None, new_values=None):
        """Create an audit log entry."""
        return cls.objects.create(
            organization=organization,
            user=user,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            description=description,
            old_values=old_values or {},
            new_values=new_values or {},
        )
