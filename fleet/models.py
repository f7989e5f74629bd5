"""
Database models for the device fleet backend.

These models capture the regions, hospitals and warehouses that devices
move between, the device catalog (categories, models, serialised units),
demo sessions and the team profiles layered on top of Django's auth users.
Where the dashboards need derived values (zone, subregion, counts) they are
computed by :mod:`fleet.services` rather than stored twice.
"""
from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q


class Region(models.Model):
    """Two-level region tree.

    Primary regions are seeded, locked and have no parent.  Subregions
    always reference a primary region and are managed from the admin UI.
    """
    name = models.CharField(max_length=120)
    code = models.CharField(max_length=40)
    parent = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.CASCADE, related_name='subregions'
    )
    is_locked = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['name', 'code'], name='region_name_code_unique'),
            models.CheckConstraint(
                condition=Q(is_locked=False) | Q(parent__isnull=True),
                name='region_locked_is_primary',
            ),
        ]

    @property
    def is_primary(self) -> bool:
        return self.parent_id is None

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Warehouse(models.Model):
    name = models.CharField(max_length=255)
    city = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name', 'id']

    def __str__(self) -> str:
        return self.name


class Hospital(models.Model):
    """A customer site.

    ``region`` points either at a primary region (zone only) or at a
    subregion; zone and subregion names are derived from it.  ``poc`` is a
    list of ``{"name", "phone"}`` entries.
    """
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True, null=True)
    city = models.CharField(max_length=120, blank=True, null=True)
    state = models.CharField(max_length=120, blank=True, null=True)
    region = models.ForeignKey(
        Region, null=True, blank=True, on_delete=models.SET_NULL, related_name='hospitals'
    )
    poc = models.JSONField(default=list, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    @property
    def zone(self) -> str | None:
        from fleet.services.regions import zone_name
        return zone_name(self.region)

    @property
    def subregion(self) -> str | None:
        from fleet.services.regions import subregion_name
        return subregion_name(self.region)

    def __str__(self) -> str:
        return self.name


class DeviceCategory(models.Model):
    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True, null=True)
    # Storage path inside the category image bucket, or an absolute URL.
    image_path = models.CharField(max_length=512, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'device categories'

    def __str__(self) -> str:
        return self.name


class DeviceModel(models.Model):
    """A SKU within a category."""
    category = models.ForeignKey(DeviceCategory, on_delete=models.CASCADE, related_name='models')
    model_name = models.CharField(max_length=255)
    model_code = models.CharField(max_length=120, db_index=True)
    manufacturer = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    specs = models.JSONField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['model_name']

    def __str__(self) -> str:
        return f"{self.model_name} ({self.model_code})"


class Device(models.Model):
    OWNERSHIP_COMPANY = 'COMPANY'
    OWNERSHIP_CUSTOMER = 'CUSTOMER'
    OWNERSHIP_CHOICES = [
        (OWNERSHIP_COMPANY, 'Company'),
        (OWNERSHIP_CUSTOMER, 'Customer'),
    ]

    USAGE_DEMO = 'DEMO'
    USAGE_SOLD = 'SOLD'
    USAGE_CHOICES = [
        (USAGE_DEMO, 'Demo unit'),
        (USAGE_SOLD, 'Sold'),
    ]

    STATUS_IN_INVENTORY = 'IN_INVENTORY'
    STATUS_DEPLOYED = 'DEPLOYED'
    STATUS_UNDER_SERVICE = 'UNDER_SERVICE'
    STATUS_REPAIR = 'REPAIR'
    STATUS_SCRAPPED = 'SCRAPPED'
    STATUS_CHOICES = [
        (STATUS_IN_INVENTORY, 'In inventory'),
        (STATUS_DEPLOYED, 'Deployed'),
        (STATUS_UNDER_SERVICE, 'Under service'),
        (STATUS_REPAIR, 'Repair'),
        (STATUS_SCRAPPED, 'Scrapped'),
    ]

    DEMO_AVAILABLE = 'AVAILABLE'
    DEMO_IN_USE = 'IN_USE'
    DEMO_RETURNED = 'RETURNED'
    DEMO_STATUS_CHOICES = [
        (DEMO_AVAILABLE, 'Available'),
        (DEMO_IN_USE, 'In use'),
        (DEMO_RETURNED, 'Returned'),
    ]

    LOCATION_HOSPITAL = 'HOSPITAL'
    LOCATION_WAREHOUSE = 'WAREHOUSE'
    LOCATION_CHOICES = [
        (LOCATION_HOSPITAL, 'Hospital'),
        (LOCATION_WAREHOUSE, 'Warehouse'),
    ]

    serial_number = models.CharField(max_length=120, unique=True)
    barcode = models.CharField(max_length=120, blank=True, null=True)
    device_model = models.ForeignKey(DeviceModel, on_delete=models.PROTECT, related_name='devices')
    ownership_type = models.CharField(max_length=16, choices=OWNERSHIP_CHOICES, default=OWNERSHIP_COMPANY)
    usage_type = models.CharField(max_length=16, choices=USAGE_CHOICES, default=USAGE_DEMO, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_IN_INVENTORY, db_index=True)
    # Only meaningful for DEMO devices.
    demo_status = models.CharField(
        max_length=16, choices=DEMO_STATUS_CHOICES, null=True, blank=True, db_index=True
    )
    demo_last_used_at = models.DateTimeField(null=True, blank=True)
    demo_assigned_hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_demo_devices'
    )
    current_location_type = models.CharField(
        max_length=16, choices=LOCATION_CHOICES, default=LOCATION_WAREHOUSE
    )
    current_hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='devices'
    )
    current_warehouse = models.ForeignKey(
        Warehouse, null=True, blank=True, on_delete=models.SET_NULL, related_name='devices'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['serial_number']
        constraints = [
            # A hospital-located device never keeps a warehouse key and vice versa.
            models.CheckConstraint(
                condition=(
                    Q(current_location_type='HOSPITAL', current_warehouse__isnull=True)
                    | Q(current_location_type='WAREHOUSE', current_hospital__isnull=True)
                ),
                name='device_location_consistent',
            ),
        ]

    def place_at_hospital(self, hospital: Hospital) -> None:
        self.current_location_type = self.LOCATION_HOSPITAL
        self.current_hospital = hospital
        self.current_warehouse = None

    def place_at_warehouse(self, warehouse: Warehouse) -> None:
        self.current_location_type = self.LOCATION_WAREHOUSE
        self.current_hospital = None
        self.current_warehouse = warehouse

    def __str__(self) -> str:
        return self.serial_number


class DeviceMovement(models.Model):
    """History of device location changes."""
    device = models.ForeignKey(Device, on_delete=models.CASCADE, related_name='movements')
    moved_at = models.DateTimeField(auto_now_add=True, db_index=True)
    reason = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    from_location_type = models.CharField(max_length=16, blank=True, null=True)
    to_location_type = models.CharField(max_length=16, blank=True, null=True)
    from_hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    to_hospital = models.ForeignKey(
        Hospital, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    from_warehouse = models.ForeignKey(
        Warehouse, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    to_warehouse = models.ForeignKey(
        Warehouse, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    moved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    class Meta:
        ordering = ['-moved_at', '-id']

    def __str__(self) -> str:
        return f"{self.device_id}: {self.from_location_type} → {self.to_location_type}"


class Profile(models.Model):
    """Team member record keyed by the auth user.

    The approval columns are written only through
    :func:`fleet.services.team.apply_state`, which keeps them consistent
    with the :data:`fleet.services.team.ProfileState` union.
    """
    ROLE_ADMIN = 'ADMIN'
    ROLE_REGIONAL_MANAGER = 'REGIONAL_MANAGER'
    ROLE_FIELD_ENGINEER = 'FIELD_ENGINEER'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_REGIONAL_MANAGER, 'Regional manager'),
        (ROLE_FIELD_ENGINEER, 'Field engineer'),
    ]

    APPROVAL_PENDING = 'PENDING'
    APPROVAL_APPROVED = 'APPROVED'
    APPROVAL_REJECTED = 'REJECTED'
    APPROVAL_CHOICES = [
        (APPROVAL_PENDING, 'Pending'),
        (APPROVAL_APPROVED, 'Approved'),
        (APPROVAL_REJECTED, 'Rejected'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, primary_key=True, on_delete=models.CASCADE, related_name='profile'
    )
    full_name = models.CharField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, null=True, blank=True, db_index=True)
    approval_status = models.CharField(
        max_length=10, choices=APPROVAL_CHOICES, default=APPROVAL_PENDING, db_index=True
    )
    rejection_reason = models.TextField(blank=True, null=True)
    decision_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    decision_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=False)
    is_regional_manager = models.BooleanField(default=False)
    manager = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='reports'
    )
    # Primary region a regional manager is responsible for.
    region = models.ForeignKey(
        Region, null=True, blank=True, on_delete=models.SET_NULL, related_name='managers'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['full_name', 'user_id']
        constraints = [
            models.CheckConstraint(
                condition=Q(approval_status='APPROVED') | Q(is_active=False),
                name='profile_only_approved_active',
            ),
        ]

    @property
    def display_name(self) -> str:
        return self.full_name or str(self.user_id)

    def __str__(self) -> str:
        return f"{self.display_name} ({self.role or self.approval_status})"


class EngineerHospital(models.Model):
    engineer = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='hospital_assignments')
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='engineer_assignments')
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('engineer', 'hospital')]

    def __str__(self) -> str:
        return f"{self.engineer_id} @ {self.hospital_id}"


class DemoSession(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='demo_sessions')
    owner = models.ForeignKey(
        Profile, null=True, blank=True, on_delete=models.SET_NULL, related_name='owned_demos'
    )
    start_date = models.DateField()
    end_date = models.DateField()
    devices = models.ManyToManyField(Device, through='DemoSessionDevice', related_name='demo_sessions')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['start_date', 'end_date'], name='demo_session_dates_idx'),
        ]

    def __str__(self) -> str:
        return f"Demo #{self.id} @ {self.hospital_id} {self.start_date:%F}~{self.end_date:%F}"


class DemoSessionDevice(models.Model):
    demo = models.ForeignKey(DemoSession, on_delete=models.CASCADE, related_name='session_devices')
    device = models.ForeignKey(Device, on_delete=models.CASCADE, related_name='session_links')

    class Meta:
        unique_together = [('demo', 'device')]

    def __str__(self) -> str:
        return f"{self.demo_id}:{self.device_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
