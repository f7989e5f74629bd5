"""
Django admin registrations for the fleet models.

Superusers can inspect and correct data through ``/admin/``.  Approval
columns on profiles are read-only here; decisions go through the team
endpoints so the state rules in :mod:`fleet.services.team` are applied.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    DemoSession,
    DemoSessionDevice,
    Device,
    DeviceCategory,
    DeviceModel,
    DeviceMovement,
    EngineerHospital,
    Hospital,
    Profile,
    Region,
    Warehouse,
)


@admin.register(Region)
class RegionAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'code', 'parent', 'is_locked', 'created_at')
    list_filter = ('is_locked',)
    search_fields = ('name', 'code')


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'city')
    search_fields = ('name', 'city')


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'city', 'state', 'region')
    list_filter = ('region',)
    search_fields = ('name', 'city', 'state', 'address')


class DeviceModelInline(admin.TabularInline):
    model = DeviceModel
    extra = 0


@admin.register(DeviceCategory)
class DeviceCategoryAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'image_path')
    search_fields = ('name',)
    inlines = [DeviceModelInline]


@admin.register(DeviceModel)
class DeviceModelAdmin(admin.ModelAdmin):
    list_display = ('id', 'model_name', 'model_code', 'category', 'manufacturer')
    list_filter = ('category',)
    search_fields = ('model_name', 'model_code', 'manufacturer')


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    list_display = ('serial_number', 'device_model', 'usage_type', 'status', 'demo_status',
                    'current_location_type', 'current_hospital', 'current_warehouse')
    list_filter = ('usage_type', 'status', 'demo_status', 'current_location_type')
    search_fields = ('serial_number', 'barcode')


@admin.register(DeviceMovement)
class DeviceMovementAdmin(admin.ModelAdmin):
    list_display = ('device', 'moved_at', 'from_location_type', 'to_location_type', 'reason')
    search_fields = ('device__serial_number', 'reason')


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('user', 'full_name', 'role', 'approval_status', 'is_active', 'is_regional_manager', 'region')
    list_filter = ('role', 'approval_status', 'is_active', 'is_regional_manager')
    search_fields = ('full_name', 'phone', 'user__username', 'user__email')
    readonly_fields = ('approval_status', 'rejection_reason', 'decision_by', 'decision_at')


@admin.register(EngineerHospital)
class EngineerHospitalAdmin(admin.ModelAdmin):
    list_display = ('engineer', 'hospital', 'assigned_at')
    search_fields = ('engineer__full_name', 'hospital__name')


class DemoSessionDeviceInline(admin.TabularInline):
    model = DemoSessionDevice
    extra = 0


@admin.register(DemoSession)
class DemoSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'hospital', 'owner', 'start_date', 'end_date', 'created_at')
    search_fields = ('hospital__name', 'owner__full_name')
    inlines = [DemoSessionDeviceInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('action', 'user__username')
