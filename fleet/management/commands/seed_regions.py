from django.core.management.base import BaseCommand
from django.db import transaction

from fleet.models import Region, Warehouse

PRIMARY_REGIONS = [
    ("North", "N"),
    ("South", "S"),
    ("East", "E"),
    ("West", "W"),
    ("Central", "C"),
    ("North East", "NE"),
    ("North West", "NW"),
    ("South West", "SW"),
]

DEFAULT_WAREHOUSE = "Main Warehouse"


class Command(BaseCommand):
    help = "Ensure the locked primary regions and a default warehouse exist (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--warehouse", default=DEFAULT_WAREHOUSE, help="name of the default warehouse")

    @transaction.atomic
    def handle(self, *args, **opts):
        for name, code in PRIMARY_REGIONS:
            region, created = Region.objects.get_or_create(
                name=name, code=code, defaults={"is_locked": True, "parent": None},
            )
            if not created and (not region.is_locked or region.parent_id):
                region.is_locked = True
                region.parent = None
                region.save(update_fields=["is_locked", "parent"])
            self.stdout.write(self.style.SUCCESS(f"ok: {name} ({code})"))

        if not Warehouse.objects.exists():
            Warehouse.objects.create(name=opts["warehouse"])
            self.stdout.write(self.style.SUCCESS(f"created warehouse: {opts['warehouse']}"))
        self.stdout.write(self.style.SUCCESS("Regions ensured."))
