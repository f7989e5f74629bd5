from django.conf import settings
from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from fleet.services import refresh
from fleet.services.reports import PAYLOADS


class Command(BaseCommand):
    help = "Warm the cached read models and broadcast a WebSocket refresh event."

    def handle(self, *args, **options):
        now = timezone.now()
        keys_refreshed = []

        for key, build in PAYLOADS.items():
            cache.set(key, build(), settings.DASHBOARD_CACHE_SECONDS)
            keys_refreshed.append(key)

        refresh.broadcast(keys_refreshed)

        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
