"""Device fleet application.

Models, services, serializers, views and route registrations for the
regions, hospitals, device catalog, demo scheduling and team approval
workflows behind the admin, regional manager and field engineer portals.
"""
