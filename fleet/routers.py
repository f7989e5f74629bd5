"""
URL mappings for the fleet API.

Paths carry no trailing slash.  Role-gated surfaces live under
``api/admin/``, ``api/manager/`` and ``api/engineer/``.
"""
from django.urls import path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view, signup_view
from .views import api, catalog, demo, engineer, health, hospitals, manager, regions, team
from .views.dashboard import admin_dashboard

urlpatterns = [
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/signup', signup_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', jwt_logout_view),
    # Read-only feeds
    path('api/demo', api.demo_feed),
    path('api/inventory', api.inventory_feed),
    # Dashboard
    path('api/admin/dashboard', admin_dashboard),
    # Regions
    path('api/admin/regions', regions.list_regions),
    path('api/admin/regions/subregions', regions.add_subregion),
    path('api/admin/regions/subregions/<int:region_id>', regions.subregion_detail),
    # Hospitals
    path('api/admin/hospitals', hospitals.hospitals),
    path('api/admin/hospitals/<int:hospital_id>', hospitals.hospital_detail),
    path('api/admin/hospitals/<int:hospital_id>/engineers', hospitals.hospital_engineers),
    path('api/admin/hospitals/<int:hospital_id>/devices', hospitals.hospital_devices),
    path('api/admin/pincode/<str:pincode>', hospitals.pincode_lookup),
    # Demo management
    path('api/admin/demo', demo.demo_overview),
    path('api/admin/demo/options', demo.demo_options),
    path('api/admin/demo/candidates', demo.demo_candidates),
    path('api/admin/demo/search', demo.demo_search),
    path('api/admin/demo/bin', demo.demo_bin),
    path('api/admin/demo/sessions', demo.create_demo),
    # Catalog
    path('api/admin/categories', catalog.categories),
    path('api/admin/categories/<int:category_id>/models', catalog.category_models),
    path('api/admin/models/<int:model_id>', catalog.model_detail),
    path('api/admin/models/<int:model_id>/devices', catalog.model_devices),
    path('api/admin/devices/<int:device_id>', catalog.device_detail),
    # Team
    path('api/admin/team', team.team_overview),
    path('api/admin/team/managers/<int:manager_id>', team.manager_detail),
    path('api/admin/team/approve', team.approve_request),
    path('api/admin/team/reject', team.reject_request),
    path('api/admin/team/activate', team.activate_member),
    path('api/admin/team/deactivate', team.deactivate_member),
    path('api/admin/team/remove-regional-manager', team.remove_regional_manager),
    path('api/admin/team/profile', team.upsert_profile),
    path('api/admin/team/users', team.create_team_user),
    path('api/admin/team/users/delete', team.delete_team_user),
    path('api/admin/team/engineer-hospitals', team.engineer_hospital),
    # Manager
    path('api/manager/dashboard', manager.manager_dashboard),
    # Engineer
    path('api/engineer/dashboard', engineer.engineer_dashboard),
    path('api/engineer/hospitals/<int:hospital_id>', engineer.engineer_hospital),
    path('api/engineer/devices/<int:device_id>', engineer.engineer_device),
]
