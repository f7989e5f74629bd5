import datetime

import pytest
import requests
from django.core.cache import cache
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from rest_framework.exceptions import ValidationError

from fleet.exceptions import DeviceUnavailable, DuplicateRegion, InvalidTransition, NoWarehouse
from fleet.models import DemoSession, Device, DeviceMovement, Hospital, Profile, Region, Warehouse
from fleet.services import catalog, demo, hospitals, refresh, regions, team
from fleet.services.pincode import PincodeLookupError, lookup_pincode
from fleet.services.reports import PAYLOADS, hospital_overview, hospitals_payload, inventory_summary

from .helpers import (
    make_device, make_hospital, make_member, make_model, make_profile, make_subregion,
    make_warehouse, make_zone,
)

pytestmark = pytest.mark.django_db


# -- regions -----------------------------------------------------------------

def test_zone_and_subregion_names_are_derived_from_region():
    north = make_zone()
    delhi = make_subregion(north, 'Delhi', 'DL')
    assert regions.zone_name(delhi) == 'North'
    assert regions.subregion_name(delhi) == 'Delhi'
    assert regions.zone_name(north) == 'North'
    assert regions.subregion_name(north) is None
    assert regions.split_region(delhi) == (north.id, delhi.id)
    assert regions.split_region(None) == (None, None)


def test_duplicate_subregion_raises_friendly_error():
    north = make_zone()
    regions.create_subregion(parent_id=north.id, name='Delhi', code='DL')
    with pytest.raises(DuplicateRegion) as info:
        regions.create_subregion(parent_id=north.id, name='Delhi', code='DL')
    assert 'This region already exists.' in str(info.value.detail)
    assert Region.objects.filter(parent=north).count() == 1


def test_deleting_subregion_keeps_hospital_zone():
    north = make_zone()
    delhi = make_subregion(north, 'Delhi', 'DL')
    h = make_hospital('AIIMS', delhi)
    regions.delete_subregion(region_id=delhi.id)
    h.refresh_from_db()
    assert h.region_id == north.id


def test_primary_region_cannot_be_edited():
    north = make_zone()
    with pytest.raises(ValidationError):
        regions.update_subregion(region_id=north.id, name='N2', code='N2')


def test_subregion_must_belong_to_zone():
    north, south = make_zone(), make_zone('South', 'S')
    chennai = make_subregion(south, 'Chennai', 'CH')
    with pytest.raises(ValidationError):
        regions.resolve_hospital_region(north.id, chennai.id)
    assert regions.resolve_hospital_region(south.id, chennai.id) == chennai
    assert regions.resolve_hospital_region(south.id) == south


# -- hospitals ---------------------------------------------------------------

@pytest.mark.parametrize('poc, message', [
    ([], hospitals.POC_REQUIRED),
    ([{'name': '  ', 'phone': ''}], hospitals.POC_REQUIRED),
    ([{'name': 'Dr. Rao', 'phone': ''}], hospitals.POC_INCOMPLETE),
    ([{'name': 'Dr. Rao', 'phone': '98'}, {'name': '', 'phone': '97'}], hospitals.POC_INCOMPLETE),
])
def test_invalid_poc_is_rejected_before_any_write(poc, message):
    north = make_zone()
    with pytest.raises(ValidationError) as info:
        hospitals.create_hospital(name='AIIMS', poc=poc, primary_region_id=north.id)
    assert message in str(info.value.detail)
    assert Hospital.objects.count() == 0


def test_poc_entries_are_trimmed_and_blank_rows_dropped():
    poc = hospitals.validate_poc([{'name': ' Dr. Rao ', 'phone': ' 98 '}, {'name': '', 'phone': ''}])
    assert poc == [{'name': 'Dr. Rao', 'phone': '98'}]


def test_address_round_trip_with_pincode():
    stored = hospitals.compose_address('12 Ring Road', '110001')
    assert stored == '12 Ring Road, 110001'
    assert hospitals.split_address(stored) == ('12 Ring Road', '110001')
    assert hospitals.split_address('No pin here') == ('No pin here', '')
    assert hospitals.compose_address('', '110001') == '110001'
    assert hospitals.compose_address(None, None) is None


def test_hospital_overview_filters_and_counts():
    north = make_zone()
    delhi = make_subregion(north, 'Delhi', 'DL')
    south = make_zone('South', 'S')
    a = make_hospital('AIIMS', delhi, city='New Delhi')
    make_hospital('Apollo', south, city='Chennai')
    model = make_model()
    make_device(model, 'SN-1', hospital=a, status=Device.STATUS_DEPLOYED)
    eng = make_member('eng@example.com')
    hospitals.assign_engineer(a.id, eng.user_id)

    rows = hospital_overview(zone='North')
    assert [r['name'] for r in rows] == ['AIIMS']
    row = rows[0]
    assert row['zone'] == 'North'
    assert row['subregion'] == 'Delhi'
    assert row['devicesDeployed'] == 1
    assert row['engineersAssigned'] == 1
    assert [r['name'] for r in hospital_overview(q='chennai')] == ['Apollo']


def test_device_return_without_warehouse_fails():
    north = make_zone()
    h = make_hospital('AIIMS', north)
    d = make_device(make_model(), 'SN-1', hospital=h)
    with pytest.raises(NoWarehouse):
        hospitals.return_device(h.id, d.id)
    d.refresh_from_db()
    assert d.current_hospital_id == h.id


def test_assign_and_return_device_record_movements():
    north = make_zone()
    h = make_hospital('AIIMS', north)
    wh = make_warehouse()
    d = make_device(make_model(), 'SN-1', warehouse=wh)
    hospitals.assign_device(h.id, d.id)
    d.refresh_from_db()
    assert (d.current_location_type, d.current_hospital_id, d.current_warehouse_id) == ('HOSPITAL', h.id, None)
    with pytest.raises(DeviceUnavailable):
        hospitals.assign_device(h.id, d.id)
    hospitals.return_device(h.id, d.id)
    d.refresh_from_db()
    assert (d.current_location_type, d.current_hospital_id, d.current_warehouse_id) == ('WAREHOUSE', None, wh.id)
    assert DeviceMovement.objects.filter(device=d).count() == 2


def test_engineer_candidates_exclude_assigned_and_inactive():
    north = make_zone()
    h = make_hospital('AIIMS', north)
    assigned = make_member('a@example.com')
    free = make_member('b@example.com')
    make_member('c@example.com', active=False)
    hospitals.assign_engineer(h.id, assigned.user_id)
    assert [c['userId'] for c in hospitals.engineer_candidates(h.id)] == [free.user_id]


# -- postal lookup -----------------------------------------------------------

class _FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


class _FakeSession:
    def __init__(self, payload=None, exc=None):
        self.payload, self.exc, self.calls = payload, exc, []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.exc:
            raise self.exc
        return _FakeResponse(self.payload)


def test_pincode_lookup_reads_first_post_office(settings):
    settings.PINCODE_API_URL = 'https://pin.example/pincode/'
    http = _FakeSession([{'Status': 'Success', 'PostOffice': [{'District': 'New Delhi', 'State': 'Delhi'}]}])
    assert lookup_pincode('110001', session=http) == {'pincode': '110001', 'city': 'New Delhi', 'state': 'Delhi'}
    assert http.calls == [('https://pin.example/pincode/110001', settings.PINCODE_TIMEOUT)]


@pytest.mark.parametrize('pincode, http, message', [
    ('11000', _FakeSession([]), 'Enter a valid 6 digit pincode.'),
    ('110001', _FakeSession(exc=requests.ConnectionError('down')), 'Unable to fetch location.'),
    ('110001', _FakeSession([{'Status': 'Error', 'PostOffice': None}]), 'No location found for this pincode.'),
])
def test_pincode_lookup_failures(pincode, http, message):
    with pytest.raises(PincodeLookupError) as info:
        lookup_pincode(pincode, session=http)
    assert str(info.value) == message


# -- demo --------------------------------------------------------------------

@pytest.mark.parametrize('start, end, tab', [
    ('2026-01-10', '2026-01-20', demo.TAB_ONGOING),
    ('2026-01-15', '2026-01-15', demo.TAB_ONGOING),
    ('2026-01-16', '2026-01-20', demo.TAB_UPCOMING),
    ('2026-01-01', '2026-01-14', demo.TAB_PAST),
])
def test_classify_tab(start, end, tab):
    assert demo.classify_tab(start, end, today=datetime.date(2026, 1, 15)) == tab


@pytest.mark.parametrize('statuses, expected', [
    ([], demo.PAST_EXPIRED),
    (['RETURNED', 'RETURNED'], demo.PAST_RETURNED),
    (['RETURNED', 'IN_USE'], demo.PAST_EXPIRED),
    (['RETURNED', 'AVAILABLE'], demo.PAST_IN_TRANSIT),
    ([None], demo.PAST_IN_TRANSIT),
])
def test_past_status(statuses, expected):
    assert demo.past_status(statuses) == expected


def test_highlight_marks_devices_at_other_hospitals_in_same_subregion():
    north = make_zone()
    sub = make_subregion(north, 'North', 'NTH')
    other_sub = make_subregion(north, 'Punjab', 'PB')
    a = make_hospital('Hospital A', sub)
    b = make_hospital('Hospital B', sub)
    c = make_hospital('Hospital C', other_sub)
    model = make_model()
    at_b = make_device(model, 'SN-B', hospital=b)
    at_a = make_device(model, 'SN-A', hospital=a)
    at_c = make_device(model, 'SN-C', hospital=c)
    stocked = make_device(model, 'SN-W', warehouse=make_warehouse())

    devices = list(demo.model_candidates(model.id))
    assert demo.highlighted_ids(devices, a) == {at_b.id}
    assert demo.highlighted_ids(devices, None) == set()
    # zone-only target has no subregion to compare
    zone_only = make_hospital('Zone Only', north)
    assert demo.highlighted_ids(devices, zone_only) == set()
    assert {at_a.id, at_c.id, stocked.id} <= {d.id for d in devices}


def test_candidates_only_include_available_demo_units():
    model = make_model()
    ok = make_device(model, 'SN-1')
    make_device(model, 'SN-2', demo_status=Device.DEMO_IN_USE)
    make_device(model, 'SN-3', demo_status=Device.DEMO_RETURNED)
    make_device(model, 'SN-4', usage=Device.USAGE_SOLD, demo_status=None)
    assert [d.id for d in demo.model_candidates(model.id)] == [ok.id]
    assert [d.id for d in demo.model_candidates(model.id, 'sn-1')] == [ok.id]
    assert list(demo.model_candidates(model.id, 'nope')) == []


def test_global_search_ignores_model_and_caps_results():
    first, second = make_model(), make_model(name='Sono X2', code='SX2')
    for i in range(12):
        make_device(first if i % 2 else second, f'AB-{i:02d}')
    make_device(first, 'AB-99', demo_status=Device.DEMO_IN_USE)
    found = list(demo.global_serial_search('ab-'))
    assert len(found) == demo.GLOBAL_SEARCH_LIMIT
    assert all(d.demo_status == Device.DEMO_AVAILABLE for d in found)
    assert list(demo.global_serial_search('   ')) == []


def test_device_bin_is_an_ordered_set():
    bin_ = demo.DeviceBin([3, 1, 3])
    bin_.add('2')
    bin_.add(1)
    assert bin_.as_list() == [3, 1, 2]
    bin_.remove(1)
    assert 1 not in bin_ and len(bin_) == 2
    session = _Session()
    bin_.save(session)
    assert session.modified
    assert demo.DeviceBin.from_session(session).as_list() == [3, 2]


class _Session(dict):
    modified = False


def test_owner_options_split_regional_team_from_others():
    north = make_zone()
    south = make_zone('South', 'S')
    h = make_hospital('AIIMS', make_subregion(north, 'Delhi', 'DL'))
    manager = make_member('mgr@example.com', Profile.ROLE_REGIONAL_MANAGER, full_name='Meera',
                          is_regional_manager=True, region=north)
    report = make_member('eng@example.com', full_name='Arjun', manager=manager)
    outsider = make_member('out@example.com', full_name='Zoya')
    south_mgr = make_member('smgr@example.com', Profile.ROLE_REGIONAL_MANAGER, full_name='Bala',
                            is_regional_manager=True, region=south)
    make_member('admin@example.com', Profile.ROLE_ADMIN)
    make_member('off@example.com', active=False)
    make_profile('pending@example.com')

    options = demo.owner_options(h)
    assert [o['userId'] for o in options['primary']] == [report.user_id, manager.user_id]
    assert [o['userId'] for o in options['other']] == [south_mgr.user_id, outsider.user_id]


def _demo_setup():
    north = make_zone()
    h = make_hospital('AIIMS', north)
    owner = make_member('owner@example.com')
    model = make_model()
    return h, owner, model


def test_create_demo_session_updates_devices():
    h, owner, model = _demo_setup()
    d1, d2 = make_device(model, 'SN-1'), make_device(model, 'SN-2')
    session = demo.create_demo_session(hospital_id=h.id, owner_id=owner.user_id, device_ids=[d2.id, d1.id, d2.id],
                                       start_date='2026-01-10', end_date='2026-01-20')
    assert sorted(session.devices.values_list('id', flat=True)) == sorted([d1.id, d2.id])
    for d in (d1, d2):
        d.refresh_from_db()
        assert d.demo_status == Device.DEMO_IN_USE
        assert d.demo_assigned_hospital_id == h.id
        assert d.demo_last_used_at is not None


def test_create_demo_session_is_all_or_nothing():
    h, owner, model = _demo_setup()
    free = make_device(model, 'SN-1')
    busy = make_device(model, 'SN-2', demo_status=Device.DEMO_IN_USE)
    with pytest.raises(DeviceUnavailable):
        demo.create_demo_session(hospital_id=h.id, owner_id=owner.user_id, device_ids=[free.id, busy.id],
                                 start_date='2026-01-10', end_date='2026-01-20')
    assert DemoSession.objects.count() == 0
    free.refresh_from_db()
    assert free.demo_status == Device.DEMO_AVAILABLE
    assert free.demo_assigned_hospital_id is None


def test_create_demo_session_rejects_overlapping_bookings():
    h, owner, model = _demo_setup()
    d = make_device(model, 'SN-1')
    kwargs = dict(hospital_id=h.id, owner_id=owner.user_id, device_ids=[d.id], demo_status=Device.DEMO_AVAILABLE)
    demo.create_demo_session(start_date='2026-01-10', end_date='2026-01-20', **kwargs)
    with pytest.raises(DeviceUnavailable):
        demo.create_demo_session(start_date='2026-01-20', end_date='2026-01-25', **kwargs)
    demo.create_demo_session(start_date='2026-01-21', end_date='2026-01-25', **kwargs)
    assert DemoSession.objects.count() == 2


@pytest.mark.parametrize('overrides, field', [
    ({'hospital_id': None}, 'hospitalId'),
    ({'owner_id': None}, 'ownerId'),
    ({'device_ids': []}, 'deviceIds'),
    ({'start_date': None}, 'startDate'),
    ({'end_date': '2026-01-01'}, 'endDate'),
])
def test_create_demo_session_validation(overrides, field):
    h, owner, model = _demo_setup()
    d = make_device(model, 'SN-1')
    kwargs = dict(hospital_id=h.id, owner_id=owner.user_id, device_ids=[d.id],
                  start_date='2026-01-10', end_date='2026-01-20')
    kwargs.update(overrides)
    with pytest.raises(ValidationError) as info:
        demo.create_demo_session(**kwargs)
    assert field in info.value.detail
    assert DemoSession.objects.count() == 0


def test_sessions_for_tab_reports_return_status_for_past():
    h, owner, model = _demo_setup()
    d = make_device(model, 'SN-1')
    demo.create_demo_session(hospital_id=h.id, owner_id=owner.user_id, device_ids=[d.id],
                             start_date='2026-01-01', end_date='2026-01-05')
    Device.objects.filter(id=d.id).update(demo_status=Device.DEMO_RETURNED)
    today = datetime.date(2026, 1, 15)
    assert demo.sessions_for_tab(demo.TAB_ONGOING, today) == []
    past = demo.sessions_for_tab(demo.TAB_PAST, today)
    assert len(past) == 1
    assert past[0]['returnStatus'] == demo.PAST_RETURNED
    assert past[0]['ownerName'] == owner.full_name


# -- team --------------------------------------------------------------------

def test_approve_then_reject_is_not_allowed():
    p = make_profile('new@example.com')
    team.approve(p.user_id, Profile.ROLE_FIELD_ENGINEER)
    p.refresh_from_db()
    assert (p.approval_status, p.role, p.is_active) == ('APPROVED', 'FIELD_ENGINEER', True)
    assert p.decision_at is not None
    with pytest.raises(InvalidTransition):
        team.reject(p.user_id, 'late')
    with pytest.raises(InvalidTransition):
        team.approve(p.user_id, Profile.ROLE_ADMIN)


def test_rejected_request_can_be_approved_later():
    p = make_profile('new@example.com')
    team.reject(p.user_id, '<b>incomplete</b> form')
    p.refresh_from_db()
    assert (p.approval_status, p.is_active, p.rejection_reason) == ('REJECTED', False, 'incomplete form')
    with pytest.raises(InvalidTransition):
        team.activate(p.user_id)
    team.approve(p.user_id, Profile.ROLE_REGIONAL_MANAGER)
    p.refresh_from_db()
    assert (p.approval_status, p.is_active, p.rejection_reason) == ('APPROVED', True, None)


def test_deactivating_manager_detaches_reports():
    north = make_zone()
    manager = make_member('mgr@example.com', Profile.ROLE_REGIONAL_MANAGER, is_regional_manager=True, region=north)
    boss = make_member('boss@example.com', Profile.ROLE_REGIONAL_MANAGER)
    Profile.objects.filter(pk=manager.pk).update(manager=boss)
    reports = [make_member(f'e{i}@example.com', manager=manager) for i in range(2)]

    team.deactivate(manager.user_id)

    manager.refresh_from_db()
    assert manager.is_active is False
    assert manager.is_regional_manager is False
    assert manager.manager_id is None
    assert not Profile.objects.filter(manager=manager).exists()
    for r in reports:
        r.refresh_from_db()
        assert r.manager_id is None
        assert r.is_active is True


def test_remove_regional_manager_keeps_account_active():
    manager = make_member('mgr@example.com', Profile.ROLE_REGIONAL_MANAGER, is_regional_manager=True)
    report = make_member('e@example.com', manager=manager)
    team.remove_regional_manager(manager.user_id)
    manager.refresh_from_db()
    report.refresh_from_db()
    assert manager.is_active and not manager.is_regional_manager
    assert report.manager_id is None


def test_upsert_profile_rejects_self_management():
    p = make_member('e@example.com')
    with pytest.raises(ValidationError):
        team.upsert_profile(user_id=p.user_id, manager_id=p.user_id)


def test_upsert_profile_requires_a_primary_region():
    p = make_member('e@example.com')
    delhi = make_subregion(make_zone(), 'Delhi', 'DL')
    for region_id in (delhi.id, delhi.id + 1000):
        with pytest.raises(ValidationError) as exc:
            team.upsert_profile(user_id=p.user_id, region_id=region_id)
        assert 'regionId' in exc.value.detail
    profile = team.upsert_profile(user_id=p.user_id, region_id=delhi.parent_id)
    assert profile.region_id == delhi.parent_id


def test_team_overview_orders_pending_and_rejected():
    first = make_profile('first@example.com')
    second = make_profile('second@example.com')
    Profile.objects.filter(pk=first.pk).update(created_at=second.created_at - datetime.timedelta(days=1))
    make_member('m@example.com', Profile.ROLE_REGIONAL_MANAGER, is_regional_manager=True)
    overview = team.team_overview()
    assert [p['userId'] for p in overview['pending']] == [second.user_id, first.user_id]
    assert len(overview['managers']) == 1
    assert overview['rejected'] == []


# -- read models and caches --------------------------------------------------

def test_inventory_summary_counts():
    model = make_model()
    h = make_hospital('AIIMS')
    make_device(model, 'SN-1', hospital=h, status=Device.STATUS_DEPLOYED)
    make_device(model, 'SN-2', usage=Device.USAGE_SOLD, demo_status=None, hospital=h, status=Device.STATUS_DEPLOYED)
    make_device(model, 'SN-3', status=Device.STATUS_REPAIR)
    make_device(model, 'SN-4')
    summary = inventory_summary()
    assert summary == {
        'total_devices': 4,
        'in_inventory': 1,
        'deployed': 2,
        'under_service': 1,
        'scrapped': 0,
        'demo_deployed': 1,
        'sold_deployed': 1,
    }


def test_refresh_caches_command_warms_every_payload():
    make_model()
    call_command('refresh_caches')
    for key in PAYLOADS:
        assert cache.get(key)['ok'] is True


def test_invalidate_runs_after_commit(django_capture_on_commit_callbacks):
    cache.set(refresh.DEMO_KEY, {'ok': True})
    with django_capture_on_commit_callbacks(execute=True):
        refresh.invalidate(refresh.DEMO_KEY)
    assert cache.get(refresh.DEMO_KEY) is None


def test_seed_regions_is_idempotent():
    call_command('seed_regions')
    call_command('seed_regions')
    assert Region.objects.filter(parent__isnull=True, is_locked=True).count() == 8
    assert Warehouse.objects.count() == 1


@pytest.mark.parametrize('action', ['update', 'delete'])
def test_catalog_device_changes_refresh_hospital_list(action, django_capture_on_commit_callbacks):
    wh = make_warehouse()
    city = make_hospital('City')
    device = make_device(make_model(), 'SN-9', usage=Device.USAGE_SOLD, demo_status=None,
                         hospital=city, status=Device.STATUS_DEPLOYED)
    assert refresh.cached(refresh.HOSPITALS_KEY, hospitals_payload)['data'][0]['devicesDeployed'] == 1

    with django_capture_on_commit_callbacks(execute=True):
        if action == 'update':
            catalog.update_device(device.id, serial_number='SN-9', barcode='BC-SN-9', warehouse_id=wh.id,
                                  usage_type=Device.USAGE_SOLD, status=Device.STATUS_IN_INVENTORY)
        else:
            catalog.delete_device(device.id)

    assert cache.get(refresh.HOSPITALS_KEY) is None
    assert refresh.cached(refresh.HOSPITALS_KEY, hospitals_payload)['data'][0]['devicesDeployed'] == 0


def test_category_image_is_written_after_commit(settings, tmp_path, django_capture_on_commit_callbacks):
    settings.MEDIA_ROOT = tmp_path
    image = SimpleUploadedFile('front.png', b'\x89PNG\r\n', content_type='image/png')
    with django_capture_on_commit_callbacks() as callbacks:
        category = catalog.create_category(name='Monitors', skus=[{'model_name': 'M1', 'model_code': 'M1'}],
                                           image=image)
    path = f'{settings.CATEGORY_IMAGES_BUCKET}/{category.image_path}'
    assert category.image_path == f'device-categories/{category.id}.png'
    assert not default_storage.exists(path)

    for callback in callbacks:
        callback()
    assert default_storage.exists(path)
