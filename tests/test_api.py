"""HTTP API and desk events."""
import pytest

from extensions import socketio
from models.database import get_db


@pytest.fixture
def client(app, catalog):
    return app.test_client()


def login(client, email='clerk@videoclub.com'):
    response = client.post('/api/auth/login', json={'email': email})
    assert response.status_code == 200
    return response.get_json()['user']


def test_endpoints_require_login(client):
    response = client.get('/api/members')

    assert response.status_code == 401
    assert response.get_json()['error'] == 'login_required'


def test_login_and_me(client):
    user = login(client, 'CLERK@videoclub.com')
    assert user['role'] == 'employee'

    assert client.get('/api/auth/me').get_json()['user']['email'] == 'clerk@videoclub.com'

    client.post('/api/auth/logout')
    assert client.get('/api/auth/me').status_code == 401


def test_login_errors(client):
    assert client.post('/api/auth/login', json={}).status_code == 422
    response = client.post('/api/auth/login', json={'email': 'nobody@videoclub.com'})
    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_settings_are_admin_only(client):
    login(client)
    assert client.get('/api/config').get_json()['config']['fine_per_day'] == '2.50'
    assert client.put('/api/config', json={'fine_per_day': '1.25'}).status_code == 403

    login(client, 'admin@videoclub.com')
    response = client.put('/api/config', json={'fine_per_day': '1.25'})
    assert response.status_code == 200
    assert response.get_json()['config']['fine_per_day'] == '1.25'
    assert client.get('/api/logs').get_json()['logs'][0]['action'] == 'Settings Updated'

    response = client.put('/api/config', json={'default_rental_days': 0})
    assert response.status_code == 422
    assert response.get_json()['error'] == 'validation_error'


def test_rent_and_return_at_the_counter(client, catalog):
    login(client)
    copy_id = catalog.copies['BC-1'].id

    response = client.post('/api/rentals/cart', json={
        'member_id': catalog.ana.id, 'barcodes': ['BC-1', 'NOPE']
    })
    cart = response.get_json()
    assert cart['eligibility']['eligible'] is True
    assert [line['copy']['id'] for line in cart['cart']['lines']] == [copy_id]
    assert cart['cart']['rejected'][0]['error'] == 'copy_not_found'
    assert cart['cart']['total'] == '7.50'

    response = client.post('/api/rentals', json={
        'member_id': catalog.ana.id, 'copy_ids': [copy_id]
    })
    assert response.status_code == 201
    rental = response.get_json()['rentals'][0]
    assert rental['daily_rate'] == '2.50'

    quote = client.get('/api/returns/BC-1').get_json()['return']
    assert quote['rental']['id'] == rental['id']
    assert quote['late_days'] == 0
    assert quote['member']['member_number'] == 'S001'
    assert quote['movie_title'] == 'Inception'

    response = client.post(f"/api/returns/{rental['id']}", json={})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Return processed. No late charges.'

    response = client.post(f"/api/returns/{rental['id']}", json={})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'already_returned'


def test_rental_errors_map_to_status_codes(client, catalog):
    login(client)
    copy_id = catalog.copies['BC-1'].id

    response = client.post('/api/rentals', json={'member_id': catalog.ivan.id,
                                                  'copy_ids': [copy_id]})
    assert response.status_code == 422
    assert response.get_json()['details']['reason'] == 'inactive'

    client.post('/api/rentals', json={'member_id': catalog.bob.id, 'copy_ids': [copy_id]})
    response = client.post('/api/rentals', json={'member_id': catalog.ana.id,
                                                  'copy_ids': [copy_id]})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'conflict'

    response = client.post('/api/rentals', json={'member_id': catalog.ana.id,
                                                  'copy_ids': 'BC-2'})
    assert response.status_code == 422

    assert client.get('/api/returns/BC-2').status_code == 404
    assert client.post('/api/fines/9999/pay').status_code == 404


def test_member_registration_and_lookup(client, catalog):
    login(client)

    response = client.post('/api/members', json={
        'first_name': 'Dana', 'last_name': 'Vidal', 'dni': '44444444D'
    })
    assert response.status_code == 201
    assert response.get_json()['member']['member_number'] == 'S004'

    response = client.post('/api/members', json={
        'first_name': 'Dana', 'last_name': 'Copy', 'dni': '44444444D'
    })
    assert response.status_code == 409

    found = client.get('/api/members/lookup/33333333C').get_json()
    assert found['member']['id'] == catalog.ivan.id
    assert found['eligibility'] == {'eligible': False, 'reason': 'inactive', 'args': []}

    members = client.get('/api/members?q=lopez').get_json()['members']
    assert [(m['full_name'], m['active_rentals']) for m in members] == [('Bob Lopez', 0)]


def test_catalog_endpoints(client, catalog):
    login(client)

    movie = client.get(f'/api/movies/{catalog.movie.id}').get_json()['movie']
    assert len(movie['copies']) == 7

    response = client.put(f"/api/copies/{catalog.copies['BC-7'].id}/state",
                          json={'state': 'damaged'})
    assert response.get_json()['copy']['state'] == 'damaged'

    response = client.post('/api/copies', json={'movie_id': catalog.movie.id,
                                                'barcode': 'BC-1'})
    assert response.status_code == 409

    assert client.get('/api/movies/9999').status_code == 404


def test_dashboard_and_reports(client, catalog):
    login(client)

    dashboard = client.get('/api/dashboard').get_json()['dashboard']
    assert dashboard['total_members'] == 3
    assert len(dashboard['rentals_per_day']) == 7

    report = client.get('/api/reports').get_json()['report']
    assert report['fines'] == {'generated': '0.00', 'collected': '0.00', 'pending': '0.00'}


def test_database_failure_is_a_503(client, catalog):
    login(client)
    get_db().execute('DROP TABLE fines')

    response = client.get(f'/api/members/{catalog.ana.id}/eligibility')
    assert response.status_code == 503
    assert response.get_json()['error'] == 'unavailable'

    response = client.get('/api/fines')
    assert response.status_code == 503
    assert response.get_json()['success'] is False


def test_unknown_route_is_json(client):
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json()['error'] == 'not_found'


def test_anonymous_socket_is_refused(app, client):
    sock = socketio.test_client(app)

    assert not sock.is_connected()


def test_terminals_see_inventory_changes(app, client, catalog):
    login(client)
    sock = socketio.test_client(app, flask_test_client=client)
    assert sock.is_connected()

    client.post('/api/rentals', json={'member_id': catalog.ana.id,
                                      'copy_ids': [catalog.copies['BC-3'].id]})

    events = [e for e in sock.get_received() if e['name'] == 'inventory_changed']
    assert events[0]['args'][0] == {'copy_ids': [catalog.copies['BC-3'].id],
                                    'state': 'rented'}
    sock.disconnect()
