import os
import sys

import pytest
import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bakumania.client.api import CatalogAPIError, CatalogClient, search_path


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=''):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON')
        return self._payload


class DummySession:
    def __init__(self, response=None, exc=None):
        self.headers = {}
        self.response = response
        self.exc = exc
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json, timeout))
        if self.exc:
            raise self.exc
        return self.response


def test_search_builds_url_and_returns_payload():
    body = {'items': [{'_id': '1'}], 'pagination': {'total': 1, 'page': 1, 'limit': 5, 'pages': 1}}
    session = DummySession(DummyResponse(200, body))
    client = CatalogClient(base_url='http://svc/', timeout=3, session=session)
    assert client.search([('search', 'drago'), ('limit', '5'), ('page', '1')]) == body
    method, url, _, timeout = session.calls[0]
    assert method == 'GET'
    assert url == 'http://svc/api/bakugan?search=drago&limit=5&page=1'
    assert timeout == 3
    assert session.headers['Accept'] == 'application/json'


def test_search_path_without_params():
    assert search_path([]) == '/api/bakugan'


def test_bare_list_response_is_wrapped():
    session = DummySession(DummyResponse(200, [{'_id': '1'}]))
    data = CatalogClient(base_url='http://svc', session=session).search([])
    assert data == {'items': [{'_id': '1'}], 'pagination': None}


def test_error_message_comes_from_body():
    session = DummySession(DummyResponse(404, {'error': 'Bakugan not found'}))
    with pytest.raises(CatalogAPIError) as exc:
        CatalogClient(base_url='http://svc', session=session).get_item('9')
    assert str(exc.value) == 'Bakugan not found'
    assert exc.value.status_code == 404


def test_error_without_json_body():
    session = DummySession(DummyResponse(502, None, 'Bad gateway'))
    with pytest.raises(CatalogAPIError) as exc:
        CatalogClient(base_url='http://svc', session=session).delete_item('9')
    assert str(exc.value) == 'Request failed with status 502'


def test_network_error_is_wrapped():
    session = DummySession(exc=requests.ConnectionError('refused'))
    with pytest.raises(CatalogAPIError) as exc:
        CatalogClient(base_url='http://svc', session=session).search([])
    assert exc.value.status_code is None
    assert 'refused' in str(exc.value)


def test_invalid_json_on_success():
    session = DummySession(DummyResponse(200, None, '<html>'))
    with pytest.raises(CatalogAPIError):
        CatalogClient(base_url='http://svc', session=session).search([])


def test_mutations_send_payloads():
    session = DummySession(DummyResponse(200, {'message': 'ok'}))
    client = CatalogClient(base_url='http://svc', session=session)
    client.update_price('4', {'price': 10, 'timestamp': '2024-01-01'})
    client.update_details('4', {'names': ['Drago']})
    client.delete_price_history('12')
    client.create_item({'names': ['Drago']})
    assert [(m, u) for m, u, _, _ in session.calls] == [
        ('PATCH', 'http://svc/api/bakugan/4'),
        ('PUT', 'http://svc/api/bakugan/4'),
        ('DELETE', 'http://svc/api/price-history/12'),
        ('POST', 'http://svc/api/bakugan'),
    ]
    assert session.calls[0][2] == {'price': 10, 'timestamp': '2024-01-01'}
