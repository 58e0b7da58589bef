"""Tests for awards.services.hubspot — contact upsert, retries and event mapping."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from awards.services.hubspot import HubSpotClient, HubSpotError, handle_event


def _response(status, body=None, text=''):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body or {}
    resp.text = text
    return resp


@pytest.fixture
def passthrough_breaker():
    breaker = MagicMock()
    breaker.call.side_effect = lambda func, *args, **kwargs: func(*args, **kwargs)
    with patch('awards.services.api_client.get_breaker', return_value=breaker):
        yield breaker


@pytest.fixture
def no_sleep():
    with patch('awards.services.api_client.time.sleep') as sleep:
        yield sleep


@pytest.fixture
def client():
    return HubSpotClient(access_token='pat-test')


class TestHubSpotClient:

    def test_requires_token(self):
        with patch('awards.services.hubspot.HUBSPOT_ACCESS_TOKEN', None):
            with pytest.raises(HubSpotError, match='HUBSPOT_ACCESS_TOKEN'):
                HubSpotClient()

    def test_create_contact(self, client, passthrough_breaker):
        with patch('awards.services.api_client.requests.request',
                   return_value=_response(201, {'id': '501'})) as req:
            contact_id = client.upsert_contact({'email': 'jane@acme.io', 'firstname': 'Jane', 'company': None})
        assert contact_id == '501'
        method, url = req.call_args[0]
        assert method == 'POST'
        assert url == 'https://api.hubapi.com/crm/v3/objects/contacts'
        assert req.call_args[1]['json'] == {'properties': {'email': 'jane@acme.io', 'firstname': 'Jane'}}
        assert req.call_args[1]['headers']['Authorization'] == 'Bearer pat-test'

    def test_conflict_updates_by_email(self, client, passthrough_breaker):
        with patch('awards.services.api_client.requests.request',
                   side_effect=[_response(409), _response(200, {'id': '501'})]) as req:
            assert client.upsert_contact({'email': 'jane@acme.io'}) == '501'
        method, url = req.call_args_list[1][0]
        assert method == 'PATCH'
        assert url.endswith('/crm/v3/objects/contacts/jane%40acme.io?idProperty=email')

    def test_update_path_encodes_email(self, client, passthrough_breaker):
        with patch('awards.services.api_client.requests.request',
                   side_effect=[_response(409), _response(200, {'id': '502'})]) as req:
            client.upsert_contact({'email': 'jane+awards@acme.io'})
        url = req.call_args_list[1][0][1]
        assert '/contacts/jane%2Bawards%40acme.io?idProperty=email' in url

    def test_retries_server_errors_with_backoff(self, client, passthrough_breaker, no_sleep):
        with patch('awards.services.api_client.requests.request',
                   side_effect=[_response(503), _response(429), _response(201, {'id': '7'})]) as req:
            assert client.upsert_contact({'email': 'jane@acme.io'}) == '7'
        assert req.call_count == 3
        assert [c[0][0] for c in no_sleep.call_args_list] == [1.0, 2.0]

    def test_gives_up_after_three_attempts(self, client, passthrough_breaker, no_sleep):
        with patch('awards.services.api_client.requests.request', return_value=_response(500, text='oops')):
            with pytest.raises(HubSpotError) as exc_info:
                client.upsert_contact({'email': 'jane@acme.io'})
        assert exc_info.value.status == 500
        assert passthrough_breaker.call.call_count == 3

    def test_client_errors_not_retried(self, client, passthrough_breaker, no_sleep):
        with patch('awards.services.api_client.requests.request',
                   return_value=_response(400, text='bad property')) as req:
            with pytest.raises(HubSpotError, match='400'):
                client.upsert_contact({'email': 'jane@acme.io'})
        assert req.call_count == 1
        no_sleep.assert_not_called()

    def test_network_error_is_retryable(self, client, passthrough_breaker, no_sleep):
        with patch('awards.services.api_client.requests.request',
                   side_effect=[requests.ConnectionError('reset'), _response(201, {'id': '9'})]):
            assert client.upsert_contact({'email': 'jane@acme.io'}) == '9'

    def test_email_required(self, client):
        with pytest.raises(HubSpotError, match='without an email'):
            client.upsert_contact({'firstname': 'Jane'})


class TestHandleEvent:

    def test_submitted_syncs_nominator_and_nominee(self):
        client = MagicMock()
        handle_event('nomination_submitted', {
            'type': 'person', 'email': 'jane@acme.io', 'firstName': 'Jane', 'lastName': 'Smith',
            'subcategoryId': 'top-recruiter',
            'nominator': {'email': 'pat@acme.io', 'firstName': 'Pat'},
        }, client)
        nominator_props, nominee_props = [c[0][0] for c in client.upsert_contact.call_args_list]
        assert nominator_props['wsa_contact_type'] == 'nominator'
        assert nominator_props['email'] == 'pat@acme.io'
        assert nominee_props['wsa_nomination_status'] == 'submitted'
        assert nominee_props['lastname'] == 'Smith'

    def test_approved_company(self):
        client = MagicMock()
        handle_event('nomination_approved', {
            'type': 'company', 'email': 'hi@northwind.io', 'name': 'Northwind',
            'subcategoryId': 'best-recruitment-agency', 'liveUrl': 'https://wsa/nominee/northwind',
        }, client)
        props = client.upsert_contact.call_args[0][0]
        assert props['firstname'] == 'Northwind'
        assert props['wsa_nomination_status'] == 'approved'
        assert props['wsa_live_url'] == 'https://wsa/nominee/northwind'

    def test_vote_cast(self):
        client = MagicMock()
        handle_event('vote_cast', {'voter': {'email': 'v@acme.io'}, 'subcategoryId': 'best-sourcer'}, client)
        props = client.upsert_contact.call_args[0][0]
        assert props['wsa_contact_type'] == 'voter'
        assert props['wsa_last_voted_category'] == 'best-sourcer'

    def test_unknown_event(self):
        with pytest.raises(HubSpotError):
            handle_event('nominee_deleted', {}, MagicMock())
