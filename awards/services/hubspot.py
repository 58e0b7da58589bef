"""
HubSpot contacts client + outbox event handlers.

Only identifying fields are mapped. Create-then-update: a 409 on create means
the contact exists, so the same properties are PATCHed by email.
"""
import logging
from typing import Dict, Optional
from urllib.parse import quote

from awards.config import HUBSPOT_ACCESS_TOKEN, HUBSPOT_API_URL
from awards.services.api_client import ApiError, RetryingClient

logger = logging.getLogger('services.hubspot')


class HubSpotError(ApiError):
    pass


class HubSpotClient(RetryingClient):
    """Thin wrapper over the CRM v3 contacts API."""

    SERVICE = 'hubspot'
    LABEL = 'HubSpot'
    BASE_URL = HUBSPOT_API_URL
    ERROR = HubSpotError

    def __init__(self, access_token: str = None):
        access_token = access_token or HUBSPOT_ACCESS_TOKEN
        if not access_token:
            raise HubSpotError('HUBSPOT_ACCESS_TOKEN is not set')
        super().__init__(access_token)

    def upsert_contact(self, properties: Dict) -> Optional[str]:
        """Create the contact, or update it by email when it already exists."""
        email = properties.get('email')
        if not email:
            raise HubSpotError('Cannot sync a contact without an email')
        properties = {k: v for k, v in properties.items() if v not in (None, '')}

        resp = self.request('POST', '/crm/v3/objects/contacts', {'properties': properties})
        if resp.status_code == 409:
            resp = self.request(
                'PATCH', f"/crm/v3/objects/contacts/{quote(email, safe='')}?idProperty=email",
                {'properties': properties},
            )
            action = 'updated'
        else:
            action = 'created'

        if resp.status_code >= 400:
            self.fail(resp)

        contact_id = (resp.json() or {}).get('id')
        logger.info("HubSpot contact %s %s (%s)", email, action, contact_id)
        return contact_id


# ── Outbox event → contact properties ────────────────────────────────────────

def _nominee_properties(payload: Dict, status: str) -> Dict:
    props = {
        'email': payload.get('email'),
        'company': payload.get('company'),
        'jobtitle': payload.get('jobTitle'),
        'country': payload.get('country'),
        'wsa_contact_type': 'nominee',
        'wsa_nominee_type': payload.get('type'),
        'wsa_category': payload.get('subcategoryId'),
        'wsa_nomination_status': status,
        'wsa_live_url': payload.get('liveUrl'),
    }
    if payload.get('type') == 'person':
        props['firstname'] = payload.get('firstName')
        props['lastname'] = payload.get('lastName')
    else:
        props['firstname'] = payload.get('name')
    return props


def _person_properties(person: Dict, contact_type: str) -> Dict:
    return {
        'email': person.get('email'),
        'firstname': person.get('firstName'),
        'lastname': person.get('lastName'),
        'company': person.get('company'),
        'jobtitle': person.get('jobTitle'),
        'country': person.get('country'),
        'wsa_contact_type': contact_type,
    }


def handle_event(event_type: str, payload: Dict, client: HubSpotClient = None):
    """Apply one outbox event to HubSpot. Raises on failure."""
    client = client or HubSpotClient()

    if event_type == 'nomination_submitted':
        if payload.get('nominator', {}).get('email'):
            client.upsert_contact(_person_properties(payload['nominator'], 'nominator'))
        if payload.get('email'):
            client.upsert_contact(_nominee_properties(payload, 'submitted'))
    elif event_type == 'nomination_approved':
        client.upsert_contact(_nominee_properties(payload, 'approved'))
    elif event_type == 'vote_cast':
        props = _person_properties(payload.get('voter', {}), 'voter')
        props['wsa_last_voted_category'] = payload.get('subcategoryId')
        client.upsert_contact(props)
    else:
        raise HubSpotError(f'Unsupported event type: {event_type}')
