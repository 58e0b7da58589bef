"""
Loops email-platform client + outbox event handlers.

Contacts are created with POST /contacts/create; a 409 means the email is
already a contact and the same body goes to PUT /contacts/update.

Transactional emails (POST /transactional) go out after the contact upserts
of the same event: the nominator confirmation on submission, the nominee and
nominator notices on approval, and the voter confirmation on a vote. Template
ids come from LOOPS_TRANSACTIONAL_IDS; an email whose id is unset is skipped.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from awards import categories
from awards.config import LOOPS_API_KEY, LOOPS_API_URL, LOOPS_TRANSACTIONAL_IDS
from awards.services.api_client import ApiError, RetryingClient

logger = logging.getLogger('services.loops')

SOURCE = 'World Staffing Awards 2026'


class LoopsError(ApiError):
    pass


class LoopsClient(RetryingClient):

    SERVICE = 'loops'
    LABEL = 'Loops'
    BASE_URL = LOOPS_API_URL
    ERROR = LoopsError

    def __init__(self, api_key: str = None):
        api_key = api_key or LOOPS_API_KEY
        if not api_key:
            raise LoopsError('LOOPS_API_KEY is not set')
        super().__init__(api_key)

    def upsert_contact(self, contact: Dict) -> str:
        if not contact.get('email'):
            raise LoopsError('Cannot sync a contact without an email')
        body = {k: v for k, v in contact.items() if v not in (None, '')}
        body.setdefault('source', SOURCE)

        resp = self.request('POST', '/contacts/create', body)
        action = 'created'
        if resp.status_code == 409:
            resp = self.request('PUT', '/contacts/update', body)
            action = 'updated'
        if resp.status_code >= 400:
            self.fail(resp)

        logger.info("Loops contact %s %s", body['email'], action)
        return action

    def send_transactional(self, transactional_id: str, email: str, data_variables: Dict = None):
        if not transactional_id:
            raise LoopsError('transactional_id is required')
        if not email:
            raise LoopsError('Cannot send an email without an address')
        body = {
            'transactionalId': transactional_id,
            'email': email,
            'dataVariables': {k: ('' if v is None else v) for k, v in (data_variables or {}).items()},
        }
        resp = self.request('POST', '/transactional', body)
        if resp.status_code >= 400:
            self.fail(resp)
        logger.info("Loops transactional %s sent to %s", transactional_id, email)


# ── User groups ──────────────────────────────────────────────────────────────

def region_for(subcategory_id: str) -> str:
    sub = (subcategory_id or '').lower()
    if 'usa' in sub or 'north-america' in sub:
        return 'usa'
    if 'europe' in sub:
        return 'europe'
    if 'global' in sub:
        return 'global'
    return 'general'


def nominee_user_group(nominee_type: str, subcategory_id: str) -> str:
    return f'nominees-{nominee_type}-{region_for(subcategory_id)}'


def _nominee_contact(payload: Dict, status: str) -> Dict:
    contact = {
        'email': payload.get('email'),
        'userGroup': nominee_user_group(payload.get('type', 'person'), payload.get('subcategoryId')),
        'nomineeType': payload.get('type'),
        'category': payload.get('subcategoryId'),
        'nominationStatus': status,
        'liveUrl': payload.get('liveUrl'),
        'company': payload.get('company'),
        'country': payload.get('country'),
    }
    if payload.get('type') == 'person':
        contact['firstName'] = payload.get('firstName')
        contact['lastName'] = payload.get('lastName')
    else:
        contact['firstName'] = payload.get('name')
    return contact


def _person_contact(person: Dict, user_group: str) -> Dict:
    return {
        'email': person.get('email'),
        'firstName': person.get('firstName'),
        'lastName': person.get('lastName'),
        'company': person.get('company'),
        'jobTitle': person.get('jobTitle'),
        'country': person.get('country'),
        'userGroup': user_group,
    }




# ── Transactional emails ─────────────────────────────────────────────────────

def _when(payload: Dict) -> datetime:
    try:
        return datetime.fromisoformat(payload['occurredAt'])
    except (KeyError, TypeError, ValueError):
        return datetime.now(timezone.utc)


def _long_date(moment: datetime) -> str:
    return f'{moment:%B} {moment.day}, {moment.year}'


def _full_name(person: Dict) -> str:
    return ' '.join(p for p in (person.get('firstName'), person.get('lastName')) if p)


def _category_variables(subcategory_id: str) -> Dict:
    category, subcategory = categories.display_names(subcategory_id)
    return {'categoryName': category, 'subcategoryName': subcategory}


def _nominator_variables(nominator: Dict) -> Dict:
    return {
        'nominatorFirstName': nominator.get('firstName'),
        'nominatorLastName': nominator.get('lastName'),
        'nominatorFullName': _full_name(nominator),
        'nominatorEmail': nominator.get('email'),
        'nominatorCompany': nominator.get('company'),
        'nominatorJobTitle': nominator.get('jobTitle'),
    }


def _nominee_variables(payload: Dict) -> Dict:
    return {
        'nomineeFirstName': payload.get('firstName') or payload.get('name'),
        'nomineeLastName': payload.get('lastName'),
        'nomineeFullName': payload.get('name'),
        'nomineeDisplayName': payload.get('name'),
        'nomineeEmail': payload.get('email'),
        'nomineeType': payload.get('type'),
        'nomineeUrl': payload.get('liveUrl'),
    }


def _send_if_configured(client: LoopsClient, template: str, email: Optional[str], variables: Dict) -> bool:
    transactional_id = LOOPS_TRANSACTIONAL_IDS.get(template)
    if not transactional_id or not email:
        logger.debug("Skipping %s email (template id or address missing)", template)
        return False
    client.send_transactional(transactional_id, email, variables)
    return True


def _submitted_emails(client: LoopsClient, payload: Dict):
    nominator = payload.get('nominator') or {}
    moment = _when(payload)
    variables = {
        **_nominator_variables(nominator),
        **_nominee_variables(payload),
        **_category_variables(payload.get('subcategoryId')),
        'submissionTimestamp': moment.isoformat(),
        'submissionDate': _long_date(moment),
    }
    _send_if_configured(client, 'nominator_confirmation', nominator.get('email'), variables)


def _approved_emails(client: LoopsClient, payload: Dict):
    nominator = payload.get('nominator') or {}
    moment = _when(payload)
    variables = {
        **_nominee_variables(payload),
        **_category_variables(payload.get('subcategoryId')),
        'approvalTimestamp': moment.isoformat(),
        'approvalDate': _long_date(moment),
    }
    _send_if_configured(client, 'nominee_approved', payload.get('email'), variables)
    _send_if_configured(client, 'nominator_approved', nominator.get('email'),
                        {**variables, **_nominator_variables(nominator)})


def _vote_emails(client: LoopsClient, payload: Dict):
    voter = payload.get('voter') or {}
    moment = _when(payload)
    variables = {
        'voterFirstName': voter.get('firstName'),
        'voterLastName': voter.get('lastName'),
        'voterFullName': _full_name(voter),
        'voterEmail': voter.get('email'),
        'voterCompany': voter.get('company'),
        'voterJobTitle': voter.get('jobTitle'),
        'voterCountry': voter.get('country'),
        'voterLinkedIn': voter.get('linkedin'),
        'nomineeDisplayName': payload.get('nomineeName'),
        'nomineeUrl': payload.get('nomineeUrl'),
        **_category_variables(payload.get('subcategoryId')),
        'voteTimestamp': moment.isoformat(),
        'voteDate': _long_date(moment),
    }
    _send_if_configured(client, 'vote_confirmation', voter.get('email'), variables)


def handle_event(event_type: str, payload: Dict, client: LoopsClient = None):
    """Apply one outbox event to Loops: contact upserts, then emails. Raises on failure."""
    client = client or LoopsClient()

    if event_type == 'nomination_submitted':
        if payload.get('nominator', {}).get('email'):
            client.upsert_contact(_person_contact(payload['nominator'], 'nominators'))
        if payload.get('email'):
            client.upsert_contact(_nominee_contact(payload, 'submitted'))
        _submitted_emails(client, payload)
    elif event_type == 'nomination_approved':
        client.upsert_contact(_nominee_contact(payload, 'approved'))
        _approved_emails(client, payload)
    elif event_type == 'vote_cast':
        contact = _person_contact(payload.get('voter', {}), 'voters')
        contact['lastVotedCategory'] = payload.get('subcategoryId')
        client.upsert_contact(contact)
        _vote_emails(client, payload)
    else:
        raise LoopsError(f'Unsupported event type: {event_type}')
