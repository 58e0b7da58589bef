"""
Nomination form submission + admin console operations.

Form submissions reuse the row validator's field rules so the wizard and the
bulk upload accept exactly the same data.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from awards import categories
from awards.models.nominee import Nominee
from awards.models.nomination import Nomination
from awards.services import approval, outbox
from awards.services.batch_writer import find_or_create_nominator
from awards.services.validation import as_text, check_edits, check_fields, normalize_email, ValidationError

logger = logging.getLogger('services.nominations')


class NominationInvalid(Exception):
    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        super().__init__('; '.join(e.message for e in errors))


class DuplicateNomination(Exception):
    def __init__(self, subcategory_id):
        super().__init__(f"This nominee is already nominated in {subcategory_id}")


# Form (camelCase) → validator column names
_FORM_FIELDS = {
    'person': {
        'firstName': 'first_name', 'lastName': 'last_name', 'email': 'email',
        'jobTitle': 'job_title', 'company': 'company_name', 'phone': 'phone',
        'country': 'country', 'linkedin': 'linkedin', 'headshotUrl': 'headshot_url',
        'whyMe': 'why_vote_for_me', 'bio': 'bio', 'achievements': 'achievements',
    },
    'company': {
        'name': 'company_name', 'email': 'email', 'website': 'website',
        'linkedin': 'company_linkedin', 'phone': 'phone', 'country': 'country',
        'industry': 'industry', 'size': 'company_size', 'logoUrl': 'logo_url',
        'whyUs': 'why_vote_for_me', 'bio': 'bio', 'achievements': 'achievements',
    },
}


_NOMINATOR_FIELDS = {
    'email': 'nominator_email', 'firstName': 'nominator_first_name', 'lastName': 'nominator_last_name',
    'company': 'nominator_company', 'jobTitle': 'nominator_job_title', 'phone': 'nominator_phone',
    'country': 'nominator_country', 'linkedin': 'nominator_linkedin',
}


def _text_values(source: Dict, mapping: Dict[str, str], errors: List[ValidationError]) -> Dict[str, str]:
    """Map form keys to column names, recording an error for each non-text value."""
    values = {}
    for form_key, column in mapping.items():
        try:
            values[column] = as_text(source.get(form_key))
        except TypeError:
            values[column] = ''
            errors.append(ValidationError(row=0, field=column, message=f'{column} must be text'))
    return values


def _object(data: Dict, key: str) -> Dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise NominationInvalid([ValidationError(row=0, field=key, message=f'{key} must be an object')])
    return value


def _find_or_build_nominee(session, nominee_type: str, values: Dict[str, str]) -> Nominee:
    email = normalize_email(values['email'])
    nominee = session.query(Nominee).filter(Nominee.email_normalized == email).first()
    if nominee is not None:
        return nominee

    nominee = Nominee(type=nominee_type, email=values['email'], email_normalized=email,
                      bio=values.get('bio') or None, achievements=values.get('achievements') or None)
    if nominee_type == 'person':
        nominee.first_name = values['first_name']
        nominee.last_name = values['last_name']
        nominee.job_title = values.get('job_title') or None
        nominee.person_company = values.get('company_name') or None
        nominee.person_phone = values.get('phone') or None
        nominee.person_country = values.get('country') or None
        nominee.person_linkedin = values.get('linkedin') or None
        nominee.headshot_url = values.get('headshot_url') or None
        nominee.why_me = values['why_vote_for_me']
    else:
        nominee.company_name = values['company_name']
        nominee.company_website = values.get('website') or None
        nominee.company_linkedin = values.get('company_linkedin') or None
        nominee.company_phone = values.get('phone') or None
        nominee.company_country = values.get('country') or None
        nominee.company_industry = values.get('industry') or None
        nominee.company_size = values.get('company_size') or None
        nominee.logo_url = values.get('logo_url') or None
        nominee.why_us = values['why_vote_for_me']
    session.add(nominee)
    session.flush()
    return nominee


def submit_nomination(session, data: Dict, state: str = 'submitted', source: str = 'form',
                      uploaded_by: Optional[str] = None) -> Nomination:
    """
    Create a nomination from the wizard payload.

    data = {type, subcategoryId, nominator: {...}, nominee: {...}}

    Raises:
        NominationInvalid: field errors (same rules as bulk upload).
        DuplicateNomination: nominee already in this subcategory.
    """
    if not isinstance(data, dict):
        raise NominationInvalid([ValidationError(row=0, field=None, message='Request body must be a JSON object')])
    nominee_type = data.get('type')
    if not isinstance(nominee_type, str) or nominee_type not in ('person', 'company'):
        raise NominationInvalid([ValidationError(row=0, field='type',
                                                 message='type must be "person" or "company"')])

    type_errors = []
    nominator_values = _text_values(_object(data, 'nominator'), _NOMINATOR_FIELDS, type_errors)
    values = _text_values(_object(data, 'nominee'), _FORM_FIELDS[nominee_type], type_errors)
    values.update(_text_values(data, {'subcategoryId': 'category'}, type_errors))
    if type_errors:
        raise NominationInvalid(type_errors)
    values['nominator_email'] = nominator_values['nominator_email']

    errors = check_fields(values, nominee_type)
    if not values['nominator_email'] and source == 'form':
        errors.append(ValidationError(row=0, field='nominator_email', error_type='missing_required',
                                      message='nominator_email is required'))
    if errors:
        raise NominationInvalid(errors)

    subcategory_id = values['category']
    try:
        nominator = find_or_create_nominator(
            session, values['nominator_email'],
            nominator_values['nominator_first_name'], nominator_values['nominator_last_name'],
            company=nominator_values['nominator_company'], job_title=nominator_values['nominator_job_title'],
            phone=nominator_values['nominator_phone'], country=nominator_values['nominator_country'],
            linkedin=nominator_values['nominator_linkedin'],
        )
        nominee = _find_or_build_nominee(session, nominee_type, values)
        if nominee.type != nominee_type:
            raise NominationInvalid([ValidationError(
                row=0, field='email',
                message=f'This email already belongs to a {nominee.type} nominee',
            )])
        exists = session.query(Nomination.id).filter(
            Nomination.nominee_id == nominee.id, Nomination.subcategory_id == subcategory_id,
        ).first()
        if exists is not None:
            raise DuplicateNomination(subcategory_id)

        nomination = Nomination(
            nominator_id=nominator.id,
            nominee_id=nominee.id,
            category_group_id=categories.group_for(subcategory_id),
            subcategory_id=subcategory_id,
            state=state,
            votes=0,
            additional_votes=0,
            upload_source=source,
            uploaded_by=uploaded_by,
            loops_sync_status='pending',
        )
        session.add(nomination)
        session.flush()
        if state == 'submitted':
            outbox.enqueue_all(session, 'nomination_submitted', outbox.nomination_payload(nomination))
        session.commit()
    except IntegrityError:
        session.rollback()
        raise DuplicateNomination(subcategory_id)
    except Exception:
        session.rollback()
        raise

    logger.info("Nomination %s created (%s, %s, %s)", nomination.id, nominee_type, subcategory_id, state,
                extra={'nomination_id': nomination.id})
    return nomination


# ── Admin console ────────────────────────────────────────────────────────────

def list_nominations(session, state: Optional[str] = None, subcategory_id: Optional[str] = None,
                     batch_id: Optional[str] = None, search: Optional[str] = None,
                     limit: int = 500) -> List[Nomination]:
    query = session.query(Nomination).join(Nomination.nominee)
    if state:
        query = query.filter(Nomination.state == state)
    if subcategory_id:
        query = query.filter(Nomination.subcategory_id == subcategory_id)
    if batch_id:
        query = query.filter(Nomination.bulk_upload_batch_id == batch_id)
    if search:
        like = f'%{search.lower()}%'
        query = query.filter(or_(
            Nominee.first_name.ilike(like), Nominee.last_name.ilike(like),
            Nominee.company_name.ilike(like), Nominee.email_normalized.like(like),
        ))
    return query.order_by(Nomination.created_at.desc(), Nomination.id.desc()).limit(limit).all()


# PATCH body key → (model, attribute)
_EDITABLE = {
    'adminNotes': ('nomination', 'admin_notes'),
    'rejectionReason': ('nomination', 'rejection_reason'),
    'whyMe': ('nominee', 'why_me'),
    'whyUs': ('nominee', 'why_us'),
    'headshotUrl': ('nominee', 'headshot_url'),
    'logoUrl': ('nominee', 'logo_url'),
    'bio': ('nominee', 'bio'),
    'achievements': ('nominee', 'achievements'),
}

# PATCH body key → validator column name
_EDIT_COLUMNS = {
    'whyMe': 'why_vote_for_me', 'whyUs': 'why_vote_for_me',
    'headshotUrl': 'headshot_url', 'logoUrl': 'logo_url',
    'bio': 'bio', 'achievements': 'achievements',
}


def _edited_values(changes: Dict, nominee_type: str) -> Dict[str, str]:
    """Coerce the edited fields to text and run the URL and length rules on them."""
    errors = []
    keys = [k for k in list(_EDITABLE) + ['linkedin'] if k in changes]
    edits = _text_values(changes, {k: k for k in keys}, errors)
    if errors:
        raise NominationInvalid(errors)

    columns = dict(_EDIT_COLUMNS, linkedin='company_linkedin' if nominee_type == 'company' else 'linkedin')
    errors = check_edits({columns[k]: text for k, text in edits.items() if k in columns})
    if errors:
        raise NominationInvalid(errors)
    return edits


def update_nomination(session, nomination_id, changes: Dict, actor: str = None) -> Nomination:
    """
    Admin edit. A `state` change goes through the approval gate; the other
    fields are plain edits, checked with the same URL and length rules as a
    new nomination before anything is written.
    """
    nomination = session.get(Nomination, nomination_id)
    if nomination is None:
        raise approval.NominationNotFound(nomination_id)
    edits = _edited_values(changes, nomination.nominee.type)

    state = changes.get('state')
    if state and state != nomination.state:
        approval.decide(
            session, nomination_id, state, actor=actor,
            admin_notes=changes.get('adminNotes'),
            rejection_reason=changes.get('rejectionReason'),
            live_url=changes.get('liveUrl'),
        )
        nomination = session.get(Nomination, nomination_id)

    for key, text in edits.items():
        if key == 'linkedin':
            attr = 'company_linkedin' if nomination.nominee.type == 'company' else 'person_linkedin'
            setattr(nomination.nominee, attr, text or None)
            continue
        target, attr = _EDITABLE[key]
        obj = nomination if target == 'nomination' else nomination.nominee
        setattr(obj, attr, text or None)

    if changes.get('liveUrl') and not state:
        approval.assign_live_url(session, nomination.nominee, requested=changes['liveUrl'])

    session.commit()
    return nomination


def delete_nomination(session, nomination_id) -> bool:
    nomination = session.get(Nomination, nomination_id)
    if nomination is None:
        return False
    from awards.models.vote import Vote
    session.query(Vote).filter(Vote.nomination_id == nomination_id).delete(synchronize_session=False)
    session.delete(nomination)
    session.commit()
    logger.info("Nomination %s deleted", nomination_id, extra={'nomination_id': nomination_id})
    return True


# ── Public directory ─────────────────────────────────────────────────────────

def list_public_nominees(session, subcategory_id: Optional[str] = None, nominee_type: Optional[str] = None,
                         search: Optional[str] = None, limit: int = 500) -> List[Dict]:
    query = session.query(Nomination).join(Nomination.nominee).filter(Nomination.state == 'approved')
    if subcategory_id:
        query = query.filter(Nomination.subcategory_id == subcategory_id)
    if nominee_type:
        query = query.filter(Nominee.type == nominee_type)
    if search:
        like = f'%{search.lower()}%'
        query = query.filter(or_(
            Nominee.first_name.ilike(like), Nominee.last_name.ilike(like),
            Nominee.company_name.ilike(like),
        ))
    query = query.order_by((Nomination.votes + Nomination.additional_votes).desc(), Nomination.id)
    return [_public_dict(n) for n in query.limit(limit).all()]


def get_public_nominee(session, slug: str) -> Optional[Dict]:
    nominee = session.query(Nominee).filter(Nominee.slug == slug).first()
    if nominee is None:
        return None
    nominations = (
        session.query(Nomination)
        .filter(Nomination.nominee_id == nominee.id, Nomination.state == 'approved')
        .all()
    )
    if not nominations:
        return None
    data = _public_nominee(nominee)
    data['nominations'] = [
        {'id': n.id, 'subcategoryId': n.subcategory_id, 'categoryGroupId': n.category_group_id,
         'votes': n.total_votes}
        for n in nominations
    ]
    return data


def _public_nominee(nominee: Nominee) -> Dict:
    """Directory view: no contact details."""
    return {
        'id': nominee.id,
        'type': nominee.type,
        'name': nominee.display_name,
        'slug': nominee.slug,
        'liveUrl': nominee.live_url,
        'imageUrl': nominee.image_url,
        'country': nominee.country,
        'linkedin': nominee.linkedin,
        'jobTitle': nominee.job_title,
        'company': nominee.person_company if nominee.type == 'person' else nominee.company_name,
        'website': nominee.company_website,
        'whyVote': nominee.why_text,
        'bio': nominee.bio,
        'achievements': nominee.achievements,
    }


def _public_dict(nomination: Nomination) -> Dict:
    return {
        'nominationId': nomination.id,
        'subcategoryId': nomination.subcategory_id,
        'categoryGroupId': nomination.category_group_id,
        'votes': nomination.total_votes,
        'nominee': _public_nominee(nomination.nominee),
    }
