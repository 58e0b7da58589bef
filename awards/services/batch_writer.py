"""
Batch writer — persists validated rows as nominator + nominee + nomination.

Each row commits on its own. A failing row is rolled back, logged and reported
as an error record; the rest of the batch carries on.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from awards import categories
from awards.config import DEFAULT_NOMINATOR, PENDING_STATES
from awards.models.nominator import Nominator
from awards.models.nominee import Nominee
from awards.models.nomination import Nomination
from awards.services.validation import ValidationError, normalize_email

logger = logging.getLogger('services.batch_writer')


@dataclass
class WriteResult:
    """Outcome of writing one batch of valid rows."""
    nomination_ids: List[int] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return len(self.nomination_ids)

    @property
    def failed(self) -> int:
        return len({e.row for e in self.errors})


def split_name(full_name: str):
    parts = (full_name or '').strip().split(None, 1)
    first = parts[0] if parts else ''
    last = parts[1] if len(parts) > 1 else ''
    return first, last


def find_or_create_nominator(session, email: Optional[str], first_name='', last_name='',
                             company=None, job_title=None, phone=None, country=None,
                             linkedin=None) -> Nominator:
    """
    Look a nominator up by lower-cased email, creating one when absent.

    No email falls back to the default admin nominator.
    """
    email = normalize_email(email)
    if not email:
        email = DEFAULT_NOMINATOR['email']
        first_name = DEFAULT_NOMINATOR['first_name']
        last_name = DEFAULT_NOMINATOR['last_name']
        company = DEFAULT_NOMINATOR['company']
        job_title = DEFAULT_NOMINATOR['job_title']

    nominator = (
        session.query(Nominator)
        .filter(Nominator.email == email)
        .order_by(Nominator.id)
        .first()
    )
    if nominator is not None:
        return nominator

    nominator = Nominator(
        email=email,
        first_name=first_name or '',
        last_name=last_name or '',
        company=company or None,
        job_title=job_title or None,
        phone=phone or None,
        country=country or None,
        linkedin=linkedin or None,
    )
    session.add(nominator)
    session.flush()
    return nominator


def nominee_from_row(row) -> Nominee:
    """Build an unsaved Nominee with only the fields for the row's type."""
    nominee = Nominee(
        type=row.nominee_type,
        email=row.email,
        email_normalized=normalize_email(row.email),
        bio=row.bio or None,
        achievements=row.achievements or None,
    )
    if row.nominee_type == 'person':
        nominee.first_name = row.first_name
        nominee.last_name = row.last_name
        nominee.job_title = row.job_title or None
        nominee.person_company = row.company_name or None
        nominee.person_phone = row.phone or None
        nominee.person_country = row.country or None
        nominee.person_linkedin = row.linkedin or None
        nominee.headshot_url = row.headshot_url or None
        nominee.why_me = row.why_vote_for_me
    else:
        nominee.company_name = row.company_name
        nominee.company_website = row.website or None
        nominee.company_phone = row.phone or None
        nominee.company_country = row.country or None
        nominee.company_industry = row.industry or None
        nominee.company_size = row.company_size or None
        nominee.logo_url = row.logo_url or None
        nominee.why_us = row.why_vote_for_me
    return nominee


def _write_row(session, batch_id, row, uploaded_by, initial_state) -> Nomination:
    first, last = split_name(row.nominator_name)
    nominator = find_or_create_nominator(
        session, row.nominator_email, first, last,
        company=row.nominator_company, job_title=row.nominator_job_title,
        phone=row.nominator_phone, country=row.nominator_country,
    )

    nominee = nominee_from_row(row)
    session.add(nominee)
    session.flush()

    nomination = Nomination(
        nominator_id=nominator.id,
        nominee_id=nominee.id,
        category_group_id=categories.group_for(row.category),
        subcategory_id=row.category,
        state=initial_state,
        votes=0,
        additional_votes=0,
        upload_source='bulk_upload',
        bulk_upload_batch_id=batch_id,
        bulk_upload_row_number=row.row_number,
        uploaded_by=uploaded_by,
        loops_sync_status='pending',
    )
    session.add(nomination)
    session.commit()
    return nomination


def write_rows(session, batch, rows, uploaded_by: str = None, initial_state: str = 'draft') -> WriteResult:
    """Persist every valid row, isolating failures per row."""
    if initial_state not in PENDING_STATES:
        raise ValueError(f"Bulk uploads can only create draft or submitted nominations, not {initial_state!r}")

    result = WriteResult()
    batch_id = batch.id

    for row in rows:
        try:
            nomination = _write_row(session, batch_id, row, uploaded_by, initial_state)
            result.nomination_ids.append(nomination.id)
        except IntegrityError as e:
            session.rollback()
            logger.warning("Row %d conflicts with an existing record: %s",
                           row.row_number, e.orig, extra={'batch_id': batch_id})
            result.errors.append(ValidationError(
                row=row.row_number, field='email', value=row.email,
                error_type='duplicate',
                message=f'A nominee with this email already exists: {row.email}',
            ))
        except Exception as e:
            session.rollback()
            logger.error("Failed to write row %d", row.row_number,
                         exc_info=True, extra={'batch_id': batch_id})
            result.errors.append(ValidationError(
                row=row.row_number, field=None,
                error_type='processing',
                message=f'Failed to save row: {e}',
            ))

    logger.info("Batch %s: %d written, %d failed", batch_id, result.successful, result.failed,
                extra={'batch_id': batch_id})
    return result
