"""
Row validation — required fields, formats, lengths, category lookup, duplicates.

Every row is checked independently and never aborts the batch. The result is a
partition: rows with no errors go on to the batch writer, the rest are reported
as structured ValidationError records with a suggested fix.
"""
import logging
import re
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

from awards import categories
from awards.config import (
    TEMPLATE_DOMAINS,
    MAX_WHY_VOTE_LENGTH, MAX_BIO_LENGTH, MAX_ACHIEVEMENTS_LENGTH,
)

logger = logging.getLogger('services.validation')

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
URL_RE = re.compile(r'^https?://[^\s/]+\.[^\s/]+', re.IGNORECASE)

ERROR_TYPES = ('validation', 'missing_required', 'duplicate', 'processing')

REQUIRED_FIELDS = {
    'person': ['first_name', 'last_name', 'email', 'why_vote_for_me', 'category'],
    'company': ['company_name', 'email', 'why_vote_for_me', 'category'],
}

URL_FIELDS = {
    'person': ['linkedin', 'headshot_url'],
    'company': ['website', 'company_linkedin', 'logo_url'],
}

LENGTH_LIMITS = [
    ('why_vote_for_me', MAX_WHY_VOTE_LENGTH),
    ('bio', MAX_BIO_LENGTH),
    ('achievements', MAX_ACHIEVEMENTS_LENGTH),
]


@dataclass
class ValidationError:
    """One problem with one field of one row."""
    row: int
    field: Optional[str]
    message: str
    error_type: str = 'validation'
    value: Optional[str] = None

    def __post_init__(self):
        if self.error_type not in ERROR_TYPES:
            raise ValueError(f'Unknown error type: {self.error_type}')

    @property
    def suggested_fix(self) -> str:
        return suggested_fix(self.error_type, self.field)

    def to_dict(self):
        data = asdict(self)
        data['suggestedFix'] = self.suggested_fix
        return data


def suggested_fix(error_type: str, field: Optional[str]) -> str:
    """Human hint shown next to each error in the upload report."""
    field = field or ''
    if error_type == 'missing_required':
        return f'Add a value for {field}'
    if error_type == 'duplicate':
        return 'Use a unique email address or remove duplicate entry'
    if error_type == 'validation':
        if 'email' in field:
            return 'Use format: user@domain.com'
        if 'url' in field or 'linkedin' in field or 'website' in field:
            return 'Use format: https://example.com'
        if field == 'category':
            return 'Use one of the category ids from the template'
        if field in dict(LENGTH_LIMITS):
            return f'Shorten {field} to at most {dict(LENGTH_LIMITS)[field]} characters'
        if field.endswith('id'):
            return 'Use a valid numeric ID'
        if field == 'type':
            return 'Use either "person" or "company"'
        return 'Check the field format and requirements'
    return 'Review the field value and format'


# ── Format checks ────────────────────────────────────────────────────────────

def _domain(email: str) -> str:
    return email.rsplit('@', 1)[-1].lower() if '@' in email else ''


def is_valid_email(value: str) -> bool:
    if not value:
        return False
    if _domain(value) in TEMPLATE_DOMAINS:
        return True
    return bool(EMAIL_RE.match(value))


def is_valid_url(value: str) -> bool:
    if not value:
        return False
    if value.lower().startswith('https://example.com/'):
        return True
    return bool(URL_RE.match(value))


def normalize_email(value: Optional[str]) -> str:
    return value.strip().lower() if isinstance(value, str) else ''


def as_text(value) -> str:
    """
    Strip a scalar JSON value to text. None becomes ''.

    Raises TypeError for objects, lists and booleans.
    """
    if value is None:
        return ''
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError(f'expected text, got {type(value).__name__}')
    return str(value).strip()


# ── Per-row checks ───────────────────────────────────────────────────────────

def _format_errors(values: Dict[str, str], url_fields: List[str], row: int) -> List[ValidationError]:
    errors = []
    for name in url_fields:
        url = values.get(name) or ''
        if url and not is_valid_url(url):
            errors.append(ValidationError(
                row=row, field=name, value=url,
                message=f'Invalid URL for {name}: must start with http:// or https://',
            ))

    for name, limit in LENGTH_LIMITS:
        text = values.get(name) or ''
        if len(text) > limit:
            errors.append(ValidationError(
                row=row, field=name,
                message=f'{name} must be {limit} characters or less (got {len(text)})',
            ))
    return errors


def check_edits(values: Dict[str, str]) -> List[ValidationError]:
    """
    URL and length checks for an admin edit. Only the keys present in
    `values` are checked; clearing an optional field is allowed.
    """
    url_fields = [name for names in URL_FIELDS.values() for name in names if name in values]
    errors = _format_errors(values, url_fields, row=0)
    if 'why_vote_for_me' in values and not (values['why_vote_for_me'] or '').strip():
        errors.append(ValidationError(
            row=0, field='why_vote_for_me', error_type='missing_required',
            message='why_vote_for_me is required',
        ))
    return errors


def check_fields(values: Dict[str, str], nominee_type: str, row: int = 0) -> List[ValidationError]:
    """
    Field-level checks shared by bulk upload and the nomination form.

    `values` uses the CSV column names (first_name, why_vote_for_me, ...).
    Missing required fields are reported once each and skip further checks
    on that field.
    """
    errors = []
    missing = set()

    for name in REQUIRED_FIELDS[nominee_type]:
        if not (values.get(name) or '').strip():
            missing.add(name)
            errors.append(ValidationError(
                row=row, field=name, error_type='missing_required',
                message=f'{name} is required',
            ))

    email = values.get('email') or ''
    if 'email' not in missing and not is_valid_email(email):
        errors.append(ValidationError(
            row=row, field='email', value=email,
            message=f'Invalid email format: {email}',
        ))

    nominator_email = values.get('nominator_email') or ''
    if nominator_email and not is_valid_email(nominator_email):
        errors.append(ValidationError(
            row=row, field='nominator_email', value=nominator_email,
            message=f'Invalid nominator email format: {nominator_email}',
        ))

    errors.extend(_format_errors(values, URL_FIELDS[nominee_type], row))

    category = values.get('category') or ''
    if 'category' not in missing and not categories.accepts_type(category, nominee_type):
        errors.append(ValidationError(
            row=row, field='category', value=category,
            message=f'Unknown category for {nominee_type} nominees: {category}',
        ))

    return errors


def validate_rows(rows: Iterable, existing_emails: Optional[Set[str]] = None) -> Tuple[list, List[ValidationError]]:
    """
    Validate parsed rows.

    Args:
        rows:            PersonRow / CompanyRow records from csv_ingest.
        existing_emails: lower-cased emails of nominees already stored.

    Returns:
        (valid_rows, errors). Duplicate emails within the file flag the later
        rows only; the first occurrence stays valid.
    """
    existing_emails = existing_emails or set()
    seen: Dict[str, int] = {}
    valid = []
    errors: List[ValidationError] = []
    rows = list(rows)

    for row in rows:
        row_errors = check_fields(row.values(), row.nominee_type, row=row.row_number)

        email = normalize_email(row.email)
        if email and not any(e.field == 'email' for e in row_errors):
            if email in seen:
                row_errors.append(ValidationError(
                    row=row.row_number, field='email', value=row.email,
                    error_type='duplicate',
                    message=f'Duplicate email in file (first seen on row {seen[email]}): {row.email}',
                ))
            elif email in existing_emails:
                row_errors.append(ValidationError(
                    row=row.row_number, field='email', value=row.email,
                    error_type='duplicate',
                    message=f'A nominee with this email already exists: {row.email}',
                ))
            seen.setdefault(email, row.row_number)

        if row_errors:
            errors.extend(row_errors)
        else:
            valid.append(row)

    logger.info("Validated %d rows: %d valid, %d errors", len(rows), len(valid), len(errors))
    return valid, errors
