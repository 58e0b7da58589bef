"""
CSV ingestion — file text → header check → typed PersonRow / CompanyRow records.

Structural problems (no data rows, missing headers) raise MalformedInput before
anything is written. Field-level problems are left to the validator.
"""
import csv
import io
import logging
from dataclasses import dataclass, field, fields
from typing import Dict, List, Union

logger = logging.getLogger('services.csv_ingest')


NOMINATOR_HEADERS = [
    'nominator_name', 'nominator_email', 'nominator_company',
    'nominator_job_title', 'nominator_phone', 'nominator_country',
]

PERSON_HEADERS = [
    'first_name', 'last_name', 'job_title', 'company_name', 'email', 'phone',
    'country', 'linkedin', 'bio', 'achievements', 'why_vote_for_me',
    'headshot_url', 'category',
] + NOMINATOR_HEADERS

COMPANY_HEADERS = [
    'company_name', 'website', 'email', 'phone', 'country', 'industry',
    'company_size', 'bio', 'achievements', 'why_vote_for_me', 'logo_url',
    'category',
] + NOMINATOR_HEADERS

EXPECTED_HEADERS = {
    'person': PERSON_HEADERS,
    'company': COMPANY_HEADERS,
}

TEMPLATE_EXAMPLES = {
    'person': {
        'first_name': 'Jane', 'last_name': 'Smith', 'job_title': 'Senior Recruiter',
        'company_name': 'Staffing Firm Inc', 'email': 'jane.smith@example.com',
        'phone': '+1-555-0101', 'country': 'United States',
        'linkedin': 'https://linkedin.com/in/janesmith',
        'bio': 'Fifteen years placing engineering talent across North America.',
        'achievements': 'Placed 300+ candidates in 2025',
        'why_vote_for_me': 'Consistently delivers outstanding candidate and client experiences.',
        'headshot_url': 'https://example.com/headshots/jane.jpg',
        'category': 'top-recruiter',
        'nominator_name': 'John Doe', 'nominator_email': 'john.doe@client.com',
        'nominator_company': 'Client Corp', 'nominator_job_title': 'HR Director',
        'nominator_phone': '+1-555-0102', 'nominator_country': 'United States',
    },
    'company': {
        'company_name': 'Global Staffing Co', 'website': 'https://example.com',
        'email': 'awards@staffingfirm.com', 'phone': '+44-20-5550-0100',
        'country': 'United Kingdom', 'industry': 'Staffing & Recruiting',
        'company_size': '500-1000',
        'bio': 'Full-service staffing partner operating in 12 countries.',
        'achievements': 'Grew placements 40% year over year',
        'why_vote_for_me': 'Sets the standard for candidate care at scale.',
        'logo_url': 'https://example.com/logos/global-staffing.png',
        'category': 'best-recruitment-agency',
        'nominator_name': 'Anna Berg', 'nominator_email': 'anna.berg@client.com',
        'nominator_company': 'Client Corp', 'nominator_job_title': 'Talent Director',
        'nominator_phone': '+44-20-5550-0101', 'nominator_country': 'United Kingdom',
    },
}


class MalformedInput(Exception):
    """The file as a whole cannot be ingested (structure, not field values)."""


@dataclass
class _Row:
    row_number: int
    email: str = ''
    phone: str = ''
    country: str = ''
    bio: str = ''
    achievements: str = ''
    why_vote_for_me: str = ''
    category: str = ''
    nominator_name: str = ''
    nominator_email: str = ''
    nominator_company: str = ''
    nominator_job_title: str = ''
    nominator_phone: str = ''
    nominator_country: str = ''
    raw: Dict[str, str] = field(default_factory=dict)

    nominee_type = ''

    def get(self, name: str) -> str:
        return getattr(self, name, '') or ''

    def values(self) -> Dict[str, str]:
        """Field name → value, keyed by the CSV column names."""
        return {
            f.name: getattr(self, f.name) or ''
            for f in fields(self) if f.name not in ('row_number', 'raw')
        }


@dataclass
class PersonRow(_Row):
    first_name: str = ''
    last_name: str = ''
    job_title: str = ''
    company_name: str = ''
    linkedin: str = ''
    headshot_url: str = ''

    nominee_type = 'person'

    @property
    def display_name(self):
        return f'{self.first_name} {self.last_name}'.strip()


@dataclass
class CompanyRow(_Row):
    company_name: str = ''
    website: str = ''
    industry: str = ''
    company_size: str = ''
    logo_url: str = ''

    nominee_type = 'company'

    @property
    def display_name(self):
        return self.company_name


NomineeRow = Union[PersonRow, CompanyRow]

ROW_TYPES = {
    'person': PersonRow,
    'company': CompanyRow,
}


def decode_upload(data: bytes) -> str:
    """Decode uploaded bytes: UTF-8 (BOM stripped) with a Latin-1 fallback."""
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        logger.info("Upload is not valid UTF-8, decoding as Latin-1")
        return data.decode('latin-1')


def _clean(value) -> str:
    if value is None:
        return ''
    return str(value).strip().strip('"').strip()


def parse_csv(text: str, nominee_type: str) -> List[NomineeRow]:
    """
    Parse CSV text into typed rows for the given nominee type.

    Row numbers follow the spreadsheet view: the header is row 1, so the
    first data row is row 2. Blank lines are dropped before numbering.

    Raises:
        MalformedInput: unknown type, no data rows, or missing headers.
    """
    if nominee_type not in EXPECTED_HEADERS:
        raise MalformedInput(f'Invalid upload type: {nominee_type!r}. Use "person" or "company"')

    records = [
        values for values in csv.reader(io.StringIO((text or '').lstrip('\ufeff')))
        if any(v.strip() for v in values)
    ]
    if len(records) < 2:
        raise MalformedInput('CSV must have at least a header row and one data row')

    header = [_clean(h) for h in records[0]]

    missing = [h for h in EXPECTED_HEADERS[nominee_type] if h not in header]
    if missing:
        raise MalformedInput(f'Missing required headers: {", ".join(missing)}')

    row_cls = ROW_TYPES[nominee_type]
    known = {f.name for f in fields(row_cls)} - {'row_number', 'raw'}

    rows = []
    for index, values in enumerate(records[1:]):
        raw = {}
        for i, name in enumerate(header):
            if name:
                raw[name] = _clean(values[i]) if i < len(values) else ''
        row_number = index + 2
        row = row_cls(
            row_number=row_number,
            raw=raw,
            **{k: v for k, v in raw.items() if k in known},
        )
        rows.append(row)

    logger.info("Parsed %d %s rows", len(rows), nominee_type)
    return rows


def template_csv(nominee_type: str) -> str:
    """Downloadable template: header line plus one example row."""
    if nominee_type not in EXPECTED_HEADERS:
        raise MalformedInput(f'Invalid upload type: {nominee_type!r}. Use "person" or "company"')
    headers = EXPECTED_HEADERS[nominee_type]
    out = io.StringIO()
    writer = csv.writer(out, lineterminator='\n')
    writer.writerow(headers)
    example = TEMPLATE_EXAMPLES[nominee_type]
    writer.writerow([example.get(h, '') for h in headers])
    return out.getvalue()
