"""Tests for awards.services.validation — field rules, duplicates, suggested fixes."""
import pytest

from awards.services.csv_ingest import PersonRow, CompanyRow
from awards.services.validation import (
    validate_rows, check_fields, suggested_fix, is_valid_email, is_valid_url,
    normalize_email, as_text, check_edits, ValidationError,
)


def _person(row_number=2, **overrides):
    data = dict(
        first_name='Jane', last_name='Smith', email='jane@acme.io',
        why_vote_for_me='Outstanding recruiter', category='top-recruiter',
    )
    data.update(overrides)
    return PersonRow(row_number=row_number, **data)


def _company(row_number=2, **overrides):
    data = dict(
        company_name='Northwind', email='hello@northwind.io',
        why_vote_for_me='Great place to work', category='best-recruitment-agency',
    )
    data.update(overrides)
    return CompanyRow(row_number=row_number, **data)


class TestEmailAndUrl:

    @pytest.mark.parametrize('value', ['jane@acme.io', 'a.b+c@sub.domain.co.uk'])
    def test_valid_emails(self, value):
        assert is_valid_email(value)

    @pytest.mark.parametrize('value', ['', 'not-an-email', 'jane@acme', 'ja ne@acme.io', '@acme.io'])
    def test_invalid_emails(self, value):
        assert not is_valid_email(value)

    def test_template_domain_exempt(self):
        assert is_valid_email('jane.smith@example.com')

    @pytest.mark.parametrize('value', ['https://acme.io', 'http://linkedin.com/in/jane', 'HTTPS://ACME.IO/x'])
    def test_valid_urls(self, value):
        assert is_valid_url(value)

    @pytest.mark.parametrize('value', ['acme.io', 'ftp://acme.io', 'https://localhost', 'https:// acme.io'])
    def test_invalid_urls(self, value):
        assert not is_valid_url(value)

    def test_normalize_email(self):
        assert normalize_email('  Jane@ACME.io ') == 'jane@acme.io'
        assert normalize_email(None) == ''
        assert normalize_email(['jane@acme.io']) == ''
        assert normalize_email(42) == ''

    @pytest.mark.parametrize('value,expected', [(None, ''), ('  hi ', 'hi'), (42, '42'), (1.5, '1.5')])
    def test_as_text(self, value, expected):
        assert as_text(value) == expected

    @pytest.mark.parametrize('value', [['a'], {'a': 1}, True])
    def test_as_text_rejects_non_scalars(self, value):
        with pytest.raises(TypeError):
            as_text(value)


class TestCheckFields:

    def test_valid_person(self):
        assert check_fields(_person().values(), 'person') == []

    def test_each_missing_field_reported_once(self):
        errors = check_fields(_person(first_name='', email='', category='').values(), 'person', row=7)
        missing = [(e.field, e.error_type) for e in errors]
        assert missing == [
            ('first_name', 'missing_required'),
            ('email', 'missing_required'),
            ('category', 'missing_required'),
        ]
        assert all(e.row == 7 for e in errors)

    def test_whitespace_counts_as_missing(self):
        errors = check_fields(_person(last_name='   ').values(), 'person')
        assert [e.field for e in errors] == ['last_name']

    def test_company_requires_company_name(self):
        errors = check_fields(_company(company_name='').values(), 'company')
        assert [e.field for e in errors] == ['company_name']

    def test_invalid_email(self):
        errors = check_fields(_person(email='not-an-email').values(), 'person')
        assert len(errors) == 1
        assert errors[0].field == 'email'
        assert errors[0].error_type == 'validation'
        assert errors[0].suggested_fix == 'Use format: user@domain.com'

    def test_invalid_nominator_email(self):
        errors = check_fields(_person(nominator_email='pat-at-acme').values(), 'person')
        assert [e.field for e in errors] == ['nominator_email']

    def test_blank_nominator_email_allowed(self):
        assert check_fields(_person(nominator_email='').values(), 'person') == []

    def test_invalid_urls_per_type(self):
        person_errors = check_fields(_person(linkedin='linkedin.com/in/jane').values(), 'person')
        company_errors = check_fields(_company(website='northwind').values(), 'company')
        assert [e.field for e in person_errors] == ['linkedin']
        assert [e.field for e in company_errors] == ['website']
        assert person_errors[0].suggested_fix == 'Use format: https://example.com'

    def test_length_limits(self):
        errors = check_fields(_person(why_vote_for_me='x' * 1001, bio='y' * 2000).values(), 'person')
        assert [e.field for e in errors] == ['why_vote_for_me']
        assert '1000' in errors[0].message

    def test_category_must_accept_type(self):
        errors = check_fields(_person(category='best-recruitment-agency').values(), 'person')
        assert [e.field for e in errors] == ['category']
        assert errors[0].suggested_fix == 'Use one of the category ids from the template'

    def test_unknown_category(self):
        errors = check_fields(_company(category='best-dancers').values(), 'company')
        assert [e.field for e in errors] == ['category']

    def test_both_category_accepts_company(self):
        assert check_fields(_company(category='special-recognition').values(), 'company') == []


class TestValidateRows:

    def test_partition(self):
        rows = [_person(2), _person(3, email='bad'), _person(4, email='mik@acme.io')]
        valid, errors = validate_rows(rows)
        assert [r.row_number for r in valid] == [2, 4]
        assert [(e.row, e.field) for e in errors] == [(3, 'email')]

    def test_duplicate_in_file_flags_later_rows_only(self):
        rows = [_person(2), _person(3, email='JANE@acme.io'), _person(4, email='Jane@Acme.IO')]
        valid, errors = validate_rows(rows)
        assert [r.row_number for r in valid] == [2]
        assert [(e.row, e.error_type) for e in errors] == [(3, 'duplicate'), (4, 'duplicate')]
        assert 'row 2' in errors[0].message

    def test_existing_email_is_duplicate(self):
        valid, errors = validate_rows([_person(2)], existing_emails={'jane@acme.io'})
        assert valid == []
        assert errors[0].error_type == 'duplicate'
        assert errors[0].suggested_fix == 'Use a unique email address or remove duplicate entry'

    def test_invalid_email_not_also_duplicate(self):
        rows = [_person(2, email='bad'), _person(3, email='bad')]
        _, errors = validate_rows(rows)
        assert [e.error_type for e in errors] == ['validation', 'validation']

    def test_one_bad_row_does_not_stop_the_rest(self):
        rows = [_person(n, email=f'p{n}@acme.io') for n in range(2, 12)]
        rows[3] = _person(5, first_name='')
        valid, errors = validate_rows(rows)
        assert len(valid) == 9
        assert len(errors) == 1

    def test_multiple_errors_on_one_row(self):
        valid, errors = validate_rows([_person(2, first_name='', email='bad', category='nope')])
        assert valid == []
        assert {e.field for e in errors} == {'first_name', 'email', 'category'}


class TestSuggestedFix:

    @pytest.mark.parametrize('error_type,field,expected', [
        ('missing_required', 'first_name', 'Add a value for first_name'),
        ('duplicate', 'email', 'Use a unique email address or remove duplicate entry'),
        ('validation', 'nominator_email', 'Use format: user@domain.com'),
        ('validation', 'headshot_url', 'Use format: https://example.com'),
        ('validation', 'website', 'Use format: https://example.com'),
        ('validation', 'bio', 'Shorten bio to at most 2000 characters'),
        ('validation', 'nomination_id', 'Use a valid numeric ID'),
        ('validation', 'type', 'Use either "person" or "company"'),
        ('validation', 'phone', 'Check the field format and requirements'),
        ('processing', None, 'Review the field value and format'),
    ])
    def test_fix_text(self, error_type, field, expected):
        assert suggested_fix(error_type, field) == expected

    def test_to_dict_includes_fix(self):
        data = ValidationError(row=3, field='email', message='bad', value='x').to_dict()
        assert data['row'] == 3
        assert data['suggestedFix'] == 'Use format: user@domain.com'


class TestCheckEdits:

    def test_only_present_fields_checked(self):
        assert check_edits({'bio': 'Short bio'}) == []

    def test_urls_of_either_type(self):
        errors = check_edits({'logo_url': 'logo.png', 'company_linkedin': 'https://linkedin.com/company/x',
                              'linkedin': 'in/jane'})
        assert [e.field for e in errors] == ['linkedin', 'logo_url']

    def test_lengths(self):
        errors = check_edits({'achievements': 'a' * 2001})
        assert errors[0].field == 'achievements'

    def test_why_cannot_be_blank(self):
        assert check_edits({'why_vote_for_me': ''})[0].error_type == 'missing_required'


class TestErrorTypes:

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            ValidationError(row=1, field='email', message='x', error_type='typo')
