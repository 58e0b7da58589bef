"""Shared test fixtures."""
import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from awards.database import Base, load_models


# Modules that did `from awards.database import get_session`
SESSION_MODULES = [
    'awards.routes.public',
    'awards.routes.admin',
    'awards.routes.bulk_upload',
    'awards.routes.sync',
    'awards.tasks',
]


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    load_models()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    We disable close() so that route handlers calling session.close()
    in their finally blocks don't invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    patchers = [patch('awards.database.get_session', return_value=db_session)]
    patchers += [patch(f'{m}.get_session', return_value=db_session) for m in SESSION_MODULES]
    for p in patchers:
        p.start()
    yield db_session
    for p in reversed(patchers):
        p.stop()
    db_session.close = _real_close


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.incr.return_value = 1
    mock.hgetall.return_value = {}
    with patch('awards.extensions.redis_client', mock), \
            patch('awards.routes.public.redis_client', mock):
        yield mock


@pytest.fixture
def app(mock_redis):
    """Flask test app."""
    from awards import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


PERSON_HEADER = (
    'first_name,last_name,job_title,company_name,email,phone,country,linkedin,bio,'
    'achievements,why_vote_for_me,headshot_url,category,nominator_name,nominator_email,'
    'nominator_company,nominator_job_title,nominator_phone,nominator_country'
)

COMPANY_HEADER = (
    'company_name,website,email,phone,country,industry,company_size,bio,achievements,'
    'why_vote_for_me,logo_url,category,nominator_name,nominator_email,nominator_company,'
    'nominator_job_title,nominator_phone,nominator_country'
)


@pytest.fixture
def person_csv():
    """Factory fixture — builds a person CSV from (first, last, email, category) tuples."""
    def _make(*rows, header=PERSON_HEADER):
        lines = [header]
        for first, last, email, category in rows:
            lines.append(
                f'{first},{last},Recruiter,Acme Staffing,{email},,United States,,,,'
                f'Outstanding recruiter,,{category},Pat Lee,pat.lee@acme.io,Acme Staffing,'
                f'Director,,United States'
            )
        return '\n'.join(lines) + '\n'
    return _make


@pytest.fixture
def company_csv():
    """Factory fixture — builds a company CSV from (name, email, category) tuples."""
    def _make(*rows):
        lines = [COMPANY_HEADER]
        for name, email, category in rows:
            lines.append(
                f'{name},https://{name.lower().replace(" ", "")}.io,{email},,United Kingdom,'
                f'Staffing,50-200,,,Great place to work,,{category},,,,,,'
            )
        return '\n'.join(lines) + '\n'
    return _make


@pytest.fixture
def make_nomination(db_session):
    """Factory fixture — inserts a nominator + nominee + nomination directly."""
    from awards.models.nominator import Nominator
    from awards.models.nominee import Nominee
    from awards.models.nomination import Nomination

    counter = {'n': 0}

    def _make(state='submitted', subcategory_id='top-recruiter', nominee_type='person',
              first_name='Jane', last_name='Smith', company_name='Acme Staffing',
              email=None, votes=0, additional_votes=0, **overrides):
        counter['n'] += 1
        email = email or f'nominee{counter["n"]}@acme.io'
        nominator = Nominator(email='pat.lee@acme.io', first_name='Pat', last_name='Lee')
        nominee = Nominee(type=nominee_type, email=email, email_normalized=email.lower())
        if nominee_type == 'person':
            nominee.first_name = first_name
            nominee.last_name = last_name
            nominee.why_me = 'Outstanding recruiter'
        else:
            nominee.company_name = company_name
            nominee.why_us = 'Great place to work'
        db_session.add_all([nominator, nominee])
        db_session.flush()
        nomination = Nomination(
            nominator_id=nominator.id, nominee_id=nominee.id,
            category_group_id='role-specific-excellence', subcategory_id=subcategory_id,
            state=state, votes=votes, additional_votes=additional_votes,
            **overrides,
        )
        db_session.add(nomination)
        db_session.commit()
        return nomination
    return _make
