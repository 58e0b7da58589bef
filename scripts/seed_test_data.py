#!/usr/bin/env python3
"""
Seed test data for verifying the admin console and public pages locally.

Creates a spread of nominations covering key scenarios:
  1. Approved person + company nominees with votes and admin vote overrides
  2. Submitted nominations waiting for review
  3. A rejected nomination with a reason
  4. A bulk upload batch with drafts and row errors

Usage:
    python scripts/seed_test_data.py          # seed all scenarios
    python scripts/seed_test_data.py --clear  # wipe seeded data first

Requires: DATABASE_URL set (or defaults to sqlite:///local.db). Tables are
created when missing so a fresh SQLite file works without running Alembic.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from awards.database import get_session, engine, Base, load_models


SEED_DOMAIN = 'seed.worldstaffingawards.test'

PEOPLE = [
    {'first': 'Jane', 'last': 'Morrison', 'category': 'top-recruiter', 'votes': 42, 'extra': 5, 'state': 'approved'},
    {'first': 'Mik', 'last': 'Andersen', 'category': 'top-recruiter', 'votes': 31, 'extra': 0, 'state': 'approved'},
    {'first': 'Sophie', 'last': 'Laurent', 'category': 'rising-star-under-30', 'votes': 18, 'extra': 10, 'state': 'approved'},
    {'first': 'Carlos', 'last': 'Reyes', 'category': 'best-sourcer', 'votes': 0, 'extra': 0, 'state': 'submitted'},
    {'first': 'Priya', 'last': 'Sharma', 'category': 'top-global-recruiter', 'votes': 0, 'extra': 0, 'state': 'rejected'},
]

COMPANIES = [
    {'name': 'Northwind Staffing', 'category': 'top-staffing-company-usa', 'votes': 55, 'extra': 0, 'state': 'approved'},
    {'name': 'Helix Talent Europe', 'category': 'top-staffing-company-europe', 'votes': 27, 'extra': 3, 'state': 'approved'},
    {'name': 'Brightpath Recruiting', 'category': 'best-candidate-experience', 'votes': 0, 'extra': 0, 'state': 'submitted'},
]

BATCH_CSV = """first_name,last_name,job_title,company_name,email,phone,country,linkedin,bio,achievements,why_vote_for_me,headshot_url,category,nominator_name,nominator_email,nominator_company,nominator_job_title,nominator_phone,nominator_country
Liam,OBrien,Recruiter,Acme,liam@{d},,Ireland,,,,Great recruiter,,top-recruiter,,,,,,
Emma,Chen,Sourcer,Acme,emma@{d},,Canada,,,,Finds anyone,,best-sourcer,,,,,,
Derek,Williams,Recruiter,Acme,not-an-email,,USA,,,,Fast closer,,top-recruiter,,,,,,
"""


def _email(local):
    return f'{local.lower().replace(" ", ".")}@{SEED_DOMAIN}'


def clear(session):
    from awards.models.nominee import Nominee
    from awards.models.nomination import Nomination
    from awards.models.bulk_upload import BulkUploadBatch

    nominees = session.query(Nominee).filter(Nominee.email_normalized.like(f'%@{SEED_DOMAIN}')).all()
    ids = [n.id for n in nominees]
    if ids:
        session.query(Nomination).filter(Nomination.nominee_id.in_(ids)).delete(synchronize_session=False)
        for n in nominees:
            session.delete(n)
    session.query(BulkUploadBatch).filter(BulkUploadBatch.filename == 'seed-batch.csv').delete(synchronize_session=False)
    session.commit()
    print(f"Cleared {len(ids)} seeded nominees")


def seed(session):
    from awards.services import approval, nominations, voting
    from awards.services.bulk_upload import process_upload

    def nominator():
        return {'firstName': 'Seed', 'lastName': 'Nominator', 'email': _email('nominator')}

    created = []
    for p in PEOPLE:
        created.append((p, nominations.submit_nomination(session, {
            'type': 'person',
            'subcategoryId': p['category'],
            'nominator': nominator(),
            'nominee': {
                'firstName': p['first'], 'lastName': p['last'],
                'email': _email(f"{p['first']}.{p['last']}"),
                'jobTitle': 'Recruiter', 'country': 'United States',
                'whyMe': f"{p['first']} has an outstanding placement record.",
            },
        })))
    for c in COMPANIES:
        created.append((c, nominations.submit_nomination(session, {
            'type': 'company',
            'subcategoryId': c['category'],
            'nominator': nominator(),
            'nominee': {
                'name': c['name'], 'email': _email(c['name']),
                'website': f"https://{c['name'].lower().replace(' ', '')}.example.com",
                'country': 'United States', 'whyUs': f"{c['name']} sets the bar for client care.",
            },
        })))

    for entry, nomination in created:
        if entry['state'] == 'approved':
            approval.approve(session, nomination.id, approved_by='seed')
            nomination.votes = entry['votes']
            session.commit()
            if entry['extra']:
                voting.set_additional_votes(session, nomination.id, entry['extra'])
        elif entry['state'] == 'rejected':
            approval.reject(session, nomination.id, 'Insufficient supporting information', rejected_by='seed')

    report = process_upload(session, BATCH_CSV.format(d=SEED_DOMAIN), 'person', 'seed-batch.csv',
                            uploaded_by='seed')
    print(f"Seeded {len(created)} nominations + batch {report['batchId']} ({report['summary']})")


def main():
    parser = argparse.ArgumentParser(description='Seed awards test data')
    parser.add_argument('--clear', action='store_true', help='Remove seeded data first')
    args = parser.parse_args()

    load_models()
    Base.metadata.create_all(engine)

    session = get_session()
    try:
        if args.clear:
            clear(session)
        seed(session)
    finally:
        session.close()


if __name__ == '__main__':
    main()
