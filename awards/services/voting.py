"""
Public voting — one vote per voter per subcategory.

The unique constraint on (voter_id, subcategory_id) settles races; the counter
is bumped with a single UPDATE so concurrent votes never lose increments.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from awards.config import VOTES_PER_MINUTE, VOTES_PER_DAY
from awards.models.nomination import Nomination
from awards.models.vote import Voter, Vote
from awards.services import outbox
from awards.services.validation import as_text, is_valid_email, normalize_email

logger = logging.getLogger('services.voting')


class VoteRejected(Exception):
    """Vote request is invalid (bad email, unknown or unapproved nomination)."""
    def __init__(self, message, status=400):
        self.status = status
        super().__init__(message)


class AlreadyVoted(Exception):
    code = 'ALREADY_VOTED'

    def __init__(self, subcategory_id):
        self.subcategory_id = subcategory_id
        super().__init__(f"You have already voted in {subcategory_id}")


class RateLimited(Exception):
    def __init__(self, retry_after):
        self.retry_after = retry_after
        super().__init__(f"Too many votes, try again in {retry_after}s")


# ── Rate limiting ────────────────────────────────────────────────────────────

def check_rate_limit(redis_client, client_ip: str):
    """
    Fixed-window counters per IP: one per minute, one per day.

    Redis errors never block a vote.
    """
    if not client_ip:
        return
    now = int(time.time())
    windows = [
        (f'wsa:votes:min:{client_ip}:{now // 60}', 60, VOTES_PER_MINUTE),
        (f'wsa:votes:day:{client_ip}:{now // 86400}', 86400, VOTES_PER_DAY),
    ]
    try:
        for key, ttl, limit in windows:
            count = redis_client.incr(key)
            if count == 1:
                redis_client.expire(key, ttl)
            if count > limit:
                raise RateLimited(retry_after=ttl - (now % ttl))
    except RateLimited:
        raise
    except Exception as e:
        logger.warning("Vote rate limiter unavailable, allowing vote: %s", e)


# ── Votes ────────────────────────────────────────────────────────────────────

def upsert_voter(session, email: str, first_name='', last_name='', company=None,
                 job_title=None, country=None, linkedin=None) -> Voter:
    email = normalize_email(email)
    voter = session.query(Voter).filter(Voter.email == email).first()
    if voter is None:
        voter = Voter(email=email)
        session.add(voter)
    voter.first_name = first_name or voter.first_name or ''
    voter.last_name = last_name or voter.last_name or ''
    voter.company = company or voter.company
    voter.job_title = job_title or voter.job_title
    voter.country = country or voter.country
    voter.linkedin = linkedin or voter.linkedin
    session.flush()
    return voter


def cast_vote(session, nomination_id, subcategory_id: str, voter: Dict,
              client_ip: Optional[str] = None, user_agent: Optional[str] = None) -> Dict:
    """
    Record a vote and return the nomination's new public total.

    Raises:
        VoteRejected: invalid voter email or nomination not votable here.
        AlreadyVoted: this voter already voted in the subcategory.
    """
    if not isinstance(voter, dict):
        raise VoteRejected('Voter details are required')
    try:
        details = {key: as_text(voter.get(key)) for key in
                   ('email', 'firstName', 'lastName', 'company', 'jobTitle', 'country', 'linkedin')}
        subcategory_id = as_text(subcategory_id)
    except TypeError:
        raise VoteRejected('Voter details and category must be text')
    if isinstance(nomination_id, bool):
        raise VoteRejected('nominationId must be a number')
    try:
        nomination_id = int(nomination_id)
    except (TypeError, ValueError):
        raise VoteRejected('nominationId must be a number')

    email = normalize_email(details['email'])
    if not is_valid_email(email):
        raise VoteRejected('A valid email address is required')
    if not details['firstName'] or not details['lastName']:
        raise VoteRejected('First and last name are required')

    nomination = session.get(Nomination, nomination_id)
    if nomination is None:
        raise VoteRejected('Nomination not found', status=404)
    if nomination.state != 'approved':
        raise VoteRejected('Voting is only open for approved nominees')
    subcategory_id = subcategory_id or nomination.subcategory_id
    if nomination.subcategory_id != subcategory_id:
        raise VoteRejected('Nomination does not belong to this category')

    try:
        record = upsert_voter(
            session, email,
            first_name=details['firstName'], last_name=details['lastName'],
            company=details['company'], job_title=details['jobTitle'],
            country=details['country'], linkedin=details['linkedin'],
        )
        existing = (
            session.query(Vote.id)
            .filter(Vote.voter_id == record.id, Vote.subcategory_id == subcategory_id)
            .first()
        )
        if existing is not None:
            raise AlreadyVoted(subcategory_id)

        vote = Vote(
            voter_id=record.id,
            nomination_id=nomination.id,
            subcategory_id=subcategory_id,
            ip=client_ip,
            user_agent=(user_agent or '')[:500] or None,
        )
        session.add(vote)
        session.flush()

        session.execute(
            update(Nomination)
            .where(Nomination.id == nomination.id)
            .values(votes=Nomination.votes + 1)
        )
        record.last_voted_at = datetime.now(timezone.utc)
        outbox.enqueue_all(session, 'vote_cast', outbox.vote_payload(vote, record, nomination))
        session.commit()
    except IntegrityError:
        session.rollback()
        raise AlreadyVoted(subcategory_id)
    except Exception:
        session.rollback()
        raise

    session.refresh(nomination)
    logger.info("Vote %s cast for nomination %s in %s", vote.id, nomination.id, subcategory_id,
                extra={'nomination_id': nomination.id})
    return {
        'ok': True,
        'voteId': vote.id,
        'voterId': record.id,
        'newVoteCount': nomination.total_votes,
    }


def set_additional_votes(session, nomination_id, additional_votes: int) -> Nomination:
    """Admin override added on top of real votes."""
    try:
        additional_votes = int(additional_votes)
    except (TypeError, ValueError):
        raise VoteRejected('additionalVotes must be zero or more')
    if additional_votes < 0:
        raise VoteRejected('additionalVotes must be zero or more')
    nomination = session.get(Nomination, nomination_id)
    if nomination is None:
        raise VoteRejected('Nomination not found', status=404)
    nomination.additional_votes = additional_votes
    session.commit()
    logger.info("Nomination %s additional votes set to %d", nomination.id, nomination.additional_votes,
                extra={'nomination_id': nomination.id})
    return nomination
