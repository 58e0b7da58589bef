"""
Nomination window — open/closed switch, deadline, voting-only mode.

Stored as text rows in app_settings:

    nominations_open     'true' / 'false' (default true)
    voting_only_mode     'true' / 'false' (default false)
    nomination_deadline  ISO-8601 UTC timestamp, '' for none

Public submissions are accepted only while nominations are open, voting-only
mode is off and the deadline (if any) has not passed.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from awards.models.setting import AppSetting

logger = logging.getLogger('services.settings')

SETTING_KEYS = ('nominations_open', 'voting_only_mode', 'nomination_deadline')


class SettingsInvalid(Exception):
    pass


def parse_deadline(value: str) -> datetime:
    """ISO-8601 string to an aware UTC datetime. Naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        raise SettingsInvalid('Invalid deadline date format')
    try:
        moment = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        raise SettingsInvalid('Invalid deadline date format')
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def get_settings(session) -> Dict:
    rows = {
        row.key: row
        for row in session.query(AppSetting).filter(AppSetting.key.in_(SETTING_KEYS)).all()
    }

    def flag(key, default):
        row = rows.get(key)
        return default if row is None else row.value == 'true'

    deadline_row = rows.get('nomination_deadline')
    deadline = None
    if deadline_row is not None and deadline_row.value:
        try:
            deadline = parse_deadline(deadline_row.value)
        except SettingsInvalid:
            logger.warning("Ignoring unreadable nomination_deadline %r", deadline_row.value)

    return {
        'nominations_open': flag('nominations_open', True),
        'voting_only_mode': flag('voting_only_mode', False),
        'nomination_deadline': deadline,
    }


def setting_rows(session) -> List[Dict]:
    """Raw stored rows for the admin console."""
    rows = session.query(AppSetting).filter(AppSetting.key.in_(SETTING_KEYS)).order_by(AppSetting.key).all()
    return [
        {'key': r.key, 'value': r.value, 'updatedAt': r.updated_at.isoformat() if r.updated_at else None,
         'updatedBy': r.updated_by}
        for r in rows
    ]


def _time_remaining(deadline: datetime, now: datetime) -> Dict:
    ms = int((deadline - now).total_seconds() * 1000)
    return {
        'milliseconds': ms,
        'days': math.ceil(ms / 86_400_000),
        'hours': math.ceil(ms / 3_600_000),
        'minutes': math.ceil(ms / 60_000),
    }


def nomination_status(session, now: Optional[datetime] = None) -> Dict:
    """Public view of the nomination window."""
    now = now or datetime.now(timezone.utc)
    settings = get_settings(session)
    deadline = settings['nomination_deadline']

    if deadline is None:
        deadline_status, remaining = 'no_deadline', None
    elif now >= deadline:
        deadline_status, remaining = 'expired', None
    else:
        deadline_status, remaining = 'active', _time_remaining(deadline, now)

    is_open = (settings['nominations_open'] and not settings['voting_only_mode']
               and deadline_status != 'expired')
    return {
        'nominationsOpen': is_open,
        'deadlineStatus': deadline_status,
        'timeRemaining': remaining,
        'deadline': deadline.isoformat() if deadline else None,
        'votingOnlyMode': settings['voting_only_mode'],
    }


def nominations_open(session, now: Optional[datetime] = None) -> bool:
    """
    Gate for public submissions.

    If the settings cannot be read the window is treated as open.
    """
    try:
        return nomination_status(session, now)['nominationsOpen']
    except Exception as e:
        session.rollback()
        logger.warning("Could not read nomination settings, allowing submission: %s", e)
        return True


def _put(session, key: str, value: str, updated_by: Optional[str]):
    row = session.get(AppSetting, key)
    if row is None:
        row = AppSetting(key=key)
        session.add(row)
    row.value = value
    row.updated_by = updated_by
    row.updated_at = datetime.now(timezone.utc)


def update_settings(session, changes: Dict, updated_by: Optional[str] = None,
                    now: Optional[datetime] = None) -> List[Dict]:
    """
    Apply an admin change to the nomination window.

    changes keys (all optional, at least one required):
        deadline          ISO-8601 string in the future, or None to clear it
        nominationsOpen   bool
        votingOnlyMode    bool; turning it on also closes nominations

    Returns the list of {key, value} rows written.

    Raises:
        SettingsInvalid: bad types, bad or past deadline, or nothing to update.
    """
    if not isinstance(changes, dict):
        raise SettingsInvalid('Request body must be a JSON object')
    now = now or datetime.now(timezone.utc)
    updates = []

    if 'deadline' in changes:
        raw = changes['deadline']
        if raw is None or raw == '':
            updates.append(('nomination_deadline', ''))
        else:
            deadline = parse_deadline(raw)
            if deadline <= now:
                raise SettingsInvalid('Deadline must be in the future')
            updates.append(('nomination_deadline', deadline.isoformat()))

    for field, key in (('nominationsOpen', 'nominations_open'), ('votingOnlyMode', 'voting_only_mode')):
        if field in changes:
            if not isinstance(changes[field], bool):
                raise SettingsInvalid(f'{field} must be true or false')
            updates.append((key, 'true' if changes[field] else 'false'))

    if changes.get('votingOnlyMode') is True:
        updates = [u for u in updates if u[0] != 'nominations_open']
        updates.append(('nominations_open', 'false'))

    if not updates:
        raise SettingsInvalid('No valid updates provided')

    for key, value in updates:
        _put(session, key, value, updated_by)
    session.commit()

    logger.info("Nomination settings updated by %s: %s", updated_by or 'unknown',
                ', '.join(f'{k}={v or "(cleared)"}' for k, v in updates))
    return [{'key': k, 'value': v} for k, v in updates]
