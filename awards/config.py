"""
Centralized configuration — all env vars, limits and allowed state values.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Auth ─────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD')
CRON_SECRET = os.getenv('CRON_SECRET')

# ── HubSpot ───────────────────────────────────────────────────────────────────
HUBSPOT_ACCESS_TOKEN = os.getenv('HUBSPOT_ACCESS_TOKEN')
HUBSPOT_API_URL = 'https://api.hubapi.com'

# ── Loops ─────────────────────────────────────────────────────────────────────
LOOPS_API_KEY = os.getenv('LOOPS_API_KEY')
LOOPS_API_URL = 'https://app.loops.so/api/v1'
LOOPS_SYNC_ENABLED = os.getenv('LOOPS_SYNC_ENABLED', 'false').lower() == 'true'

# Transactional email templates; an unset id means that email is not sent
LOOPS_TRANSACTIONAL_IDS = {
    'nominator_confirmation': os.getenv('LOOPS_TX_NOMINATOR_CONFIRMATION'),
    'nominee_approved': os.getenv('LOOPS_TX_NOMINEE_APPROVED'),
    'nominator_approved': os.getenv('LOOPS_TX_NOMINATOR_APPROVED'),
    'vote_confirmation': os.getenv('LOOPS_TX_VOTE_CONFIRMATION'),
}

# Drain the outboxes through RQ right after an approval instead of waiting for cron
REALTIME_SYNC = os.getenv('REALTIME_SYNC', 'false').lower() == 'true'

# ── Public site ──────────────────────────────────────────────────────────────
PUBLIC_BASE_URL = os.getenv('PUBLIC_BASE_URL', 'https://worldstaffingawards.com').rstrip('/')

# Clients poll stats/podium instead of holding a socket open
POLL_INTERVAL_SECONDS = 30

# ── Bulk upload limits ───────────────────────────────────────────────────────
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_UPLOAD_ROWS = 1000

MAX_WHY_VOTE_LENGTH = 1000
MAX_BIO_LENGTH = 2000
MAX_ACHIEVEMENTS_LENGTH = 2000

# State given to nominations written by a bulk upload
BULK_UPLOAD_INITIAL_STATE = os.getenv('BULK_UPLOAD_INITIAL_STATE', 'draft')

# Example domains used in the downloadable CSV template; exempt from format checks
TEMPLATE_DOMAINS = {
    'example.com', 'client.com', 'startup.com', 'enterprise.com',
    'fintech.com', 'media.com', 'consulting.com', 'multinational.com',
    'staffingfirm.com', 'healthcare.com', 'global.com', 'international.com',
}

# ── Default nominator for rows that name none ───────────────────────────────
DEFAULT_NOMINATOR = {
    'email': 'admin@worldstaffingawards.com',
    'first_name': 'Admin',
    'last_name': 'User',
    'company': 'World Staffing Awards',
    'job_title': 'Administrator',
}

# ── Nomination state values ──────────────────────────────────────────────────
# Pending states reach a decision state only through the approval gate
PENDING_STATES = ['draft', 'submitted']
DECISION_STATES = ['approved', 'rejected']
NOMINATION_STATES = PENDING_STATES + DECISION_STATES

# ── Outbox ────────────────────────────────────────────────────────────────────
OUTBOX_STATUSES = [
    'pending',
    'processing',
    'done',
    'dead',
]
OUTBOX_MAX_ATTEMPTS = 3
HUBSPOT_BATCH_SIZE = 10
LOOPS_BATCH_SIZE = 50

# ── Vote rate limits (per client IP) ─────────────────────────────────────────
VOTES_PER_MINUTE = int(os.getenv('VOTES_PER_MINUTE', '10'))
VOTES_PER_DAY = int(os.getenv('VOTES_PER_DAY', '100'))
