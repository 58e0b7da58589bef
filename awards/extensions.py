"""
Shared client instances — Redis.

redis.from_url() does not connect until the first command, so importing this
module is always safe (even when Redis is absent during tests).
"""
import logging
import redis

from awards.config import REDIS_URL

logger = logging.getLogger('awards.extensions')

redis_client = redis.from_url(REDIS_URL, decode_responses=True)
