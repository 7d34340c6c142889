"""
Shared clients: Redis (rate limits, circuit state) and OpenAI (conversation analysis).

Importing never fails on missing credentials. Without OPENAI_API_KEY the
client stays None and conversation analysis falls back to keyword matching.
"""
import logging

import redis

from leadradar.config import REDIS_URL, OPENAI_API_KEY

logger = logging.getLogger('leadradar.extensions')

redis_client = redis.from_url(REDIS_URL, decode_responses=True)


def redis_available(client=None):
    """True when Redis answers PING."""
    try:
        return bool((client or redis_client).ping())
    except Exception as e:
        logger.warning("Redis ping failed: %s", e)
        return False


openai_client = None
if OPENAI_API_KEY:
    try:
        from openai import OpenAI
        openai_client = OpenAI(api_key=OPENAI_API_KEY)
        logger.info("OpenAI client ready (conversation analysis via LLM)")
    except Exception as e:
        logger.error("OpenAI client init failed, using keyword analysis: %s", e)
else:
    logger.warning("OPENAI_API_KEY not set — conversation analysis will use keyword matching")
