from functools import lru_cache

from redis import Redis

import app.config.config as configs


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    return Redis(host=configs.REDIS_HOST, port=configs.REDIS_PORT, decode_responses=True)
