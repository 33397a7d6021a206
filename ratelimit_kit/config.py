"""
Configuration loading and Redis client creation.
"""

import logging
import os
from typing import Any, Dict, Optional

import redis
import yaml

from .exceptions import BackendUnavailableError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path of the file, defaults to $RATELIMIT_CONFIG then config.yaml

    Returns:
        Parsed configuration mapping

    Raises:
        ConfigurationError: If the file is missing, empty or not a YAML mapping
    """
    config_path = path or os.getenv('RATELIMIT_CONFIG', DEFAULT_CONFIG_PATH)
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as e:
        logger.error(f"Config file not found at {config_path}")
        raise ConfigurationError(f"Config file not found at {config_path}") from e
    except yaml.YAMLError as e:
        logger.error(f"Error parsing config file {config_path}: {e}")
        raise ConfigurationError(f"Could not parse {config_path}: {e}") from e

    if not config:
        raise ConfigurationError(f"Configuration file {config_path} is empty or invalid")
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    logger.info(f"Loaded configuration from {config_path}")
    return config


def create_redis_client(host: Optional[str] = None, port: Optional[int] = None,
                        db: Optional[int] = None) -> redis.Redis:
    """
    Create a Redis client and check that the server answers.

    Without an explicit host, $REDIS_HOST is tried first and localhost after it.

    Raises:
        BackendUnavailableError: If no candidate host answers a PING
    """
    if host:
        redis_hosts = [host]
    else:
        redis_hosts = [os.environ.get('REDIS_HOST', 'localhost'), 'localhost']
        redis_hosts = list(dict.fromkeys(redis_hosts))
    redis_port = int(port if port is not None else os.environ.get('REDIS_PORT', 6379))
    redis_db = int(db if db is not None else os.environ.get('REDIS_DB', 0))

    last_error = None
    for candidate in redis_hosts:
        try:
            logger.info(f"Attempting to connect to Redis at {candidate}:{redis_port}/{redis_db}")
            pool = redis.ConnectionPool(
                host=candidate,
                port=redis_port,
                db=redis_db,
                socket_timeout=2,
                socket_connect_timeout=2,
                max_connections=10,
                health_check_interval=30
            )
            redis_client = redis.Redis(connection_pool=pool)
            redis_client.ping()  # Test connection
            logger.info(f"Successfully connected to Redis at {candidate}:{redis_port}")
            return redis_client
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis connection failed for host {candidate}: {e}")
            last_error = e

    logger.error("All Redis connection attempts failed")
    raise BackendUnavailableError(
        f"Could not connect to Redis on {', '.join(redis_hosts)}:{redis_port}", backend="redis"
    ) from last_error
