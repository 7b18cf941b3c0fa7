#!/usr/bin/env python

"""
    Configurations for GearShare

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import os


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
SCHEME = 'http'
HOST = os.environ.get('GEARSHARE_HOST', 'localhost')
PORT = int(os.environ.get('GEARSHARE_PORT', 8080))
# The interval index lives in-process, so the engine must run as a single writer
WORKERS = int(os.environ.get('GEARSHARE_WORKERS', 1))
DEBUG = bool(int(os.environ.get('GEARSHARE_DEBUG', 0)))
LOG_LEVEL = os.environ.get('GEARSHARE_LOG_LEVEL', 'info')
SSL_CRT = os.environ.get('GEARSHARE_SSL_CRT')
SSL_KEY = os.environ.get('GEARSHARE_SSL_KEY')
GEARSHARE_HTTP_HEADERS = {"User-Agent": "GearShareNotifier/1.0"}
CORS_ORIGINS = os.environ.get('GEARSHARE_CORS_ORIGINS', 'http://localhost:3000').split(',')

SEED = os.environ.get('GEARSHARE_SEED', 'gearshare-dev-seed')

# Reservation engine
SWEEP_INTERVAL = int(os.environ.get('SWEEP_INTERVAL', 60))
LOCK_TIMEOUT = float(os.environ.get('LOCK_TIMEOUT', 5))

# Notification delivery
NOTIFY_WEBHOOK_URL = os.environ.get('NOTIFY_WEBHOOK_URL')
NOTIFY_TIMEOUT = float(os.environ.get('NOTIFY_TIMEOUT', 10))
NOTIFY_BATCH_SIZE = int(os.environ.get('NOTIFY_BATCH_SIZE', 100))
NOTIFY_INTERVAL = float(os.environ.get('NOTIFY_INTERVAL', 5))

OPTIONS = {
    'host': HOST,
    'port': PORT,
    'log_level': LOG_LEVEL,
    'reload': DEBUG,
    'workers': WORKERS,
}
if SSL_CRT and SSL_KEY:
    OPTIONS['ssl_keyfile'] = SSL_KEY
    OPTIONS['ssl_certfile'] = SSL_CRT
    SCHEME = 'https'

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'gearshare'),
}

# Database configuration
DB_URI = (
    "sqlite:///:memory:" if TESTING else
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

__all__ = [
    'SCHEME', 'HOST', 'PORT', 'DEBUG', 'OPTIONS', 'DB_URI', 'DB_CONFIG', 'TESTING',
    'SEED', 'SWEEP_INTERVAL', 'LOCK_TIMEOUT', 'NOTIFY_WEBHOOK_URL',
]
