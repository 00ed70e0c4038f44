#!/usr/bin/env python

"""
    Configurations for Shelfshare

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import os


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
HOST = os.environ.get('SHELFSHARE_HOST', 'localhost')
PORT = int(os.environ.get('SHELFSHARE_PORT', 8080))
WORKERS = int(os.environ.get('SHELFSHARE_WORKERS', 1))
DEBUG = bool(int(os.environ.get('SHELFSHARE_DEBUG', 0)))
LOG_LEVEL = os.environ.get('SHELFSHARE_LOG_LEVEL', 'info')
SSL_CRT = os.environ.get('SHELFSHARE_SSL_CRT')
SSL_KEY = os.environ.get('SHELFSHARE_SSL_KEY')
CORS_ORIGINS = [
    origin.strip() for origin in
    os.environ.get('SHELFSHARE_CORS_ORIGINS', 'http://localhost:3000').split(',')
    if origin.strip()
]

# Lending and giveaway policy
LOAN_PERIOD_DAYS = int(os.environ.get('LOAN_PERIOD_DAYS', 14))
CLAIM_HOLD_HOURS = int(os.environ.get('CLAIM_HOLD_HOURS', 48))

# Bearer token / session cookie signing
SEED = os.environ.get('SHELFSHARE_SEED', 'shelfshare-dev-seed')
TOKEN_TTL = int(os.environ.get('TOKEN_TTL', 604800))

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

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'shelfshare'),
}

# Database configuration
DB_URI = os.environ.get('SHELFSHARE_DB_URI') or (
    "sqlite:///:memory:" if TESTING else
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

__all__ = [
    'HOST', 'PORT', 'DEBUG', 'LOG_LEVEL', 'OPTIONS', 'DB_URI', 'TESTING',
    'LOAN_PERIOD_DAYS', 'CLAIM_HOLD_HOURS', 'SEED', 'TOKEN_TTL', 'CORS_ORIGINS',
]
