"""
Rate limiting for FastAPI using slowapi.
Protects login, registration and uploads against brute force and abuse.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from config.settings import RATE_LIMIT_ENABLED

# Shared limiter, attached to app.state in main.py
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

RATE_LIMIT_LOGIN = "5/minute"  # per IP
RATE_LIMIT_REGISTER = "3/hour"  # per IP
RATE_LIMIT_UPLOAD = "20/hour"  # per IP
