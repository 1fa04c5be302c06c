# File: app/core/ratelimit.py
# Project: itms-backend

from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared by the auth routes; create_app switches it on or off from RATE_LIMIT_ENABLED.
limiter = Limiter(key_func=get_remote_address)
