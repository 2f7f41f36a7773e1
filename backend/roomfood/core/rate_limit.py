from slowapi import Limiter
from slowapi.util import get_remote_address

from roomfood.core.settings import get_settings

# Shared limiter; main attaches it to app.state
limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().ENABLE_RATE_LIMITING,
)

def auth_rate_limit() -> str:
    return get_settings().RATE_LIMIT_AUTH
