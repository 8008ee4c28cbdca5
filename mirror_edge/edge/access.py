import logging
from typing import Callable, Optional

from mirror_edge.config import ProxyConfig
from mirror_edge.edge.models import IncomingRequest

logger = logging.getLogger("uvicorn.error")

AccessFilter = Callable[[IncomingRequest], bool]


def country_filter(config: ProxyConfig) -> Optional[AccessFilter]:
    """
    Build the country allow-list pre-filter, or None when the gate is off.

    Requests without a country are denied while the gate is on.
    """
    allowed = config.allowed_countries
    if not allowed:
        return None

    def _allow(request: IncomingRequest) -> bool:
        country = (request.country or "").upper()
        if country in allowed:
            return True
        logger.info(f"Access denied for country {country or '<unknown>'}")
        return False

    return _allow
