"""Select the PMS adapter configured for this deployment."""

from functools import lru_cache

from timeshare.config import settings
from timeshare.pms.base import PmsAdapter
from timeshare.pms.http import HttpPmsAdapter
from timeshare.pms.mock import MockPmsAdapter


@lru_cache
def get_pms_adapter() -> PmsAdapter:
    if settings.pms_provider == "http":
        return HttpPmsAdapter(
            settings.pms_base_url,
            api_key=settings.pms_api_key,
            timeout=settings.pms_timeout_seconds,
        )
    return MockPmsAdapter()
