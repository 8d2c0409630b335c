"""SQLAlchemy ORM models.

Models represent database tables:
- pricing_data: Wholesale grade prices and buyback offers per (model, network)
- pricing_update_logs: Append-only audit trail of pricing syncs
- settings: Admin-editable key/value settings (margin policy)
"""

from buyback.models.pricing_data import NETWORK_CARRIER_LOCKED, NETWORK_UNLOCKED, PricingData
from buyback.models.pricing_update_log import PricingUpdateLog
from buyback.models.setting import Setting

__all__ = [
    "NETWORK_CARRIER_LOCKED",
    "NETWORK_UNLOCKED",
    "PricingData",
    "PricingUpdateLog",
    "Setting",
]
