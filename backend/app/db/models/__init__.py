"""ORM models exposed for metadata discovery."""
from app.db.models.device_token import DeviceToken
from app.db.models.push_ticket import PushReceipt, PushTicket
from app.db.models.rate_limit import RateLimitBucket

__all__ = [
    "DeviceToken",
    "PushReceipt",
    "PushTicket",
    "RateLimitBucket",
]
