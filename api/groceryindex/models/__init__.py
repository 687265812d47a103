from .base import Base
from .region import Region
from .market import Market
from .item import Item, ItemVariant
from .user import User, UserRole
from .price_report import PriceReport, ReportStatus
from .vote import ReportVote
from .reputation import ReputationEvent
from .badge import Badge, UserBadge
from .notification import Notification, NotificationType
from .comment import ReportComment
from .audit_log import AdminAuditLog

__all__ = [
    "Base",
    "Region",
    "Market",
    "Item",
    "ItemVariant",
    "User",
    "UserRole",
    "PriceReport",
    "ReportStatus",
    "ReportVote",
    "ReputationEvent",
    "Badge",
    "UserBadge",
    "Notification",
    "NotificationType",
    "ReportComment",
    "AdminAuditLog",
]
