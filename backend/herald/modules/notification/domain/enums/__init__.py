"""Notification domain enums.

This module contains all enumeration types used in the notification domain,
providing type-safe constants for channels, priorities, business event types,
lifecycle statuses and scheduling options.
"""

from enum import Enum


class NotificationChannel(Enum):
    """Available notification delivery channels."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    IN_APP = "in_app"
    WEBHOOK = "webhook"

    def max_content_length(self) -> int:
        """Get maximum body length for this channel."""
        if self == NotificationChannel.SMS:
            return 160
        if self == NotificationChannel.PUSH:
            return 256
        return 100000


class NotificationPriority(Enum):
    """Notification priority levels for processing and delivery."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Ordering rank; higher ranks are dequeued first."""
        ranks = {
            NotificationPriority.LOW: 0,
            NotificationPriority.NORMAL: 1,
            NotificationPriority.HIGH: 2,
            NotificationPriority.URGENT: 3,
        }
        return ranks[self]

    def respects_quiet_hours(self) -> bool:
        """Check if delivery at this priority is deferred by quiet hours."""
        return self in [NotificationPriority.LOW, NotificationPriority.NORMAL]

    def bypasses_frequency_caps(self) -> bool:
        return self == NotificationPriority.URGENT


class NotificationCategory(Enum):
    """Business category of a notification type."""

    TRANSACTIONAL = "transactional"
    MARKETING = "marketing"
    REMINDER = "reminder"
    SECURITY = "security"
    SYSTEM = "system"
    SOCIAL = "social"


class NotificationType(Enum):
    """Closed set of business events that produce notifications."""

    PROPERTY_INQUIRY = "property_inquiry"
    APPOINTMENT_SCHEDULED = "appointment_scheduled"
    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    PROPERTY_APPROVED = "property_approved"
    PROPERTY_REJECTED = "property_rejected"
    PROPERTY_EXPIRED = "property_expired"
    NEW_REVIEW = "new_review"
    REVIEW_RESPONSE = "review_response"
    PRICE_CHANGE = "price_change"
    PRICE_DROP_ALERT = "price_drop_alert"
    FAVORITE_PROPERTY_UPDATE = "favorite_property_update"
    SAVED_SEARCH_MATCH = "saved_search_match"
    ACCOUNT_VERIFICATION = "account_verification"
    ACCOUNT_VERIFIED = "account_verified"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"
    EMAIL_CHANGED = "email_changed"
    PROFILE_UPDATED = "profile_updated"
    WELCOME = "welcome"
    SYSTEM_MAINTENANCE = "system_maintenance"
    SYSTEM_UPDATE = "system_update"
    PAYMENT_CONFIRMATION = "payment_confirmation"
    PAYMENT_FAILED = "payment_failed"
    SUBSCRIPTION_EXPIRY = "subscription_expiry"
    SUBSCRIPTION_RENEWED = "subscription_renewed"
    NEW_MESSAGE = "new_message"
    MESSAGE_REPLY = "message_reply"
    PROPERTY_MATCH = "property_match"
    MARKET_REPORT = "market_report"
    NEWSLETTER = "newsletter"
    PROMOTION = "promotion"
    SECURITY_ALERT = "security_alert"
    LOGIN_ALERT = "login_alert"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_APPROVED = "document_approved"
    DOCUMENT_REJECTED = "document_rejected"
    LISTING_VIEWS_MILESTONE = "listing_views_milestone"
    AGENT_ASSIGNMENT = "agent_assignment"
    AGENCY_INVITATION = "agency_invitation"
    TEAM_INVITATION = "team_invitation"
    COMMISSION_EARNED = "commission_earned"
    LEAD_ASSIGNED = "lead_assigned"
    OPEN_HOUSE_REMINDER = "open_house_reminder"
    VIRTUAL_TOUR_SCHEDULED = "virtual_tour_scheduled"

    @property
    def category(self) -> NotificationCategory:
        """Business category used by preferences, frequency caps and stats."""
        return _TYPE_CATEGORIES.get(self, NotificationCategory.TRANSACTIONAL)

    def is_marketing(self) -> bool:
        return self.category == NotificationCategory.MARKETING

    def is_reminder(self) -> bool:
        return self.category == NotificationCategory.REMINDER


_TYPE_CATEGORIES: dict[NotificationType, NotificationCategory] = {
    NotificationType.APPOINTMENT_REMINDER: NotificationCategory.REMINDER,
    NotificationType.OPEN_HOUSE_REMINDER: NotificationCategory.REMINDER,
    NotificationType.PROPERTY_MATCH: NotificationCategory.MARKETING,
    NotificationType.MARKET_REPORT: NotificationCategory.MARKETING,
    NotificationType.NEWSLETTER: NotificationCategory.MARKETING,
    NotificationType.PROMOTION: NotificationCategory.MARKETING,
    NotificationType.PASSWORD_RESET: NotificationCategory.SECURITY,
    NotificationType.PASSWORD_CHANGED: NotificationCategory.SECURITY,
    NotificationType.EMAIL_CHANGED: NotificationCategory.SECURITY,
    NotificationType.SECURITY_ALERT: NotificationCategory.SECURITY,
    NotificationType.LOGIN_ALERT: NotificationCategory.SECURITY,
    NotificationType.SYSTEM_MAINTENANCE: NotificationCategory.SYSTEM,
    NotificationType.SYSTEM_UPDATE: NotificationCategory.SYSTEM,
    NotificationType.NEW_REVIEW: NotificationCategory.SOCIAL,
    NotificationType.REVIEW_RESPONSE: NotificationCategory.SOCIAL,
    NotificationType.NEW_MESSAGE: NotificationCategory.SOCIAL,
    NotificationType.MESSAGE_REPLY: NotificationCategory.SOCIAL,
    NotificationType.PRICE_CHANGE: NotificationCategory.SOCIAL,
    NotificationType.PRICE_DROP_ALERT: NotificationCategory.SOCIAL,
    NotificationType.FAVORITE_PROPERTY_UPDATE: NotificationCategory.SOCIAL,
    NotificationType.SAVED_SEARCH_MATCH: NotificationCategory.SOCIAL,
    NotificationType.LISTING_VIEWS_MILESTONE: NotificationCategory.SOCIAL,
    NotificationType.AGENCY_INVITATION: NotificationCategory.SOCIAL,
    NotificationType.TEAM_INVITATION: NotificationCategory.SOCIAL,
}


class NotificationStatus(Enum):
    """Lifecycle of a notification as a whole."""

    PENDING = "pending"
    QUEUED = "queued"
    SUPPRESSED = "suppressed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    def is_final(self) -> bool:
        return self in [
            NotificationStatus.SUPPRESSED,
            NotificationStatus.EXPIRED,
            NotificationStatus.CANCELLED,
        ]

    def can_transition_to(self, new_status: "NotificationStatus") -> bool:
        valid_transitions: dict[NotificationStatus, list[NotificationStatus]] = {
            NotificationStatus.PENDING: [
                NotificationStatus.QUEUED,
                NotificationStatus.SUPPRESSED,
                NotificationStatus.EXPIRED,
                NotificationStatus.CANCELLED,
            ],
            NotificationStatus.QUEUED: [NotificationStatus.CANCELLED],
            NotificationStatus.SUPPRESSED: [],
            NotificationStatus.EXPIRED: [],
            NotificationStatus.CANCELLED: [],
        }
        return new_status in valid_transitions.get(self, [])


class DeliveryStatus(Enum):
    """State of a single per-channel delivery unit."""

    PENDING = "pending"
    SENDING = "sending"
    RETRY_WAIT = "retry_wait"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    def is_final(self) -> bool:
        """Check if this is a final status (no further processing needed)."""
        return self in [
            DeliveryStatus.DELIVERED,
            DeliveryStatus.FAILED,
            DeliveryStatus.CANCELLED,
            DeliveryStatus.EXPIRED,
        ]

    def can_transition_to(self, new_status: "DeliveryStatus") -> bool:
        """Check if transition to new status is valid."""
        valid_transitions: dict[DeliveryStatus, list[DeliveryStatus]] = {
            DeliveryStatus.PENDING: [
                DeliveryStatus.SENDING,
                DeliveryStatus.CANCELLED,
                DeliveryStatus.EXPIRED,
            ],
            DeliveryStatus.SENDING: [
                DeliveryStatus.DELIVERED,
                DeliveryStatus.RETRY_WAIT,
                DeliveryStatus.FAILED,
                DeliveryStatus.CANCELLED,
                DeliveryStatus.EXPIRED,
            ],
            DeliveryStatus.RETRY_WAIT: [
                DeliveryStatus.PENDING,
                DeliveryStatus.CANCELLED,
                DeliveryStatus.EXPIRED,
            ],
            DeliveryStatus.DELIVERED: [],
            DeliveryStatus.FAILED: [],
            DeliveryStatus.CANCELLED: [],
            DeliveryStatus.EXPIRED: [],
        }
        return new_status in valid_transitions.get(self, [])


class BatchStatus(Enum):
    """Notification batch processing status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def is_final(self) -> bool:
        return self in [
            BatchStatus.COMPLETED,
            BatchStatus.FAILED,
            BatchStatus.CANCELLED,
        ]


class CampaignStatus(Enum):
    """Campaign lifecycle status."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    def is_final(self) -> bool:
        return self in [
            CampaignStatus.COMPLETED,
            CampaignStatus.CANCELLED,
            CampaignStatus.FAILED,
        ]

    def is_executable(self) -> bool:
        """Check if the campaign may still expand into notifications."""
        return self in [CampaignStatus.SCHEDULED, CampaignStatus.RUNNING]


class ScheduleType(Enum):
    """When a campaign runs."""

    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    RECURRING = "recurring"


class RecurrenceFrequency(Enum):
    """Interval unit of a recurring campaign."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DigestFrequency(Enum):
    NEVER = "never"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MarketingFrequency(Enum):
    """How often a user accepts marketing notifications."""

    NEVER = "never"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    def min_interval_days(self) -> int | None:
        """Minimum days between two marketing notifications, None if never allowed."""
        intervals = {
            MarketingFrequency.NEVER: None,
            MarketingFrequency.WEEKLY: 7,
            MarketingFrequency.MONTHLY: 30,
        }
        return intervals[self]


class StatsGroupBy(Enum):
    """Period bucket size for delivery statistics."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


__all__ = [
    "BatchStatus",
    "CampaignStatus",
    "DeliveryStatus",
    "DigestFrequency",
    "MarketingFrequency",
    "NotificationCategory",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "RecurrenceFrequency",
    "ScheduleType",
    "StatsGroupBy",
]
