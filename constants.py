"""
Application-wide constants.
Centralizes roles, statuses and limits shared by controllers and helpers.
"""

# User roles
ROLE_ADMIN = "admin"
ROLE_USER = "user"
USER_ROLES = (ROLE_ADMIN, ROLE_USER)

# User status
USER_STATUS_ACTIVE = "active"
USER_STATUS_SUSPENDED = "suspended"
USER_STATUSES = (USER_STATUS_ACTIVE, USER_STATUS_SUSPENDED)

# Event status
EVENT_STATUS_ACTIVE = "active"
EVENT_STATUS_PENDING = "pending"
EVENT_STATUS_CANCELLED = "cancelled"
EVENT_STATUS_COMPLETED = "completed"
EVENT_STATUSES = (
    EVENT_STATUS_ACTIVE,
    EVENT_STATUS_PENDING,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_COMPLETED,
)

EVENT_CATEGORIES = (
    "technology",
    "business",
    "arts",
    "sports",
    "music",
    "education",
    "food",
    "other",
)

# Fields whose change is worth telling subscribers about
NOTIFIABLE_EVENT_FIELDS = ("title", "description", "date", "time", "location", "status")

# Notification types
NOTIFICATION_STATUS_CHANGE = "status_change"
NOTIFICATION_EVENT_UPDATE = "event_update"
NOTIFICATION_NEW_SUBSCRIBER = "new_subscriber"
NOTIFICATION_EVENT_REMINDER = "event_reminder"

# Passwords
MIN_PASSWORD_LENGTH = 6

# Default pagination
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
DEFAULT_NOTIFICATION_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Image upload limits
MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
IMAGE_TYPE_AVATAR = "user-avatar"
IMAGE_TYPE_BANNER = "event-banner"

# Reminders
REMINDER_WINDOW_HOURS = 24
