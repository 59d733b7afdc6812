"""Business logic services for TextBack."""

# Service modules are imported individually where needed
# to avoid circular imports

__all__ = [
    "business",
    "location",
    "inbox",
    "pipeline",
    "messaging",
    "notifications",
    "billing",
    "events",
    "rate_limit",
    "usage",
    "voice",
    "dedupe",
    "faq",
    "ordering",
    "urgency",
    "replies",
]
