"""Event-type vocabulary that webhooks may subscribe to."""

from hookline.config import Settings, get_settings

# ── Event Types ──────────────────────────────────────────
EVENT_TYPES = [
    "customer.created",
    "customer.updated",
    "job.created",
    "job.updated",
    "job.completed",
    "invoice.created",
    "invoice.paid",
    "proposal.created",
    "proposal.signed",
    "estimate.approved",
]

# Sent by the "test" action; never subscribable
TEST_EVENT = "test.ping"


def known_event_types(settings: Settings | None = None) -> list[str]:
    """Built-in events plus any configured through ``webhook_extra_event_types``."""
    settings = settings or get_settings()
    extra = [e for e in settings.webhook_extra_event_types if e not in EVENT_TYPES]
    return EVENT_TYPES + extra


def event_label(event_type: str) -> str:
    """``invoice.paid`` -> ``Invoice Paid``."""
    return " ".join(part.replace("_", " ").title() for part in event_type.split("."))


def available_events(settings: Settings | None = None) -> list[dict[str, str]]:
    return [{"value": e, "label": event_label(e)} for e in known_event_types(settings)]
