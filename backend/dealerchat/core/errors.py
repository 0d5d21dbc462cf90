"""Exceptions shared across the job layer."""


class ConfigurationError(RuntimeError):
    """A required setting is missing or invalid at startup."""


class RecordNotFoundError(LookupError):
    """A job references a lead, appointment or other record that does not exist."""


class CrmPushError(RuntimeError):
    """The external CRM rejected the lead or could not be reached."""

    def __init__(self, message: str, status: int | str | None = None):
        super().__init__(message)
        self.status = status


class NotificationError(RuntimeError):
    """No reminder channel delivered the notification."""
