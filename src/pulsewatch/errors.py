"""Exception types raised by pulsewatch."""


class PulsewatchError(Exception):
    """Base class for pulsewatch errors."""


class AlertConfigError(PulsewatchError):
    """The alert channel is missing a required setting."""


class AlertDeliveryError(PulsewatchError):
    """An alert could not be delivered and failures are configured as fatal."""

    def __init__(self, program_id: str, cause: Exception):
        super().__init__(f"alert for '{program_id}' failed: {cause}")
        self.program_id = program_id
        self.cause = cause
