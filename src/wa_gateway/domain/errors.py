"""Error taxonomy for the gateway."""


class GatewayError(Exception):
    """Base class for gateway errors."""


class ValidationError(GatewayError):
    """A request field is missing or malformed."""


class NotReadyError(GatewayError):
    """No live WhatsApp session is available."""


class UnregisteredRecipientError(GatewayError):
    """The destination number is not a WhatsApp user."""


class SendError(GatewayError):
    """The transport failed while sending a message."""


class StorageError(GatewayError):
    """Credentials could not be read or persisted."""
