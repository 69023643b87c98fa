"""Host transports that carry messages into the gate."""

from .base import MessageHandle, RecordingHandle
from .smtp import DeliveryError, GateSMTPHandler, SMTPMessageHandle

__all__ = [
    "DeliveryError",
    "GateSMTPHandler",
    "MessageHandle",
    "RecordingHandle",
    "SMTPMessageHandle",
]
