"""Email delivery pipeline: validation, queueing, batching and provider fallback."""

from .delivery import EmailDeliveryService
from .errors import (
    TRANSPORT_UNAVAILABLE,
    EmailDeliveryError,
    TransportError,
    TransportErrorKind,
    classify_transport_error,
)
from .providers import ProviderConfig, ProviderKind, provider_configs_from_settings
from .transport import (
    EmailTransport,
    OutgoingMessage,
    SendGridTransport,
    SmtpTransport,
    build_transport,
)

__all__ = [
    "EmailDeliveryError",
    "EmailDeliveryService",
    "EmailTransport",
    "OutgoingMessage",
    "ProviderConfig",
    "ProviderKind",
    "SendGridTransport",
    "SmtpTransport",
    "TRANSPORT_UNAVAILABLE",
    "TransportError",
    "TransportErrorKind",
    "build_transport",
    "classify_transport_error",
    "provider_configs_from_settings",
]
