from .messaging_provider import (
    MessagingProvider,
    SeleniumProvider,
    CloudAPIProvider,
    ConnectionState,
    to_address,
)


def create_provider(settings) -> MessagingProvider:
    """Build the messaging provider named in WhatsAppSettings."""
    wa = settings.whatsapp
    if wa.provider == "cloud_api":
        return CloudAPIProvider(
            api_key=wa.api_key,
            phone_number_id=wa.phone_number_id,
            api_url=wa.api_url,
            timeout=wa.request_timeout,
        )
    return SeleniumProvider(headless=wa.headless, profile_dir=wa.profile_dir)


__all__ = [
    "MessagingProvider",
    "SeleniumProvider",
    "CloudAPIProvider",
    "ConnectionState",
    "to_address",
    "create_provider",
]
