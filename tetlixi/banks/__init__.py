"""Bank directory: remote VietQR bank list and its local mirror."""

from .api import BankDirectoryClient, DEFAULT_BANK_DIRECTORY_URL
from .utils import FALLBACK_BANKS, logo_extension_from_url, to_nullable_string

__all__ = [
    "BankDirectoryClient",
    "DEFAULT_BANK_DIRECTORY_URL",
    "FALLBACK_BANKS",
    "logo_extension_from_url",
    "to_nullable_string",
]
