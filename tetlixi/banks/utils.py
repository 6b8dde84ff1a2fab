from typing import Any, Optional
from urllib.parse import urlparse

# Shown when the directory has never been synchronized.
FALLBACK_BANKS = (
    {"bin": "970436", "short_name": "VIETCOMBANK"},
    {"bin": "970418", "short_name": "BIDV"},
    {"bin": "970415", "short_name": "VIETINBANK"},
    {"bin": "970405", "short_name": "AGRIBANK"},
    {"bin": "970422", "short_name": "MBBANK"},
    {"bin": "970407", "short_name": "TECHCOMBANK"},
    {"bin": "970432", "short_name": "VPBANK"},
    {"bin": "970423", "short_name": "TPBANK"},
    {"bin": "970403", "short_name": "SACOMBANK"},
    {"bin": "970437", "short_name": "HDBANK"},
    {"bin": "970448", "short_name": "OCB"},
)

_LOGO_EXTENSIONS = {
    ".jpg": ".jpg",
    ".jpeg": ".jpg",
    ".webp": ".webp",
    ".svg": ".svg",
}


def to_nullable_string(value: Any) -> Optional[str]:
    """Return ``value`` trimmed, or ``None`` for non-strings and blanks."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def logo_extension_from_url(url: str) -> str:
    """Guess a file extension for a logo URL, defaulting to ``.png``."""
    path = urlparse(url).path.lower()
    for suffix, extension in _LOGO_EXTENSIONS.items():
        if path.endswith(suffix):
            return extension
    return ".png"
