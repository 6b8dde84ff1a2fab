import os
import logging
from typing import Any, Optional

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BANK_DIRECTORY_URL = "https://api.vietqr.io/v2/banks"


class BankDirectoryClient:
    """Thin client for the public VietQR bank directory."""

    def __init__(
        self,
        directory_url: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        self.directory_url = directory_url or os.getenv(
            "BANK_DIRECTORY_URL", DEFAULT_BANK_DIRECTORY_URL
        )
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_banks(self) -> list[dict[str, Any]]:
        """Return the raw bank entries listed by the directory.

        Raises
        ------
        requests.HTTPError
            If the directory answers with an error status.
        """
        r = self.session.request(
            method="GET",
            url=self.directory_url,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        r.raise_for_status()
        payload = r.json() if r.content else None
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            logger.warning("Bank directory response carried no bank list")
            return []
        logger.debug(f"Bank directory listed {len(data)} entries")
        return data

    def download_logo(self, logo_url: str) -> Optional[bytes]:
        """Fetch logo bytes, or ``None`` when the server answers with an error."""
        r = self.session.request(method="GET", url=logo_url, timeout=self.timeout)
        if not r.ok:
            logger.debug(f"Logo download returned HTTP {r.status_code}")
            return None
        return r.content
