"""HTTP client for the OTT incident report page."""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from safeplace.core.config import get_settings
from safeplace.services.ingestion.exceptions import SourceFetchError

logger = logging.getLogger(__name__)


def build_retrying_session(max_retries: int, backoff_factor: float = 1.0) -> requests.Session:
    """requests.Session that retries idempotent calls on 429 and 5xx responses."""
    session = requests.Session()
    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class OttClient:
    """Client for downloading the OTT report page."""

    def __init__(
        self,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the report page client.

        Args:
            url: Report page URL
            user_agent: User-Agent header sent with every request
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            session: Optional preconfigured requests session
        """
        settings = get_settings()
        self.url = url or settings.ott_report_url
        self.user_agent = user_agent or settings.ott_user_agent
        self.timeout = timeout or settings.http_timeout_seconds
        self.session = session or build_retrying_session(
            max_retries if max_retries is not None else settings.http_max_retries
        )

    def fetch_report_page(self) -> str:
        """
        Download the report page HTML.

        Returns:
            Page HTML as string

        Raises:
            SourceFetchError: On network failure or a non-2xx response
        """
        logger.info(f"Fetching report page: {self.url}")
        try:
            response = self.session.get(
                self.url,
                timeout=self.timeout,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                },
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to fetch report page: {str(e)}")
            raise SourceFetchError(f"Failed to fetch {self.url}: {str(e)}") from e

        logger.info(f"Fetched report page ({len(response.text)} bytes)")
        return response.text
