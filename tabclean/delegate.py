# tabclean/delegate.py
import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from tabclean.api.schemas import PreprocessResponse
from tabclean.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)


class RemoteCleaner:
    """Client for an external cleaning service speaking the /api/preprocess contract.

    Every failure is raised as UpstreamFailure with the upstream's raw text
    attached. Nothing is retried and no fallback report is produced.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/preprocess"

    def clean(self, csv_content: str, outlier_policy: Optional[str] = None,
              label_policy: Optional[str] = None, has_header: Optional[bool] = None,
              include_data: bool = True) -> PreprocessResponse:
        """Send CSV text to the delegate and return its validated response"""
        payload: Dict[str, Any] = {"csvContent": csv_content, "includeData": include_data}
        if outlier_policy is not None:
            payload["outlierPolicy"] = outlier_policy
        if label_policy is not None:
            payload["labelPolicy"] = label_policy
        if has_header is not None:
            payload["hasHeader"] = has_header

        logger.info(f"Delegating cleaning to {self.endpoint}")

        try:
            response = self.session.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Cleaning delegate unreachable: {str(e)}")
            raise UpstreamFailure("Cleaning service unreachable", details=str(e))

        if not response.ok:
            logger.error(f"Cleaning delegate returned {response.status_code}")
            raise UpstreamFailure(
                f"Cleaning service returned HTTP {response.status_code}",
                details=response.text,
            )

        try:
            body = response.json()
        except ValueError:
            raise UpstreamFailure("Cleaning service returned invalid JSON", details=response.text)

        try:
            return PreprocessResponse.model_validate(body)
        except ValidationError:
            raise UpstreamFailure("Cleaning service returned an invalid report", details=response.text)
