"""Single-shot HTTP health probe against the load balancer."""
import logging
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_PATH = "/health"


@dataclass
class HealthProbeResult:
    url: str
    healthy: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


def build_health_url(base_url: str, health_path: str = DEFAULT_HEALTH_PATH) -> str:
    """Join the public base URL and the health path.

    Terraform outputs the load balancer DNS name with or without a scheme,
    so a bare host gets http:// prepended.
    """
    base_url = base_url.strip().rstrip('/')
    if '://' not in base_url:
        base_url = f"http://{base_url}"
    if not health_path.startswith('/'):
        health_path = f"/{health_path}"
    return f"{base_url}{health_path}"


class HealthProbe:
    """Issue one GET to <base-url>/health; exactly 200 means healthy.

    Redirects are not followed, so a 301/302 from the health path is
    reported as-is rather than graded by the page it points to.
    """

    def __init__(self, timeout: float = 10, health_path: str = DEFAULT_HEALTH_PATH,
                 session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.health_path = health_path
        self.session = session

    def _get(self, url: str) -> requests.Response:
        if self.session is not None:
            return self.session.get(url, timeout=self.timeout, allow_redirects=False)
        return requests.get(url, timeout=self.timeout, allow_redirects=False)

    def check(self, base_url: str) -> HealthProbeResult:
        url = build_health_url(base_url, self.health_path)
        logger.info(f"🔍 Testing health endpoint: {url}")

        try:
            response = self._get(url)
        except requests.RequestException as e:
            logger.warning(f"Health probe could not reach {url}: {e}")
            return HealthProbeResult(url=url, healthy=False, error=str(e))

        healthy = response.status_code == 200
        if healthy:
            logger.info(f"Health probe passed: {url} -> {response.status_code}")
        else:
            logger.warning(f"Health probe returned {response.status_code} for {url}")
        return HealthProbeResult(url=url, healthy=healthy, status_code=response.status_code)
