"""PyPI release check adapter."""

import logging

import requests

from epoch import PACKAGE_NAME, __version__
from epoch.ports.update_checker import UpdateInfo

logger = logging.getLogger(__name__)

PYPI_URL = "https://pypi.org/pypi/{package}/json"


class PyPIUpdateChecker:
    """
    PyPI JSON API adapter.

    Implements UpdateChecker protocol. Any network or payload problem is
    reported as "no update" so a failed check never blocks the planner.
    """

    def __init__(
        self,
        package: str = PACKAGE_NAME,
        current_version: str = __version__,
        timeout: float = 5.0,
    ):
        self.package = package
        self.current_version = current_version
        self.timeout = timeout
        self._session = requests.Session()

    def latest_version(self) -> str:
        """Latest version published on PyPI."""
        resp = self._session.get(PYPI_URL.format(package=self.package), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()["info"]["version"]

    def check(self) -> UpdateInfo:
        try:
            latest = self.latest_version()
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.debug(f"Update check failed: {e}")
            return UpdateInfo(
                has_update=False,
                current_version=self.current_version,
                latest_version=self.current_version,
            )

        return UpdateInfo(
            has_update=latest != self.current_version,
            current_version=self.current_version,
            latest_version=latest,
        )
