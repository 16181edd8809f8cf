"""
Download of source image data.
"""

from __future__ import annotations

import http.client
import logging
from urllib.error import URLError
from urllib.request import Request, urlopen

from .config import settings
from .exceptions import FetchError

logger = logging.getLogger(__name__)

HTTP_PROTOCOL_URL_HEADER = "http://"
HTTPS_PROTOCOL_URL_HEADER = "https://"

USER_AGENT = "animap"


def download(
    url: str, timeout: float | None = None, max_bytes: int | None = None
) -> bytes:
    """
    Downloads the data behind an http(s) URL.

    :param url: The URL
    :param timeout: The timeout in seconds, settings.DOWNLOAD_TIMEOUT by default
    :param max_bytes: The maximum accepted payload size,
        settings.MAX_DOWNLOAD_BYTES by default
    :return: The received bytes
    :raises FetchError: On network and HTTP errors or if the payload is too large
    """
    if not (
        url.startswith(HTTP_PROTOCOL_URL_HEADER)
        or url.startswith(HTTPS_PROTOCOL_URL_HEADER)
    ):
        raise FetchError(f"Unsupported URL: {url}")
    timeout = settings.DOWNLOAD_TIMEOUT if timeout is None else timeout
    max_bytes = settings.MAX_DOWNLOAD_BYTES if max_bytes is None else max_bytes
    request = Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urlopen(request, timeout=timeout) as response:
            data = response.read(max_bytes + 1)
    except (URLError, http.client.HTTPException, OSError, ValueError) as err:
        raise FetchError(f"Could not download {url}: {err}") from err
    if len(data) > max_bytes:
        raise FetchError(f"Download of {url} exceeds {max_bytes} bytes")
    logger.debug("Downloaded %d bytes from %s", len(data), url)
    return data


__all__ = ["download"]
