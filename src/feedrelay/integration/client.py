"""
HTTP client for the integration endpoint.

Uploads feed files and reads job status documents. The endpoint answers an
upload with a short text message containing the job's reference code, and
answers a status request with an XML document carrying per-job counters:

    <dataSetStatus>
      <completedCount>120</completedCount>
      <errorCount>2</errorCount>
      <warningCount>0</warningCount>
      ...
    </dataSetStatus>
"""

from __future__ import annotations

import asyncio
import re
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

import aiohttp

from feedrelay.exceptions import IntegrationError, StatusCheckError, SubmissionError
from feedrelay.integration.types import ServerOptions
from feedrelay.utils.logging import get_logger

logger = get_logger("feedrelay.integration.client")

# Reference codes are 32 hex characters
JOB_ID_PATTERN = re.compile(r"\b([0-9a-fA-F]{32})\b")

_TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)


class HttpIntegrationClient:
    """
    Integration endpoint client over HTTP with basic authentication.

    Example:
        ```python
        async with HttpIntegrationClient(options) as client:
            job_id = await client.submit(Path("person.txt"), "person", "store")
            done = await client.poll_completed(job_id)
        ```
    """

    def __init__(self, options: ServerOptions):
        self.options = options
        self.base_url = options.base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=options.timeout)
        self.session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()
        self._auth = (
            aiohttp.BasicAuth(options.username, options.password or "") if options.username else None
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if needed."""
        async with self._session_lock:
            if self.session is None or self.session.closed:
                connector = aiohttp.TCPConnector(ssl=self.options.verify_ssl)
                self.session = aiohttp.ClientSession(timeout=self.timeout, auth=self._auth, connector=connector)
            return self.session

    async def __aenter__(self) -> "HttpIntegrationClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying session."""
        async with self._session_lock:
            if self.session and not self.session.closed:
                await self.session.close()
            self.session = None

    def _url(self, template: str, **values: str) -> str:
        return f"{self.base_url}{template.format(**values)}"

    async def _request_text(self, method: str, url: str, data: bytes | None = None) -> str:
        """
        Send a request and return the response body.

        Connection errors and timeouts are retried ``max_retries`` times with a
        linearly growing delay. HTTP error statuses are not retried.

        Raises:
            IntegrationError: If the request fails
        """
        session = await self._ensure_session()
        retries = 0

        while True:
            try:
                start_time = time.monotonic()
                async with session.request(method, url, data=data) as response:
                    text = await response.text()
                    duration = time.monotonic() - start_time
                    log_level = logger.debug if response.status <= 299 else logger.warning
                    log_level(f"{method} {url} {response.status} {duration:.2f}s")
                    if response.status > 299:
                        raise IntegrationError(
                            f"{method} {url} returned HTTP {response.status}: {text[:200].strip()}",
                            details={"status": response.status, "url": url},
                        )
                    return text
            except _TRANSIENT_ERRORS as e:
                retries += 1
                if retries >= self.options.max_retries:
                    logger.error(f"Failed after {self.options.max_retries} attempts: {method} {url}")
                    raise IntegrationError(f"{method} {url} failed: {str(e) or type(e).__name__}") from e
                logger.debug(f"Retry {retries}/{self.options.max_retries} for {url}: {e}")
                await asyncio.sleep(self.options.retry_delay * retries)
            except aiohttp.ClientError as e:
                raise IntegrationError(f"{method} {url} failed: {e}") from e

    async def submit(self, path: Path, record_type: str, operation: str) -> str:
        """
        Upload a feed file.

        Returns:
            The job identifier issued by the endpoint

        Raises:
            SubmissionError: If the upload fails or the response has no identifier
        """
        url = self._url(self.options.submit_path, record_type=record_type, operation=operation)
        try:
            body = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise SubmissionError(f"Could not read {path}: {e}") from e

        try:
            text = await self._request_text("POST", url, data=body)
        except IntegrationError as e:
            raise SubmissionError(e.message, details=e.details) from e

        match = JOB_ID_PATTERN.search(text)
        if match is None:
            raise SubmissionError(f"No job identifier in response: {text[:200].strip()}")
        return match.group(1)

    async def _status(self, job_id: str) -> tuple[str, ET.Element]:
        url = self._url(self.options.status_path, job_id=job_id)
        try:
            text = await self._request_text("GET", url)
        except IntegrationError as e:
            raise StatusCheckError(job_id, e.message) from e
        try:
            return text, ET.fromstring(text)
        except ET.ParseError as e:
            raise StatusCheckError(job_id, f"malformed status document: {e}") from e

    async def _counter(self, job_id: str, tag: str) -> int:
        _text, root = await self._status(job_id)
        element = root.find(f".//{tag}")
        if element is None or element.text is None:
            raise StatusCheckError(job_id, f"status document has no {tag}")
        try:
            return int(element.text.strip())
        except ValueError as e:
            raise StatusCheckError(job_id, f"{tag} is not a number: {element.text!r}") from e

    async def poll_completed(self, job_id: str) -> int:
        return await self._counter(job_id, "completedCount")

    async def poll_errors(self, job_id: str) -> int:
        return await self._counter(job_id, "errorCount")

    async def poll_warnings(self, job_id: str) -> int:
        return await self._counter(job_id, "warningCount")

    async def poll_summary(self, job_id: str) -> str:
        """Return the status document as one `field: value` line per counter."""
        _text, root = await self._status(job_id)
        lines = []
        for element in root.iter():
            if element is root or len(element):
                continue
            value = (element.text or "").strip()
            lines.append(f"{element.tag}: {value}")
        return "\n".join(lines)
