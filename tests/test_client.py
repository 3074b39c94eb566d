"""
Tests for the HTTP integration client.

Uses aioresponses to mock the endpoint.
"""

import aiohttp
import pytest
from aioresponses import aioresponses

from feedrelay.exceptions import StatusCheckError, SubmissionError
from feedrelay.integration.client import HttpIntegrationClient
from feedrelay.integration.types import ServerOptions

BASE_URL = "https://integration.example.com"
JOB_ID = "0123456789abcdef0123456789abcdef"
SUBMIT_URL = f"{BASE_URL}/endpoint/person/store"
STATUS_URL = f"{BASE_URL}/endpoint/dataSetStatus/{JOB_ID}"

STATUS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<dataSetStatus>
  <dataSetUid>{job_id}</dataSetUid>
  <completedCount>{completed}</completedCount>
  <errorCount>2</errorCount>
  <warningCount>1</warningCount>
  <queuedCount>0</queuedCount>
</dataSetStatus>
"""


@pytest.fixture
def options():
    return ServerOptions(base_url=BASE_URL, username="user", password="secret", max_retries=2, retry_delay=0)


@pytest.fixture
def feed(tmp_path):
    path = tmp_path / "person.txt"
    path.write_text("EXTERNAL_PERSON_KEY|USER_ID\nP1|u1\n")
    return path


class TestSubmit:
    @pytest.mark.asyncio
    async def test_returns_job_id(self, options, feed):
        with aioresponses() as m:
            m.post(
                SUBMIT_URL,
                body=f"Success: Feed File Uploaded. Use the reference code {JOB_ID} to track these records in the logs.",
            )
            async with HttpIntegrationClient(options) as client:
                assert await client.submit(feed, "person", "store") == JOB_ID

    @pytest.mark.asyncio
    async def test_response_without_id(self, options, feed):
        with aioresponses() as m:
            m.post(SUBMIT_URL, body="Upload accepted")
            async with HttpIntegrationClient(options) as client:
                with pytest.raises(SubmissionError, match="No job identifier"):
                    await client.submit(feed, "person", "store")

    @pytest.mark.asyncio
    async def test_http_error_is_not_retried(self, options, feed):
        with aioresponses() as m:
            m.post(SUBMIT_URL, status=401, body="Unauthorized")
            m.post(SUBMIT_URL, body=f"reference code {JOB_ID}")
            async with HttpIntegrationClient(options) as client:
                with pytest.raises(SubmissionError, match="HTTP 401"):
                    await client.submit(feed, "person", "store")

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried(self, options, feed):
        with aioresponses() as m:
            m.post(SUBMIT_URL, exception=aiohttp.ClientConnectionError("connection reset"))
            m.post(SUBMIT_URL, body=f"reference code {JOB_ID}")
            async with HttpIntegrationClient(options) as client:
                assert await client.submit(feed, "person", "store") == JOB_ID

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, options, feed):
        with aioresponses() as m:
            m.post(SUBMIT_URL, exception=aiohttp.ClientConnectionError("connection reset"))
            m.post(SUBMIT_URL, exception=aiohttp.ClientConnectionError("connection reset"))
            async with HttpIntegrationClient(options) as client:
                with pytest.raises(SubmissionError, match="connection reset"):
                    await client.submit(feed, "person", "store")

    @pytest.mark.asyncio
    async def test_unreadable_file(self, options, tmp_path):
        async with HttpIntegrationClient(options) as client:
            with pytest.raises(SubmissionError, match="Could not read"):
                await client.submit(tmp_path / "missing.txt", "person", "store")


class TestStatus:
    @pytest.mark.asyncio
    async def test_counters(self, options):
        with aioresponses() as m:
            for _ in range(3):
                m.get(STATUS_URL, body=STATUS_XML.format(job_id=JOB_ID, completed=40))
            async with HttpIntegrationClient(options) as client:
                assert await client.poll_completed(JOB_ID) == 40
                assert await client.poll_errors(JOB_ID) == 2
                assert await client.poll_warnings(JOB_ID) == 1

    @pytest.mark.asyncio
    async def test_summary(self, options):
        with aioresponses() as m:
            m.get(STATUS_URL, body=STATUS_XML.format(job_id=JOB_ID, completed=40))
            async with HttpIntegrationClient(options) as client:
                summary = await client.poll_summary(JOB_ID)

        assert summary.splitlines() == [
            f"dataSetUid: {JOB_ID}",
            "completedCount: 40",
            "errorCount: 2",
            "warningCount: 1",
            "queuedCount: 0",
        ]

    @pytest.mark.asyncio
    async def test_malformed_document(self, options):
        with aioresponses() as m:
            m.get(STATUS_URL, body="<dataSetStatus><completedCount>")
            async with HttpIntegrationClient(options) as client:
                with pytest.raises(StatusCheckError, match="malformed"):
                    await client.poll_completed(JOB_ID)

    @pytest.mark.asyncio
    async def test_missing_counter(self, options):
        with aioresponses() as m:
            m.get(STATUS_URL, body="<dataSetStatus><queuedCount>3</queuedCount></dataSetStatus>")
            async with HttpIntegrationClient(options) as client:
                with pytest.raises(StatusCheckError, match="completedCount"):
                    await client.poll_completed(JOB_ID)

    @pytest.mark.asyncio
    async def test_server_error(self, options):
        with aioresponses() as m:
            m.get(STATUS_URL, status=503, body="Service Unavailable")
            async with HttpIntegrationClient(options) as client:
                with pytest.raises(StatusCheckError) as exc_info:
                    await client.poll_completed(JOB_ID)
        assert exc_info.value.job_id == JOB_ID


class TestSession:
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, options):
        client = HttpIntegrationClient(options)
        async with client:
            assert client.session is not None
        assert client.session is None
        await client.close()
