"""Tests for SplunkClient and the effect runner, against a mock transport."""

import asyncio
import json

import httpx
import pytest

from spelunk.client import SplunkClient
from spelunk.effects import CreateJob, FetchResults, KillJob, PollStatus, Quit
from spelunk.errors import TransportError
from spelunk.events import (
    JobCreated,
    JobCreateFailed,
    KillFinished,
    ResultsReceived,
    StatusFailed,
    StatusReceived,
)
from spelunk.models import JobStatus, ResultSet, display_fields, expand_json
from spelunk.runner import perform

BASE_URL = "https://splunk.example.com:8089"


def job_entry(**content):
    return {"entry": [{"content": content}]}


def make_client(handler):
    return SplunkClient(BASE_URL, "tok", transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


class TestCreateJob:
    def test_posts_form_and_returns_sid(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = request.content.decode()
            return httpx.Response(201, json={"sid": "1700.42"})

        async def go():
            async with make_client(handler) as client:
                return await client.create_job("index=main error")

        assert run(go()) == "1700.42"
        assert seen["method"] == "POST"
        assert seen["path"] == "/services/search/jobs"
        assert seen["auth"] == "Bearer tok"
        assert "output_mode=json" in seen["body"]
        assert "exec_mode=normal" in seen["body"]
        assert "search=index%3Dmain+error" in seen["body"]

    def test_http_error_status(self):
        def handler(request):
            return httpx.Response(400, text="Unknown search command")

        async def go():
            async with make_client(handler) as client:
                await client.create_job("foo")

        with pytest.raises(TransportError) as exc_info:
            run(go())
        assert exc_info.value.status_code == 400
        assert "Unknown search command" in str(exc_info.value)

    def test_missing_sid(self):
        def handler(request):
            return httpx.Response(201, json={})

        async def go():
            async with make_client(handler) as client:
                await client.create_job("q")

        with pytest.raises(TransportError, match="No sid"):
            run(go())

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async def go():
            async with make_client(handler) as client:
                await client.create_job("q")

        with pytest.raises(TransportError, match="ConnectError"):
            run(go())


class TestPollAndFetch:
    def test_poll_status(self):
        def handler(request):
            assert request.url.path == "/services/search/jobs/s1"
            return httpx.Response(
                200,
                json=job_entry(
                    isDone=False,
                    dispatchState="RUNNING",
                    eventCount=42,
                    resultCount=10,
                    runDuration=1.25,
                    doneProgress=0.5,
                ),
            )

        async def go():
            async with make_client(handler) as client:
                return await client.poll_status("s1")

        status = run(go())
        assert status == JobStatus(
            is_done=False,
            dispatch_state="RUNNING",
            event_count=42,
            result_count=10,
            run_duration=1.25,
            done_progress=0.5,
        )

    def test_poll_malformed(self):
        def handler(request):
            return httpx.Response(200, json={"entry": []})

        async def go():
            async with make_client(handler) as client:
                await client.poll_status("s1")

        with pytest.raises(TransportError, match="parse job status"):
            run(go())

    def test_fetch_results(self):
        def handler(request):
            assert request.url.path == "/services/search/jobs/s1/results"
            assert request.url.params["count"] == "5"
            return httpx.Response(200, json={"results": [{"_raw": "a"}, {"_raw": "b"}]})

        async def go():
            async with make_client(handler) as client:
                return await client.fetch_results("s1", count=5)

        assert run(go()) == [{"_raw": "a"}, {"_raw": "b"}]

    def test_kill_job(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={})

        async def go():
            async with make_client(handler) as client:
                await client.kill_job("s1")

        run(go())
        assert seen == [("DELETE", "/services/search/jobs/s1")]

    def test_share_url(self):
        client = SplunkClient(BASE_URL, "tok")
        assert client.share_url("s1") == (
            "https://splunk.example.com:8000/en-US/app/search/search?sid=s1"
        )
        run(client.aclose())


class TestRunner:
    def test_create_success_and_failure(self):
        def ok(request):
            return httpx.Response(201, json={"sid": "s9"})

        def bad(request):
            return httpx.Response(500, text="boom")

        async def go(handler):
            async with make_client(handler) as client:
                return await perform(CreateJob("q", 3), client)

        assert run(go(ok)) == JobCreated(3, "s9")
        failed = run(go(bad))
        assert isinstance(failed, JobCreateFailed)
        assert failed.generation == 3
        assert "500" in failed.error

    def test_poll_outcomes(self):
        def ok(request):
            return httpx.Response(200, json=job_entry(isDone=True, dispatchState="DONE"))

        def bad(request):
            return httpx.Response(503, text="busy")

        async def go(handler):
            async with make_client(handler) as client:
                return await perform(PollStatus("s1", 2), client)

        received = run(go(ok))
        assert isinstance(received, StatusReceived)
        assert received.status.is_done
        assert isinstance(run(go(bad)), StatusFailed)

    def test_fetch_uses_result_count(self):
        def handler(request):
            assert request.url.params["count"] == "7"
            return httpx.Response(200, json={"results": [{"_raw": "x"}]})

        async def go():
            async with make_client(handler) as client:
                return await perform(FetchResults("s1", 1), client, result_count=7)

        assert run(go()) == ResultsReceived(1, ({"_raw": "x"},))

    def test_kill_failure_reported(self):
        def handler(request):
            return httpx.Response(404, text="gone")

        async def go():
            async with make_client(handler) as client:
                return await perform(KillJob("s1"), client)

        outcome = run(go())
        assert isinstance(outcome, KillFinished)
        assert outcome.sid == "s1"
        assert "404" in outcome.error

    def test_non_transport_effect_rejected(self):
        async def go():
            async with make_client(lambda request: httpx.Response(200)) as client:
                await perform(Quit(), client)

        with pytest.raises(TypeError):
            run(go())


class TestResultSet:
    def test_raw_text_joins_records(self):
        rs = ResultSet.from_records([{"_raw": "a"}, {"host": "h"}])
        assert rs.raw_text == 'a\n{"host": "h"}'
        assert rs.line_records == (0, 1)

    def test_to_json(self):
        rs = ResultSet.from_records([{"_raw": "a"}])
        assert json.loads(rs.to_json()) == [{"_raw": "a"}]

    def test_status_from_content_requires_fields(self):
        with pytest.raises(KeyError):
            JobStatus.from_content({"dispatchState": "RUNNING"})


class TestRecordFields:
    def test_expand_nested_json_strings(self):
        record = {"msg": '{"a": "[1, 2]", "b": "plain"}', "n": 3}
        assert expand_json(record) == {"msg": {"a": [1, 2], "b": "plain"}, "n": 3}

    def test_expand_double_encoded(self):
        assert expand_json('"{\\"k\\": true}"') == {"k": True}

    def test_expand_leaves_invalid_json(self):
        assert expand_json({"msg": "{not json"}) == {"msg": "{not json"}
        assert expand_json("[INFO] started") == "[INFO] started"

    def test_display_fields_hides_internal(self):
        record = {"_time": "t", "_raw": "r", "_cd": "0:1", "host": "h", "count": 2}
        assert display_fields(record) == [
            ("_time", "t"),
            ("_raw", "r"),
            ("host", "h"),
            ("count", "2"),
        ]
