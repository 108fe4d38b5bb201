from __future__ import annotations

import base64
import json
import unittest

import httpx

from ig_fetch.config_schema import BrightDataConfig, ZyteConfig
from ig_fetch.errors import FetchTimeoutError, ProviderError
from ig_fetch.providers.base import HtmlResult, JobStatus, StructuredResult
from ig_fetch.providers.brightdata import BrightDataProvider, map_brightdata_status
from ig_fetch.providers.zyte import ZyteProvider

_PROFILE = "https://www.instagram.com/nasa/"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestZyteProvider(unittest.IsolatedAsyncioTestCase):
    async def test_submit_is_immediately_terminal(self) -> None:
        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(500)))
        job = await provider.submit(_PROFILE, 5)

        self.assertIs(job.status, JobStatus.SUCCEEDED)
        self.assertEqual(job.result_handle, _PROFILE)
        report = await provider.poll_status(job.id)
        self.assertEqual(report.result_handle, _PROFILE)

    async def test_submit_requires_api_key(self) -> None:
        provider = ZyteProvider("", http_client=_client(lambda r: httpx.Response(200)))
        with self.assertRaises(ProviderError):
            await provider.submit(_PROFILE, 5)

    async def test_retrieve_browser_html(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"url": _PROFILE, "browserHtml": "<html>hi</html>"})

        provider = ZyteProvider(
            "key",
            zyte=ZyteConfig(base_url="https://zyte.test/v1/"),
            http_client=_client(handler),
        )
        result = await provider.retrieve(_PROFILE, 5)

        self.assertIsInstance(result, HtmlResult)
        assert isinstance(result, HtmlResult)
        self.assertEqual(result.html, "<html>hi</html>")
        self.assertEqual(str(seen[0].url), "https://zyte.test/v1/extract")
        self.assertEqual(
            json.loads(seen[0].content),
            {"url": _PROFILE, "autoExtract": True, "browserHtml": True},
        )
        self.assertTrue(seen[0].headers["authorization"].startswith("Basic "))

    async def test_job_id_is_the_target_url(self) -> None:
        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(500)))
        first = await provider.submit(_PROFILE, 5)
        second = await provider.submit(_PROFILE, 5)

        self.assertEqual(first.id, _PROFILE)
        self.assertEqual(second.id, _PROFILE)
        report = await provider.poll_status("https://www.instagram.com/esa/")
        self.assertEqual(report.result_handle, "https://www.instagram.com/esa/")

    async def test_extracted_posts_preferred_over_html(self) -> None:
        payload = {
            "browserHtml": "<html></html>",
            "extracted": {"posts": [{"caption": "Hello\nworld", "url": "https://x/p/1/"}]},
        }
        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(200, json=payload)))

        result = await provider.retrieve(_PROFILE, 5)
        assert isinstance(result, StructuredResult)
        self.assertEqual(result.records[0]["caption"], "Hello\nworld")

    async def test_auto_extract_can_be_disabled(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"browserHtml": "<html></html>"})

        provider = ZyteProvider(
            "key",
            zyte=ZyteConfig(auto_extract=False),
            http_client=_client(handler),
        )
        await provider.retrieve(_PROFILE, 5)
        self.assertEqual(json.loads(seen[0].content), {"url": _PROFILE, "browserHtml": True})

    def test_config_requires_some_output(self) -> None:
        with self.assertRaises(ValueError):
            ZyteConfig(auto_extract=False, browser_html=False)

    async def test_retrieve_http_response_body(self) -> None:
        body = base64.b64encode("<html>raw</html>".encode("utf-8")).decode("ascii")
        provider = ZyteProvider(
            "key",
            http_client=_client(lambda r: httpx.Response(200, json={"httpResponseBody": body})),
        )
        result = await provider.retrieve(_PROFILE, 5)
        assert isinstance(result, HtmlResult)
        self.assertEqual(result.html, "<html>raw</html>")

    async def test_retrieve_extracted_posts(self) -> None:
        payload = {"extracted": {"posts": [{"id": "1"}, {"id": "2"}, "junk", {"id": "3"}]}}
        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(200, json=payload)))

        result = await provider.retrieve(_PROFILE, 2)
        assert isinstance(result, StructuredResult)
        self.assertEqual(list(result.records), [{"id": "1"}, {"id": "2"}])

    async def test_retrieve_status_errors(self) -> None:
        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(503, text="busy")))
        with self.assertRaises(ProviderError) as ctx:
            await provider.retrieve(_PROFILE, 5)
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertTrue(ctx.exception.transient)

        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(401)))
        with self.assertRaises(ProviderError) as ctx:
            await provider.retrieve(_PROFILE, 5)
        self.assertFalse(ctx.exception.transient)

    async def test_retrieve_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        provider = ZyteProvider("key", http_client=_client(handler))
        with self.assertRaises(FetchTimeoutError):
            await provider.retrieve(_PROFILE, 5)

    async def test_retrieve_without_content(self) -> None:
        provider = ZyteProvider("key", http_client=_client(lambda r: httpx.Response(200, json={"url": _PROFILE})))
        with self.assertRaises(ProviderError):
            await provider.retrieve(_PROFILE, 5)


class TestBrightDataProvider(unittest.IsolatedAsyncioTestCase):
    def _provider(self, handler) -> BrightDataProvider:
        return BrightDataProvider(
            "tok",
            brightdata=BrightDataConfig(dataset_id="gd_test", base_url="https://bd.test/datasets/v3"),
            http_client=_client(handler),
        )

    async def test_submit_triggers_collection(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"snapshot_id": "s_1"})

        job = await self._provider(handler).submit(_PROFILE, 5)

        self.assertEqual(job.id, "s_1")
        self.assertEqual(job.result_handle, "s_1")
        self.assertIs(job.status, JobStatus.SUBMITTED)

        request = seen[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url.path, "/datasets/v3/trigger")
        self.assertEqual(request.url.params["dataset_id"], "gd_test")
        self.assertEqual(request.url.params["discover_by"], "url")
        self.assertEqual(request.headers["authorization"], "Bearer tok")
        self.assertEqual(json.loads(request.content), [{"url": _PROFILE, "num_of_posts": 5}])

    async def test_submit_without_snapshot(self) -> None:
        with self.assertRaises(ProviderError):
            await self._provider(lambda r: httpx.Response(200, json={})).submit(_PROFILE, 5)

    async def test_poll_maps_progress(self) -> None:
        provider = self._provider(lambda r: httpx.Response(200, json={"status": "running"}))
        report = await provider.poll_status("s_1")
        self.assertIs(report.status, JobStatus.RUNNING)
        self.assertEqual(report.result_handle, "s_1")

    async def test_retrieve_snapshot(self) -> None:
        records = [{"post_id": str(i)} for i in range(4)]
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=records)

        result = await self._provider(handler).retrieve("s_1", 3)

        self.assertEqual(len(result.records), 3)
        self.assertEqual(seen[0].url.path, "/datasets/v3/snapshot/s_1")
        self.assertEqual(seen[0].url.params["format"], "json")

    async def test_transient_status_is_flagged(self) -> None:
        provider = self._provider(lambda r: httpx.Response(429))
        with self.assertRaises(ProviderError) as ctx:
            await provider.submit(_PROFILE, 5)
        self.assertTrue(ctx.exception.transient)

    async def test_connection_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(ProviderError) as ctx:
            await self._provider(handler).poll_status("s_1")
        self.assertTrue(ctx.exception.transient)

    def test_status_mapping(self) -> None:
        self.assertIs(map_brightdata_status("ready"), JobStatus.SUCCEEDED)
        self.assertIs(map_brightdata_status("Failed"), JobStatus.FAILED)
        with self.assertRaises(ProviderError):
            map_brightdata_status("mystery")


if __name__ == "__main__":
    unittest.main()
