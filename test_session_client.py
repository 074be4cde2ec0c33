"""
Tests for RateLimitedSessionClient: retries, cookies and batch fetches.
"""

import threading
import unittest

import requests

from normattiva.http import (
    CrawlSession,
    MinIntervalRateLimiter,
    RateLimitedSessionClient,
    ServerUnreachableError,
    TerminalStatusError,
)

ARTICLE_BODY = "<div>" + "Testo dell'articolo. " * 5 + "</div>"


def make_response(status, body="", url="", cookies=None):
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    for name, value in (cookies or {}).items():
        response.cookies.set(name, value)
    return response


class ScriptedTransport:
    """Stands in for requests.get; answers from a per-URL script."""

    def __init__(self, script):
        self.script = {url: list(answers) for url, answers in script.items()}
        self.calls = []
        self.lock = threading.Lock()

    def __call__(self, url, headers=None, timeout=None):
        with self.lock:
            self.calls.append((url, dict(headers or {})))
            answers = self.script[url]
            answer = answers.pop(0) if len(answers) > 1 else answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def count(self, url):
        return sum(1 for called, _ in self.calls if called == url)


def make_client(transport, max_retries=2, sleeps=None):
    return RateLimitedSessionClient(
        rate_limiter=MinIntervalRateLimiter(0, sleep=lambda s: None),
        max_retries=max_retries,
        backoff_base=2.0,
        transport=transport,
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
    )


class TestFetch(unittest.TestCase):
    def test_success(self):
        url = "https://www.normattiva.it/a"
        transport = ScriptedTransport({url: [make_response(200, "<html>ok</html>", url)]})
        result = make_client(transport).fetch(url)
        self.assertEqual(result.status, 200)
        self.assertEqual(result.body, "<html>ok</html>")
        self.assertEqual(transport.count(url), 1)

    def test_retries_server_errors_with_backoff(self):
        url = "https://www.normattiva.it/a"
        transport = ScriptedTransport({url: [
            make_response(503, url=url),
            make_response(429, url=url),
            make_response(200, "<html>ok</html>", url),
        ]})
        sleeps = []
        result = make_client(transport, sleeps=sleeps).fetch(url)
        self.assertEqual(result.status, 200)
        self.assertEqual(transport.count(url), 3)
        self.assertEqual(sleeps, [2.0, 4.0])

    def test_terminal_status_after_retries(self):
        url = "https://www.normattiva.it/a"
        transport = ScriptedTransport({url: [make_response(500, url=url)]})
        with self.assertRaises(TerminalStatusError) as ctx:
            make_client(transport, max_retries=2).fetch(url)
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertEqual(transport.count(url), 3)

    def test_network_errors_raise_unreachable(self):
        url = "https://www.normattiva.it/a"
        transport = ScriptedTransport({url: [requests.exceptions.ConnectionError("refused")]})
        with self.assertRaises(ServerUnreachableError) as ctx:
            make_client(transport, max_retries=1).fetch(url)
        self.assertEqual(ctx.exception.url, url)
        self.assertEqual(transport.count(url), 2)

    def test_client_errors_are_not_retried(self):
        url = "https://www.normattiva.it/missing"
        transport = ScriptedTransport({url: [make_response(404, "not found", url)]})
        result = make_client(transport).fetch(url)
        self.assertEqual(result.status, 404)
        self.assertEqual(transport.count(url), 1)


class TestCrawlSession(unittest.TestCase):
    def test_cookies_are_carried_and_overwritten(self):
        landing = "https://www.normattiva.it/landing"
        article = "https://www.normattiva.it/article"
        transport = ScriptedTransport({
            landing: [make_response(200, "ok", landing, cookies={"JSESSIONID": "abc", "lang": "it"})],
            article: [make_response(200, "ok", article, cookies={"JSESSIONID": "def"})],
        })
        client = make_client(transport)
        session = CrawlSession("dlgs-196-2003")

        client.fetch(landing, session)
        client.fetch(article, session)
        client.fetch(article, session)

        self.assertNotIn("Cookie", transport.calls[0][1])
        self.assertEqual(transport.calls[1][1]["Cookie"], "JSESSIONID=abc; lang=it")
        self.assertEqual(transport.calls[2][1]["Cookie"], "JSESSIONID=def; lang=it")

    def test_fresh_session_starts_empty(self):
        self.assertIsNone(CrawlSession().cookie_header())


class TestFetchBatch(unittest.TestCase):
    def test_partial_failures_do_not_abort_batch(self):
        """Two of four URLs keep answering 500; the other two succeed."""
        urls = [f"https://www.normattiva.it/art/{i}" for i in range(1, 5)]
        transport = ScriptedTransport({
            urls[0]: [make_response(200, ARTICLE_BODY, urls[0])],
            urls[1]: [make_response(500, url=urls[1])],
            urls[2]: [make_response(200, ARTICLE_BODY, urls[2])],
            urls[3]: [make_response(500, url=urls[3])],
        })
        batch = make_client(transport, max_retries=1).fetch_batch(urls, concurrency=3)

        self.assertEqual([r.url for r in batch.successes], [urls[0], urls[2]])
        self.assertEqual(sorted(f.url for f in batch.failures), [urls[1], urls[3]])
        self.assertTrue(all(f.status == 500 for f in batch.failures))

    def test_short_non_200_body_is_a_failure(self):
        url = "https://www.normattiva.it/art/1"
        transport = ScriptedTransport({url: [make_response(404, "", url)]})
        batch = make_client(transport).fetch_batch([url])
        self.assertEqual(batch.successes, [])
        self.assertEqual(batch.failures[0].status, 404)

    def test_successes_keep_input_order(self):
        urls = [f"https://www.normattiva.it/art/{i}" for i in range(7)]
        transport = ScriptedTransport({url: [make_response(200, ARTICLE_BODY, url)] for url in urls})
        batch = make_client(transport).fetch_batch(urls, concurrency=3)
        self.assertEqual([r.url for r in batch.successes], urls)
        self.assertEqual(batch.failures, [])


if __name__ == "__main__":
    unittest.main()
