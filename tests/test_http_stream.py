import unittest
from unittest import mock

import requests

from urlpreview.media.http_stream import open_http_stream, validate_fetch_url
from urlpreview.preview.options import FetchOptions
from urlpreview.preview.types import BlockedUrlError


class TestFetchSafety(unittest.TestCase):
    def test_blocks_localhost(self):
        self.assertEqual(validate_fetch_url("http://localhost:1234/"), "blocked_host")

    def test_blocks_private_ip(self):
        self.assertEqual(validate_fetch_url("http://127.0.0.1:1234/"), "blocked_private_ip")
        self.assertEqual(validate_fetch_url("http://192.168.1.10/img.png"), "blocked_private_ip")

    def test_blocks_non_http_scheme(self):
        self.assertEqual(validate_fetch_url("file:///etc/passwd"), "bad_scheme")

    def test_allows_public_url(self):
        self.assertIsNone(validate_fetch_url("https://example.com/img.jpg"))

    def test_open_stream_refuses_blocked_url(self):
        with self.assertRaises(BlockedUrlError):
            open_http_stream("http://localhost/img.jpg", FetchOptions())


class TestOpenHttpStream(unittest.TestCase):
    def test_streams_chunks_with_fetch_options(self):
        resp = mock.MagicMock()
        resp.status_code = 200
        resp.headers = {}
        resp.iter_content.return_value = [b"ab", b"", b"cd"]
        resp.__enter__.return_value = resp
        session = mock.Mock()
        session.get.return_value = resp

        opts = FetchOptions(timeout=1500, proxy_url="http://proxy:3128", headers={"X-Test": "1"})
        chunks = list(open_http_stream("https://example.com/img.jpg", opts, session=session))

        self.assertEqual(chunks, [b"ab", b"cd"])
        _, kwargs = session.get.call_args
        self.assertTrue(kwargs["stream"])
        self.assertFalse(kwargs["allow_redirects"])
        self.assertEqual(kwargs["timeout"], 1.5)
        self.assertEqual(kwargs["proxies"], {"http": "http://proxy:3128", "https": "http://proxy:3128"})
        self.assertEqual(kwargs["headers"]["X-Test"], "1")
        self.assertIn("User-Agent", kwargs["headers"])

    def test_http_error_propagates(self):
        resp = mock.MagicMock()
        resp.status_code = 404
        resp.headers = {}
        resp.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        session = mock.Mock()
        session.get.return_value = resp
        with self.assertRaises(requests.HTTPError):
            open_http_stream("https://example.com/missing.jpg", FetchOptions(), session=session)
        resp.close.assert_called_once()

    def test_redirect_into_private_space_is_refused(self):
        hop = mock.MagicMock()
        hop.status_code = 302
        hop.headers = {"Location": "http://169.254.169.254/latest/meta-data/"}
        session = mock.Mock()
        session.get.return_value = hop

        with self.assertRaises(BlockedUrlError) as ctx:
            open_http_stream("https://img.example.net/x.jpg", FetchOptions(), session=session)

        self.assertEqual(ctx.exception.reason, "blocked_private_ip")
        self.assertEqual(session.get.call_count, 1)
        hop.close.assert_called_once()

    def test_public_redirect_is_followed(self):
        hop = mock.MagicMock()
        hop.status_code = 301
        hop.headers = {"Location": "/cdn/x.jpg"}
        final = mock.MagicMock()
        final.status_code = 200
        final.headers = {}
        final.iter_content.return_value = [b"jpeg"]
        session = mock.Mock()
        session.get.side_effect = [hop, final]

        chunks = list(open_http_stream("https://img.example.net/x.jpg", FetchOptions(), session=session))

        self.assertEqual(chunks, [b"jpeg"])
        self.assertEqual(session.get.call_args_list[1].args[0], "https://img.example.net/cdn/x.jpg")


if __name__ == "__main__":
    unittest.main()
