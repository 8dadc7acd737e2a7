import io
import unittest
from unittest import mock

from PIL import Image

from urlpreview.media import thumbnails
from urlpreview.media.thumbnails import cap_thumbnail, extract_image_thumb, generate_thumbnail, read_stream
from urlpreview.preview.types import ThumbnailError


def _png_bytes(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


class TestCapThumbnail(unittest.TestCase):
    def test_oversized_buffer_is_truncated_to_prefix(self):
        original = bytes(range(256)) * 1200  # 307,200 bytes
        capped = cap_thumbnail(original)
        self.assertEqual(len(capped), 256_000)
        self.assertEqual(capped, original[:256_000])

    def test_small_buffer_is_unchanged(self):
        original = b"\xff\xd8" + b"x" * 1000
        self.assertEqual(cap_thumbnail(original), original)

    def test_exact_limit_is_unchanged(self):
        original = b"a" * 256_000
        self.assertEqual(cap_thumbnail(original), original)

    def test_custom_limit(self):
        self.assertEqual(cap_thumbnail(b"abcdef", 4), b"abcd")


class TestGenerateThumbnail(unittest.TestCase):
    def test_resizes_to_width_and_keeps_aspect(self):
        thumb = generate_thumbnail(_png_bytes(400, 200), 100)
        self.assertEqual((thumb.original_width, thumb.original_height), (400, 200))
        self.assertEqual(thumb.mimetype, "image/png")
        with Image.open(io.BytesIO(thumb.jpeg)) as img:
            self.assertEqual(img.format, "JPEG")
            self.assertEqual(img.size, (100, 50))

    def test_extract_from_chunked_stream(self):
        data = _png_bytes(64, 64)
        chunks = [data[i:i + 100] for i in range(0, len(data), 100)]
        jpeg = extract_image_thumb(iter(chunks), 32)
        self.assertTrue(jpeg.startswith(b"\xff\xd8"))

    def test_garbage_raises_thumbnail_error(self):
        with self.assertRaises(ThumbnailError):
            generate_thumbnail(b"definitely not an image", 100)

    def test_pixel_limit_is_checked_before_decoding(self):
        with mock.patch("urlpreview.media.thumbnails.MAX_IMAGE_PIXELS", 100 * 100 - 1):
            with self.assertRaises(ThumbnailError):
                generate_thumbnail(_png_bytes(100, 100), 10)

    def test_pillow_global_limit_is_left_alone(self):
        self.assertNotEqual(Image.MAX_IMAGE_PIXELS, thumbnails.MAX_IMAGE_PIXELS)

    def test_stream_size_guard(self):
        with self.assertRaises(ThumbnailError):
            read_stream(iter([b"x" * 10, b"y" * 10]), max_bytes=15)


if __name__ == "__main__":
    unittest.main()
