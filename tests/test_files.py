import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from imgbridge.tools.files import (
    default_filename,
    format_file_size,
    get_file_extension,
    safe_filename,
)


class TestFileExtension(unittest.TestCase):
    def test_png(self) -> None:
        self.assertEqual(get_file_extension("https://example.com/a/b/cat.png"), ".png")

    def test_query_string_ignored(self) -> None:
        self.assertEqual(get_file_extension("https://example.com/cat.gif?size=large"), ".gif")

    def test_no_extension_defaults_to_jpg(self) -> None:
        self.assertEqual(get_file_extension("https://example.com/images/12345"), ".jpg")

    def test_jpeg_is_too_long(self) -> None:
        # ".jpeg" is five characters with the dot.
        self.assertEqual(get_file_extension("https://example.com/cat.jpeg"), ".jpg")

    def test_four_char_boundary_kept(self) -> None:
        self.assertEqual(get_file_extension("https://example.com/cat.svg"), ".svg")

    def test_long_extension_defaults(self) -> None:
        self.assertEqual(get_file_extension("https://example.com/photo.webpage"), ".jpg")

    def test_garbage_url(self) -> None:
        self.assertEqual(get_file_extension("not a url"), ".jpg")


class TestFileHelpers(unittest.TestCase):
    def test_default_filename(self) -> None:
        self.assertEqual(
            default_filename("https://example.com/cat.png", 1700000000123),
            "google-image-1700000000123.png",
        )

    def test_safe_filename_drops_directories(self) -> None:
        self.assertEqual(safe_filename("../../etc/passwd"), "passwd")
        self.assertEqual(safe_filename("cat.png"), "cat.png")

    def test_format_file_size(self) -> None:
        self.assertEqual(format_file_size(0), "0 Bytes")
        self.assertEqual(format_file_size(512), "512 Bytes")
        self.assertEqual(format_file_size(1024), "1 KB")
        self.assertEqual(format_file_size(1536), "1.5 KB")
        self.assertEqual(format_file_size(5 * 1024 * 1024), "5 MB")


if __name__ == "__main__":
    unittest.main()
