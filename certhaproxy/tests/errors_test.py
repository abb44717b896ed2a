"""Tests for certhaproxy.errors."""
import unittest

import mock

from certhaproxy import errors


class NotRenewableErrorTest(unittest.TestCase):
    """Tests for certhaproxy.errors.NotRenewableError."""

    def test_code_and_message(self):
        error = errors.NotRenewableError(("example.com", "www.example.com"))
        self.assertEqual("E_NOT_RENEWABLE", error.code)
        self.assertEqual(["example.com", "www.example.com"], error.domains)
        self.assertEqual(
            "No certificate for the domains 'example.com,www.example.com' "
            "found, aborting renewal attempt.", str(error))

    def test_is_certhaproxy_error(self):
        self.assertTrue(issubclass(errors.NotRenewableError, errors.Error))


class ConcatenationErrorTest(unittest.TestCase):
    """Tests for certhaproxy.errors.ConcatenationError."""

    def test_carries_bundle(self):
        bundle = mock.MagicMock(altnames=["example.com"])
        cause = errors.FilesystemError("disk full")
        error = errors.ConcatenationError(bundle, cause)

        self.assertTrue(error.bundle is bundle)
        self.assertTrue(error.error is cause)
        self.assertTrue("example.com" in str(error))
        self.assertTrue("disk full" in str(error))


class FilesystemErrorTest(unittest.TestCase):
    """Tests for certhaproxy.errors.FilesystemError."""

    def test_not_found_is_filesystem_error(self):
        error = errors.NotFoundError("gone", "/tmp/token", OSError())
        self.assertTrue(isinstance(error, errors.FilesystemError))
        self.assertEqual("/tmp/token", error.path)


if __name__ == "__main__":
    unittest.main()  # pragma: no cover
