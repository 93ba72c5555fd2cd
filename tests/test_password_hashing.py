"""Tests for bcrypt password hashing."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from autohub.passwords import PasswordHasher  # noqa: E402


class PasswordHashingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_and_verify(self) -> None:
        hashed = self.hasher.hash("supersecurepassword")
        self.assertTrue(hashed.startswith("$2b$04$"))
        self.assertTrue(self.hasher.verify("supersecurepassword", hashed))
        self.assertFalse(self.hasher.verify("incorrect", hashed))

    def test_hashing_is_salted(self) -> None:
        first = self.hasher.hash("samepassword")
        second = self.hasher.hash("samepassword")
        self.assertNotEqual(first, second)
        self.assertTrue(self.hasher.verify("samepassword", first))
        self.assertTrue(self.hasher.verify("samepassword", second))

    def test_default_work_factor(self) -> None:
        """Digests should carry the default cost of 10 unless configured otherwise."""

        hashed = PasswordHasher().hash("anothersecurepassword")
        self.assertTrue(hashed.startswith("$2b$10$"))

    def test_malformed_digest_does_not_verify(self) -> None:
        self.assertFalse(self.hasher.verify("password", "not-a-bcrypt-digest"))
        self.assertFalse(self.hasher.verify("password", ""))
        self.assertFalse(self.hasher.verify("", self.hasher.hash("password")))

    def test_empty_password_cannot_be_hashed(self) -> None:
        with self.assertRaises(ValueError):
            self.hasher.hash("")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
