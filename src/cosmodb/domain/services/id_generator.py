"""Document ID generator.

Generates IDs in ``<epoch-ms>-<random base36>`` format, e.g.
``1760781234567-k3j9x0q2m1zt``. The timestamp keeps IDs roughly ordered
by creation time and the random suffix makes collisions negligible.
"""

import re
import secrets
import time


class DocumentIdGenerator:
    """Generator for high-entropy document IDs."""

    PATTERN = re.compile(r"^\d+-[0-9a-z]+$")

    ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

    SUFFIX_LENGTH = 13

    @classmethod
    def generate(cls) -> str:
        """Generate a new document ID.

        Returns:
            A string such as ``1760781234567-k3j9x0q2m1zt4``.
        """
        timestamp = time.time_ns() // 1_000_000
        suffix = "".join(secrets.choice(cls.ALPHABET) for _ in range(cls.SUFFIX_LENGTH))
        return f"{timestamp}-{suffix}"

    @classmethod
    def validate(cls, document_id: str) -> bool:
        """Check whether an ID was produced by this generator.

        Examples:
            >>> DocumentIdGenerator.validate("1760781234567-k3j9x0q2m1zt4")
            True
            >>> DocumentIdGenerator.validate("t1")
            False
        """
        return bool(cls.PATTERN.match(document_id))
