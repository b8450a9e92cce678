#!/usr/bin/env python3
"""
Content digests for log output.

Clipboard content may hold passwords or other secrets, so log lines
never print it. They identify content by length and a short SHA-256
prefix instead, which is enough to see that two displays received the
same bytes.
"""
import hashlib

# Hex digits of the digest shown in log lines.
SHORT_HASH_LENGTH: int = 12


def compute_hash(data: bytes) -> str:
    """
    Compute SHA-256 hash of clipboard content.

    Args:
        data: Raw clipboard content bytes to hash.

    Returns:
        Hexadecimal string representation of the SHA-256 digest.
    """
    return hashlib.sha256(data).hexdigest()


def describe_content(data: bytes) -> str:
    """
    Summarize clipboard content for logging.

    Args:
        data: Raw clipboard content bytes.

    Returns:
        A string such as "5 bytes sha256:2cf24dba5fb0".
    """
    return f"{len(data)} bytes sha256:{compute_hash(data)[:SHORT_HASH_LENGTH]}"
