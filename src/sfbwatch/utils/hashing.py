"""
Content fingerprinting for change detection.

Calculates SHA256 digests of export files. Supports both sync and async
file I/O; a file that cannot be read raises WatchPathError instead of
returning an empty digest, so the caller can report the failure.
"""

import hashlib
from pathlib import Path

import aiofiles

from sfbwatch.exceptions import WatchPathError
from sfbwatch.utils.logging import get_logger

logger = get_logger("sfbwatch.utils.hashing")

BLOCK_SIZE = 65536


def fingerprint(data: bytes) -> str:
    """
    Calculate the SHA256 fingerprint of in-memory content.

    Args:
        data: Raw file bytes

    Returns:
        SHA256 hash as hex string
    """
    return hashlib.sha256(data).hexdigest()


def calculate_file_hash(file_path: Path | str) -> str:
    """
    Calculate SHA256 hash of file content (synchronous).

    Args:
        file_path: Path to file

    Returns:
        SHA256 hash as hex string

    Raises:
        WatchPathError: If the file cannot be read
    """
    sha256_hash = hashlib.sha256()
    try:
        with open(file_path, "rb") as f:
            for byte_block in iter(lambda: f.read(BLOCK_SIZE), b""):
                sha256_hash.update(byte_block)
    except OSError as e:
        raise WatchPathError(f"Failed to hash {file_path}: {e}", path=str(file_path)) from e
    return sha256_hash.hexdigest()


async def calculate_file_hash_async(file_path: Path | str) -> str:
    """
    Calculate SHA256 hash of file content (async).

    Uses aiofiles so hashing a large export does not block the event loop.

    Args:
        file_path: Path to file

    Returns:
        SHA256 hash as hex string

    Raises:
        WatchPathError: If the file cannot be read
    """
    sha256_hash = hashlib.sha256()
    try:
        async with aiofiles.open(file_path, "rb") as f:
            while True:
                chunk = await f.read(BLOCK_SIZE)
                if not chunk:
                    break
                sha256_hash.update(chunk)
    except OSError as e:
        raise WatchPathError(f"Failed to hash {file_path}: {e}", path=str(file_path)) from e
    digest = sha256_hash.hexdigest()
    logger.debug(f"Hashed {file_path}: {digest[:12]}")
    return digest
