"""
Content checksums for duplicate file detection.

SHA-256 over the raw bytes, read in fixed-size blocks so large uploads are
never held in memory. Identical bytes always yield the identical hex digest,
independent of filename.

Dependencies: hashlib (stdlib)
System role: Dedup key for migration jobs and destination rows
"""

import asyncio
import hashlib
from pathlib import Path
from typing import BinaryIO

BLOCK_SIZE = 64 * 1024


def checksum_stream(stream: BinaryIO, block_size: int = BLOCK_SIZE) -> str:
    """
    Compute the SHA-256 hex digest of a binary stream.

    Args:
        stream: Readable binary stream, consumed to EOF
        block_size: Bytes read per iteration

    Returns:
        str: 64-character lowercase hex digest
    """
    digest = hashlib.sha256()
    for block in iter(lambda: stream.read(block_size), b""):
        digest.update(block)
    return digest.hexdigest()


def calculate_file_checksum(file_path: str | Path) -> str:
    """
    Compute the SHA-256 hex digest of a file.

    Raises:
        OSError: Propagated from opening or reading the file
    """
    with open(file_path, "rb") as fh:
        return checksum_stream(fh)


def calculate_bytes_checksum(data: bytes) -> str:
    """Compute the SHA-256 hex digest of an in-memory buffer."""
    return hashlib.sha256(data).hexdigest()


async def calculate_file_checksum_async(file_path: str | Path) -> str:
    """Async wrapper running :func:`calculate_file_checksum` in a worker thread."""
    return await asyncio.to_thread(calculate_file_checksum, file_path)


def calculate_row_key(source_checksum: str, chunk_index: int, row_offset: int) -> str:
    """
    Positional key of one source row.

    Deterministic for a given file and chunk size, so a replayed chunk maps
    onto the keys it wrote before while identical rows at different
    positions stay distinct.

    Args:
        source_checksum: Content checksum of the source file
        chunk_index: Chunk the row belongs to
        row_offset: Position of the row inside its chunk
    """
    return calculate_bytes_checksum(f"{source_checksum}:{chunk_index}:{row_offset}".encode("utf-8"))
