"""
Streaming CSV reading.

Counts rows and splits a file into ordered, fixed-size chunks without loading
the whole file. Chunk boundaries depend only on the file bytes and the chunk
size, so chunk ``i`` of a file is the same rows on every attempt; resumption
relies on this.

Dependencies: csv (stdlib)
System role: Row decoding for the chunked batch processor
"""

import csv
import math
from itertools import islice
from pathlib import Path
from typing import Any, Iterator

Row = dict[str, Any]

# Values beyond the header width are collected under this key.
EXTRA_COLUMNS_KEY = "_extra"


def _open_reader(fh) -> csv.DictReader:
    return csv.DictReader(fh, restkey=EXTRA_COLUMNS_KEY)


def count_rows(file_path: str | Path) -> int:
    """
    Count data rows (header excluded) in a CSV file.

    Raises:
        OSError: File cannot be opened
        csv.Error: Malformed CSV
    """
    with open(file_path, newline="", encoding="utf-8-sig") as fh:
        return sum(1 for _ in _open_reader(fh))


def chunk_count(total_rows: int, chunk_size: int) -> int:
    """Number of chunks a file with ``total_rows`` rows splits into."""
    if total_rows <= 0:
        return 0
    return math.ceil(total_rows / chunk_size)


def iter_rows(file_path: str | Path) -> Iterator[Row]:
    """Yield each data row as a dict keyed by header column."""
    with open(file_path, newline="", encoding="utf-8-sig") as fh:
        for row in _open_reader(fh):
            yield dict(row)


def preview_rows(file_path: str | Path, limit: int) -> tuple[list[str], list[Row]]:
    """
    Header columns and at most ``limit`` leading rows of a CSV file.

    Only the rows returned are read.
    """
    with open(file_path, newline="", encoding="utf-8-sig") as fh:
        reader = _open_reader(fh)
        rows = [dict(row) for row in islice(reader, limit)]
        return list(reader.fieldnames or []), rows


def iter_chunks(file_path: str | Path, chunk_size: int) -> Iterator[list[Row]]:
    """
    Yield consecutive chunks of at most ``chunk_size`` rows.

    The final chunk may be smaller. An empty file yields nothing.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    chunk: list[Row] = []
    for row in iter_rows(file_path):
        chunk.append(row)
        if len(chunk) >= chunk_size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class ChunkReader:
    """
    Pull-based chunk source that hands out chunks one wave at a time.

    Keeps at most one wave of chunks in memory. Blocking reads are meant to be
    run through ``asyncio.to_thread``.
    """

    def __init__(self, file_path: str | Path, chunk_size: int) -> None:
        self._chunks = iter_chunks(file_path, chunk_size)
        self._next_index = 0
        self.exhausted = False

    def read_wave(self, width: int) -> list[tuple[int, list[Row]]]:
        """
        Read up to ``width`` chunks.

        Returns:
            list[tuple[int, list[Row]]]: (chunk_index, rows) pairs in order;
            empty once the file is exhausted
        """
        wave: list[tuple[int, list[Row]]] = []
        while len(wave) < width:
            try:
                rows = next(self._chunks)
            except StopIteration:
                self.exhausted = True
                break
            wave.append((self._next_index, rows))
            self._next_index += 1
        return wave

    def close(self) -> None:
        """Release the underlying file handle."""
        self._chunks.close()
