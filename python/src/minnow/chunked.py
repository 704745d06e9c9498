"""``aws-chunked`` payload framing with chained chunk signatures.

Used for single-PUT uploads of a stream whose length is known but which we
do not want to read twice just to hash it up front. The request itself is
signed with ``STREAMING-AWS4-HMAC-SHA256-PAYLOAD``; its signature seeds a
chain where every chunk signature covers the previous one.

Each frame looks like::

    <hex length>;chunk-signature=<64 hex>\\r\\n<data>\\r\\n

and the body ends with a zero-length frame.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import BinaryIO

from minnow.auth import EMPTY_SHA256, RequestSigner, sha256_hex
from minnow.credentials import Credentials
from minnow.errors import ConstructionError

CHUNK_SIZE = 64 * 1024

_SIGNATURE_HEADER = b";chunk-signature="
_CRLF = b"\r\n"


def frame_length(data_length: int) -> int:
    """Size on the wire of one frame carrying ``data_length`` bytes."""
    return len(f"{data_length:x}") + len(_SIGNATURE_HEADER) + 64 + 2 + data_length + 2


def encoded_length(decoded_length: int, chunk_size: int = CHUNK_SIZE) -> int:
    """Content-Length of the framed body for ``decoded_length`` payload bytes."""
    full, last = divmod(decoded_length, chunk_size)
    length = full * frame_length(chunk_size)
    if last:
        length += frame_length(last)
    return length + frame_length(0)


class ChunkedPayload:
    """Frames and signs a payload chunk by chunk.

    Attributes:
        signature: The most recent signature in the chain.
    """

    def __init__(
        self,
        signer: RequestSigner,
        credentials: Credentials,
        timestamp: datetime,
        seed_signature: str,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        if chunk_size < 8 * 1024:
            raise ConstructionError("chunk_size", chunk_size, "must be at least 8 KiB")
        self._signer = signer
        self._credentials = credentials
        self._timestamp = timestamp
        self.signature = seed_signature
        self.chunk_size = chunk_size
        self._finished = False

    def frame(self, data: bytes) -> bytes:
        """Sign ``data`` and return its frame. An empty ``data`` closes the stream."""
        if self._finished:
            raise ConstructionError("data", len(data), "payload already finished")
        chunk_hash = sha256_hex(data) if data else EMPTY_SHA256
        self.signature = self._signer.sign_chunk(
            self.signature, chunk_hash, self._credentials, self._timestamp
        )
        if not data:
            self._finished = True
        return b"".join(
            [
                f"{len(data):x}".encode("ascii"),
                _SIGNATURE_HEADER,
                self.signature.encode("ascii"),
                _CRLF,
                data,
                _CRLF,
            ]
        )

    def encode(self, stream: BinaryIO, length: int) -> Iterator[bytes]:
        """Yield the frames for exactly ``length`` bytes read from ``stream``.

        Raises:
            ConstructionError: If the stream ends early.
        """
        remaining = length
        while remaining > 0:
            want = min(self.chunk_size, remaining)
            data = stream.read(want)
            while data is not None and len(data) < want:
                more = stream.read(want - len(data))
                if not more:
                    break
                data += more
            if not data or len(data) < want:
                read = length - remaining + len(data or b"")
                raise ConstructionError("length", length, f"stream ended after {read} bytes")
            remaining -= len(data)
            yield self.frame(data)
        yield self.frame(b"")
