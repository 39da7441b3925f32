"""Reusable in-memory streams that survive being closed by the code using them."""

import io


class NonClosableBuffer(io.BytesIO):
    """A BytesIO whose close() is a no-op.

    Libraries and ``with`` blocks are free to "close" the stream; it stays
    readable, writable and seekable so the next iteration can reuse it.
    Call release() to actually free it.

    When ``capacity`` is given the buffer starts out filled with that many zero
    bytes, so writes up to that size overwrite in place instead of growing it.
    """

    def __init__(self, capacity: int = 0):
        super().__init__(bytearray(capacity))
        self.capacity = capacity

    def close(self):
        pass

    def release(self):
        """Really closes the underlying buffer."""
        super().close()

    def reset(self):
        """Seeks back to the start without truncating or reallocating."""
        self.seek(0)

    def written(self) -> bytes:
        """Returns the bytes between the start of the buffer and the current position."""
        end = self.tell()
        with self.getbuffer() as view:
            return bytes(view[:end])

    def __repr__(self):
        state = "released" if self.closed else f"pos={self.tell()} len={self.getbuffer().nbytes}"
        return f"<NonClosableBuffer {state}>"
