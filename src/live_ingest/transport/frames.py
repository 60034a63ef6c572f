"""Reassembly of fragmented WebSocket messages."""

import codecs
from typing import List, Optional, Union


class FrameAssembler:
    """
    Concatenates partial frames until the message boundary.

    Text fragments are joined as-is; binary fragments are decoded with an
    incremental UTF-8 decoder so a multi-byte character split across two
    frames survives. A message larger than ``max_size`` is consumed but
    discarded.
    """

    def __init__(self, max_size: int = 1 << 20):
        self.max_size = max_size
        self.overflowed = False
        self._parts: List[str] = []
        self._size = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, fragment: Union[str, bytes]) -> None:
        if isinstance(fragment, (bytes, bytearray, memoryview)):
            text = self._decoder.decode(bytes(fragment))
        else:
            text = fragment
        if self.overflowed:
            return
        self._size += len(text)
        if self._size > self.max_size:
            self.overflowed = True
            self._parts = []
            return
        self._parts.append(text)

    def finish(self) -> Optional[str]:
        """
        Close the current message.

        Returns:
            Optional[str]: The complete message, or None if it was discarded
        """
        tail = self._decoder.decode(b"", final=True)
        message = None if self.overflowed else "".join(self._parts) + tail
        self.reset()
        return message

    def reset(self) -> None:
        self.overflowed = False
        self._parts = []
        self._size = 0
        self._decoder.reset()

    @property
    def pending(self) -> bool:
        return bool(self._parts)
