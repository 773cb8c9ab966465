"""
Bounded in-memory store of synthesized audio clips.

- Clips are addressed by an opaque clip_id served at /audio/{clip_id}
- Capacity is counted in clips, not bytes
- When full, the OLDEST clip is evicted (clients load clips right after
  they are dispatched, so old clips are no longer needed)
- Deterministic, synchronous behavior
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from uuid import uuid4

from constants import AUDIO_CLIP_MEDIA_TYPE


@dataclass(frozen=True)
class AudioClip:
    """Stored clip payload."""
    data: bytes
    media_type: str = AUDIO_CLIP_MEDIA_TYPE


class AudioClipStore:
    """FIFO-evicting clip store shared by all sessions of a process."""

    def __init__(self, *, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self._capacity = capacity
        self._clips: OrderedDict[str, AudioClip] = OrderedDict()
        self.evicted: int = 0

    def put(self, data: bytes, *, media_type: str = AUDIO_CLIP_MEDIA_TYPE) -> str:
        """Store a clip and return its id."""
        clip_id = uuid4().hex
        self._clips[clip_id] = AudioClip(data=data, media_type=media_type)

        while len(self._clips) > self._capacity:
            self._clips.popitem(last=False)
            self.evicted += 1

        return clip_id

    def get(self, clip_id: str) -> AudioClip | None:
        return self._clips.get(clip_id)

    def __len__(self) -> int:
        return len(self._clips)

    def snapshot(self) -> dict[str, int]:
        """Lightweight snapshot for logging."""
        return {
            "clips": len(self._clips),
            "bytes": sum(len(c.data) for c in self._clips.values()),
            "evicted": self.evicted,
        }
