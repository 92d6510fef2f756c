"""Resolution presets for export and preview renders."""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class ResolutionPreset:
    """Encoder settings for one named output resolution."""
    name: str
    resolution: Tuple[int, int]
    video_bitrate: str
    audio_bitrate: str
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    container: str = "mp4"
    quality: int = 20  # CRF

    @property
    def width(self) -> int:
        return self.resolution[0]

    @property
    def height(self) -> int:
        return self.resolution[1]


RESOLUTION_PRESETS: Dict[str, ResolutionPreset] = {
    p.name: p
    for p in (
        ResolutionPreset("4K", (3840, 2160), "15000k", "320k", quality=18),
        ResolutionPreset("1080p", (1920, 1080), "8000k", "192k", quality=20),
        ResolutionPreset("720p", (1280, 720), "4000k", "128k", quality=22),
        ResolutionPreset("480p", (854, 480), "2000k", "128k", quality=24),
        ResolutionPreset("Instagram_Story", (1080, 1920), "6000k", "128k", quality=20),
        ResolutionPreset("TikTok", (1080, 1920), "4000k", "128k", quality=22),
        ResolutionPreset("YouTube_Shorts", (1080, 1920), "5000k", "192k", quality=20),
    )
}


def get_preset(name: str) -> ResolutionPreset:
    """Look up a preset by name. Raises KeyError for unknown names."""
    return RESOLUTION_PRESETS[name]
