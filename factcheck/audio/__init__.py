"""Audio capture: microphone, timed segmentation, encoding."""
from .encoding import encode_pcm, select_mime_type, supported_mime_types
from .segmenter import AudioSegment, PcmSegment, RecordingSegmenter, encode_segment

__all__ = [
    "AudioSegment",
    "PcmSegment",
    "RecordingSegmenter",
    "encode_pcm",
    "encode_segment",
    "select_mime_type",
    "supported_mime_types",
]
