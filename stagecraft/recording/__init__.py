"""Record-by-demonstration: before/after diffing and recording sessions."""

from stagecraft.recording.diff import SynthesisResult, diff_worlds
from stagecraft.recording.helpers import operand_for_value_change
from stagecraft.recording.session import RecordingSession

__all__ = [
    "RecordingSession",
    "SynthesisResult",
    "diff_worlds",
    "operand_for_value_change",
]
