"""Per-frame orchestration: from hand observations to voices and display readings."""

import logging
from typing import Callable, Iterable, List, NamedTuple, Optional

from handtheremin.hand_features import HandObservation
from handtheremin.mapping import (
    DFLT_MAX_FREQ,
    DFLT_MAX_VOLUME,
    DFLT_MIN_FREQ,
    DFLT_VOLUME_CONVENTION,
    amplitude,
    frequency,
    volume_conventions,
)
from handtheremin.voices import VoiceManager

logger = logging.getLogger(__name__)


class HandReading(NamedTuple):
    """What's shown for a hand: its signals and the sound they produce."""

    hand_id: int
    x: float
    y: float
    z: float
    frequency: float
    volume: float


class ThereminFrameProcessor:
    """
    Runs once per detection frame.

    Computes the frequency and volume of every observed hand, forwards them to
    the voices (if audio is ready), and retires the voices of hands that were
    in the previous frame but aren't anymore. Disappearing from a frame is the
    only way a hand is considered gone.

    Args:
        voices: The ``VoiceManager`` to drive, or ``None`` for display only
        min_freq, max_freq: Frequency range of the pitch mapping
        max_volume: Volume of a hand at its loudest
        volume_convention: Key of ``mapping.volume_conventions``
        freq_trans: Optional function applied to computed frequencies
            (for example, a scale snapper)
    """

    def __init__(
        self,
        voices: Optional[VoiceManager] = None,
        *,
        min_freq: float = DFLT_MIN_FREQ,
        max_freq: float = DFLT_MAX_FREQ,
        max_volume: float = DFLT_MAX_VOLUME,
        volume_convention: str = DFLT_VOLUME_CONVENTION,
        freq_trans: Optional[Callable[[float], float]] = None,
    ):
        if volume_convention not in volume_conventions:
            raise ValueError(
                f"Unknown volume convention: {volume_convention!r}. "
                f"Should be one of {sorted(volume_conventions)}"
            )
        self.voices = voices
        self.min_freq = min_freq
        self.max_freq = max_freq
        self.max_volume = max_volume
        self.volume_convention = volume_convention
        self.freq_trans = freq_trans
        self.active_hand_ids = frozenset()
        self.readings: List[HandReading] = []

    @property
    def audio_ready(self) -> bool:
        return self.voices is not None and self.voices.audio_ready

    def reading(self, obs: HandObservation) -> HandReading:
        freq = frequency(obs.x, min_freq=self.min_freq, max_freq=self.max_freq)
        if self.freq_trans is not None:
            freq = self.freq_trans(freq)
        volume = amplitude(
            obs.z, max_volume=self.max_volume, convention=self.volume_convention
        )
        return HandReading(obs.hand_id, obs.x, obs.y, obs.z, float(freq), volume)

    def process(self, observations: Iterable[HandObservation]) -> List[HandReading]:
        """Process the observations of one frame. Returns the readings to display."""
        readings = [self.reading(obs) for obs in observations]
        current_hand_ids = frozenset(r.hand_id for r in readings)

        if self.audio_ready:
            for r in readings:
                self.voices.update(r.hand_id, r.frequency, r.volume)

        if self.voices is not None:
            for hand_id in self.active_hand_ids - current_hand_ids:
                self.voices.retire(hand_id)

        if current_hand_ids != self.active_hand_ids:
            logger.debug("Hands in frame: %s", sorted(current_hand_ids))
        self.active_hand_ids = current_hand_ids
        self.readings = readings
        return readings

    __call__ = process

    def stop(self):
        """Silence everything at once and forget the active hands."""
        if self.voices is not None:
            self.voices.shutdown()
        self.active_hand_ids = frozenset()
        self.readings = []
