"""Voice management: one sound generator per tracked hand.

A voice goes through ``Absent -> ACTIVE -> FADING_OUT -> Absent``. It's created
the first time its hand is updated, follows the hand's frequency and gain with
short exponential ramps, and, once its hand is retired, fades out and is
released after a grace period.

Audio operations are best-effort: a failing generator is logged and only
affects its own hand.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Dict, Iterator, List, Optional

from handtheremin.audio import AudioBackend, DFLT_INIT_FREQ

logger = logging.getLogger(__name__)

DFLT_RAMP_TIME = 0.05
DFLT_FADE_TIME = 0.1
DFLT_TEARDOWN_DELAY = 0.15
# Frequencies are never ramped below this
DFLT_FREQ_FLOOR = 20
# Exponential ramps can't reach zero, so gains stop here instead
DFLT_GAIN_FLOOR = 0.001

# What to do when a hand comes back while its voice is still fading out:
#   'revive': cancel the release and ramp the same generator back up
#   'restart': let the fading generator be released on schedule and start a new one
REAPPEAR_POLICIES = ('revive', 'restart')
DFLT_ON_REAPPEAR = 'revive'


class VoiceState(Enum):
    ACTIVE = 'active'
    FADING_OUT = 'fading_out'


@dataclass(eq=False)
class Voice:
    hand_id: int
    generator: Any
    frequency: float = DFLT_INIT_FREQ
    gain: float = 0.0
    state: VoiceState = VoiceState.ACTIVE
    teardown: Any = field(default=None, repr=False)
    retirement: Optional[int] = None
    retired_at: Optional[float] = None


class VoiceManager:
    """
    Owns the voices, keyed by hand id.

    Args:
        backend: The ``AudioBackend`` making generators and scheduling releases
        ramp_time: Duration (s) of the ramps following parameter updates
        fade_time: Duration (s) of the fade-out of a retired voice
        teardown_delay: Time (s) between retirement and release of a voice
        freq_floor: Floor of the frequencies sent to generators
        gain_floor: Floor of the gains sent to generators
        on_reappear: One of ``REAPPEAR_POLICIES``

    Release callbacks may come from the audio thread, so state changes are
    serialized with a lock.
    """

    def __init__(
        self,
        backend: AudioBackend,
        *,
        ramp_time: float = DFLT_RAMP_TIME,
        fade_time: float = DFLT_FADE_TIME,
        teardown_delay: float = DFLT_TEARDOWN_DELAY,
        freq_floor: float = DFLT_FREQ_FLOOR,
        gain_floor: float = DFLT_GAIN_FLOOR,
        on_reappear: str = DFLT_ON_REAPPEAR,
    ):
        if on_reappear not in REAPPEAR_POLICIES:
            raise ValueError(
                f"on_reappear should be one of {REAPPEAR_POLICIES}, was {on_reappear!r}"
            )
        if teardown_delay < fade_time:
            raise ValueError(
                f"teardown_delay ({teardown_delay}) can't be shorter than "
                f"fade_time ({fade_time})"
            )
        self.backend = backend
        self.ramp_time = ramp_time
        self.fade_time = fade_time
        self.teardown_delay = teardown_delay
        self.freq_floor = freq_floor
        self.gain_floor = gain_floor
        self.on_reappear = on_reappear

        self._voices: Dict[int, Voice] = {}
        self._detached: List[Voice] = []  # fading voices no longer bound to a hand
        self._retirements = itertools.count()
        self._lock = threading.RLock()

    # ---------------------------------------------------------------------------
    # Queries

    @property
    def audio_ready(self) -> bool:
        return self.backend.is_initialized

    def __contains__(self, hand_id) -> bool:
        return hand_id in self._voices

    def __len__(self) -> int:
        return len(self._voices)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._voices))

    @property
    def hand_ids(self) -> frozenset:
        return frozenset(self._voices)

    @property
    def detached(self) -> tuple:
        return tuple(self._detached)

    def get(self, hand_id) -> Optional[Voice]:
        return self._voices.get(hand_id)

    def state(self, hand_id) -> Optional[VoiceState]:
        """The state of the hand's voice, or ``None`` if it has none."""
        voice = self._voices.get(hand_id)
        return voice.state if voice is not None else None

    # ---------------------------------------------------------------------------
    # Lifecycle

    def update(self, hand_id, frequency: float, gain: float) -> Optional[Voice]:
        """
        Move the hand's voice toward ``frequency`` and ``gain``, creating it if
        needed. Returns the voice, or ``None`` if no generator could be made.
        """
        with self._lock:
            voice = self._voices.get(hand_id)
            if voice is not None and voice.state is VoiceState.FADING_OUT:
                voice = self._reappear(voice)
            if voice is None:
                voice = self._create(hand_id)
                if voice is None:
                    return None
            self._apply(voice, frequency, gain)
            return voice

    def retire(self, hand_id) -> bool:
        """
        Fade out the hand's voice and schedule its release.

        Returns ``False`` (and does nothing) if the hand has no active voice.
        """
        with self._lock:
            voice = self._voices.get(hand_id)
            if voice is None or voice.state is VoiceState.FADING_OUT:
                return False
            voice.state = VoiceState.FADING_OUT
            voice.retirement = next(self._retirements)
            voice.retired_at = self.backend.now()
            try:
                voice.generator.set_gain(self.gain_floor, self.fade_time)
                voice.gain = self.gain_floor
            except Exception:
                logger.exception("Could not fade out voice of hand %s", hand_id)
            try:
                voice.teardown = self.backend.call_later(
                    self.teardown_delay,
                    partial(self._teardown, voice, voice.retirement),
                )
            except Exception:
                logger.exception(
                    "Could not schedule release of voice of hand %s; releasing now",
                    hand_id,
                )
                del self._voices[hand_id]
                self._release(voice)
            else:
                logger.debug("Voice of hand %s fading out", hand_id)
            return True

    def shutdown(self):
        """Stop every voice right away, fading or not."""
        with self._lock:
            voices = list(self._voices.values()) + self._detached
            self._voices.clear()
            self._detached.clear()
            for voice in voices:
                if voice.teardown is not None:
                    try:
                        voice.teardown.cancel()
                    except Exception:
                        logger.exception(
                            "Could not cancel release of voice of hand %s",
                            voice.hand_id,
                        )
                self._release(voice)
        if voices:
            logger.info("Stopped %d voice(s)", len(voices))

    # ---------------------------------------------------------------------------
    # Internals

    def _create(self, hand_id) -> Optional[Voice]:
        try:
            generator = self.backend.create_generator(DFLT_INIT_FREQ, 0.0)
        except Exception:
            logger.exception("Could not create voice for hand %s", hand_id)
            return None
        voice = Voice(hand_id, generator)
        self._voices[hand_id] = voice
        logger.debug("Voice created for hand %s", hand_id)
        return voice

    def _apply(self, voice: Voice, frequency: float, gain: float):
        frequency = max(frequency, self.freq_floor)
        gain = max(gain, self.gain_floor)
        try:
            voice.generator.set_frequency(frequency, self.ramp_time)
            voice.frequency = frequency
            voice.generator.set_gain(gain, self.ramp_time)
            voice.gain = gain
        except Exception:
            logger.exception("Could not update voice of hand %s", voice.hand_id)

    def _reappear(self, voice: Voice) -> Optional[Voice]:
        if self.on_reappear == 'revive':
            if voice.teardown is not None:
                try:
                    voice.teardown.cancel()
                except Exception:
                    logger.exception(
                        "Could not cancel release of voice of hand %s", voice.hand_id
                    )
            voice.teardown = None
            voice.retirement = None
            voice.retired_at = None
            voice.state = VoiceState.ACTIVE
            logger.debug("Voice of hand %s revived", voice.hand_id)
            return voice
        # 'restart': the fading generator keeps its release schedule
        del self._voices[voice.hand_id]
        self._detached.append(voice)
        return None

    def _teardown(self, voice: Voice, retirement: int):
        with self._lock:
            if voice.state is not VoiceState.FADING_OUT or voice.retirement != retirement:
                return  # revived (or retired again) since this was scheduled
            if self._voices.get(voice.hand_id) is voice:
                del self._voices[voice.hand_id]
            elif voice in self._detached:
                self._detached.remove(voice)
            else:
                return  # already released by a shutdown
            self._release(voice)

    def _release(self, voice: Voice):
        voice.teardown = None
        try:
            voice.generator.stop()
        except Exception:
            logger.exception("Could not stop voice of hand %s", voice.hand_id)
        logger.debug("Voice of hand %s released", voice.hand_id)
