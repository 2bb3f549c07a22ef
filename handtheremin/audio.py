"""What the voices need from an audio stack.

The pyo implementation lives in ``handtheremin.pyo_audio``.
"""

import time

DFLT_INIT_FREQ = 440


class AudioInitError(RuntimeError):
    """Raised when the audio output can't be set up."""


class AudioBackend:
    """
    Base class of audio backends.

    A backend owns the shared output, makes generators that play into it, and
    schedules deferred calls (used to release generators after a fade-out).

    Generators have ``set_frequency(value, ramp)``, ``set_gain(value, ramp)``
    (each ramping exponentially to ``value`` over ``ramp`` seconds) and ``stop()``.
    """

    @property
    def is_initialized(self) -> bool:
        raise NotImplementedError

    def initialize(self):
        """Set up the audio output. Must be idempotent."""
        raise NotImplementedError

    def create_generator(self, freq: float = DFLT_INIT_FREQ, gain: float = 0.0):
        raise NotImplementedError

    def call_later(self, delay: float, func):
        """Call ``func()`` in ``delay`` seconds. Returns a handle with ``cancel()``."""
        raise NotImplementedError

    def now(self) -> float:
        return time.monotonic()

    def close(self):
        pass
