"""Map normalized hand signals to synthesis parameters.

Pitch uses a logarithmic scale, so that equal hand displacements give equal
musical intervals. Volume is linear with clamping, and capped so that several
voices can be summed at the output without clipping.
"""

import math
from typing import Tuple, Callable

import numpy as np

# Defaults
DFLT_MIN_FREQ = 200
DFLT_MAX_FREQ = 2000
DFLT_MAX_VOLUME = 0.4
DFLT_VOLUME_CONVENTION = 'closer_louder'

Range = Tuple[float, float]


def identity(x):
    """Identity function."""
    return x


def invert(x):
    """Flip a unit-interval value: ``1 - x``."""
    return 1 - x


class RangeMapper:
    """
    A callable class that maps values from one range to another.
    Precomputes scaling factors for better performance.

    >>> mapper = RangeMapper((0, 1), (100, 200))
    >>> mapper(0.5)
    150.0
    >>> mapper(-0.1)  # Below range
    100
    >>> mapper(1.5)   # Above range
    200

    ``ingress`` is applied to the value before mapping (and clamping), and
    ``egress`` to the mapped output:

    >>> mapper = RangeMapper((0, 1), (0, 10), ingress=invert)
    >>> mapper(0.25)
    7.5
    """

    def __init__(
        self,
        value_range: Range,
        target_range: Range,
        *,
        ingress: Callable = identity,
        egress: Callable = identity,
    ):
        self.value_min, self.value_max = value_range
        self.target_min, self.target_max = target_range

        self._value_span = self.value_max - self.value_min
        self._target_span = self.target_max - self.target_min
        self._scale_factor = self._target_span / self._value_span
        self.ingress = ingress
        self.egress = egress

    def __call__(self, value: float) -> float:
        value = self.ingress(value)
        if value <= self.value_min:
            output = self.target_min
        elif value >= self.value_max:
            output = self.target_max
        else:
            output = self.target_min + (value - self.value_min) * self._scale_factor

        return self.egress(output)

    def __repr__(self):
        return (
            f"{type(self).__name__}(({self.value_min}, {self.value_max}), "
            f"({self.target_min}, {self.target_max}))"
        )


# -------------------------------------------------------------------------------
# Pitch
# -------------------------------------------------------------------------------


def log_frequency_mapper(
    min_freq: float = DFLT_MIN_FREQ, max_freq: float = DFLT_MAX_FREQ
) -> RangeMapper:
    """
    Make a mapper from horizontal position to frequency.

    The position is inverted (``1 - x``) so that moving right, as seen in the
    mirrored camera image, raises the pitch. Interpolation happens in log space.
    """
    return RangeMapper(
        (0, 1),
        (math.log(min_freq), math.log(max_freq)),
        ingress=invert,
        egress=math.exp,
    )


_default_frequency_mapper = log_frequency_mapper()


def frequency(
    x: float, *, min_freq: float = DFLT_MIN_FREQ, max_freq: float = DFLT_MAX_FREQ
) -> float:
    """
    Map a normalized horizontal position to a frequency in Hz.

    >>> round(frequency(0.0), 2)
    2000.0
    >>> round(frequency(1.0), 2)
    200.0
    >>> round(frequency(0.5), 2)  # geometric mean of 200 and 2000
    632.46
    """
    if (min_freq, max_freq) == (DFLT_MIN_FREQ, DFLT_MAX_FREQ):
        return _default_frequency_mapper(x)
    return log_frequency_mapper(min_freq, max_freq)(x)


def x_for_frequency(
    freq: float, *, min_freq: float = DFLT_MIN_FREQ, max_freq: float = DFLT_MAX_FREQ
) -> float:
    """
    Inverse of ``frequency``: the horizontal position producing ``freq``.

    Frequencies outside of ``[min_freq, max_freq]`` give positions outside of
    ``[0, 1]``; it's up to the caller to discard those.

    >>> round(x_for_frequency(632.4555320336759), 6)
    0.5
    >>> x_for_frequency(2000)
    0.0
    """
    log_min, log_max = math.log(min_freq), math.log(max_freq)
    return 1 - (math.log(freq) - log_min) / (log_max - log_min)


# -------------------------------------------------------------------------------
# Volume
# -------------------------------------------------------------------------------


def closer_louder(z: float, max_volume: float = DFLT_MAX_VOLUME) -> float:
    """Volume grows with closeness: ``np.clip(z, 0, 1) * max_volume``."""
    return float(np.clip(z, 0, 1)) * max_volume


def closer_quieter(z: float, max_volume: float = DFLT_MAX_VOLUME) -> float:
    """Volume shrinks with closeness: ``(1 - np.clip(z, 0, 1)) * max_volume``."""
    return (1 - float(np.clip(z, 0, 1))) * max_volume


volume_conventions = {
    'closer_louder': closer_louder,
    'closer_quieter': closer_quieter,
}


def amplitude(
    z: float,
    *,
    max_volume: float = DFLT_MAX_VOLUME,
    convention: str = DFLT_VOLUME_CONVENTION,
) -> float:
    """
    Map a normalized closeness ``z`` (0 = far, 1 = close) to a linear gain.

    Out-of-range inputs are clamped, so the result is always within
    ``[0, max_volume]``.

    >>> amplitude(1.0)
    0.4
    >>> amplitude(0.0)
    0.0
    >>> amplitude(2.5)
    0.4
    >>> amplitude(1.0, convention='closer_quieter')
    0.0
    """
    try:
        volume_func = volume_conventions[convention]
    except KeyError:
        raise ValueError(
            f"Unknown volume convention: {convention!r}. "
            f"Should be one of {sorted(volume_conventions)}"
        )
    return volume_func(z, max_volume)
