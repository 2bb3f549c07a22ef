"""pyo implementation of the audio backend."""

import logging

from pyo import Server, Sig, Port, Sine, CallAfter

from handtheremin.audio import AudioBackend, AudioInitError, DFLT_INIT_FREQ

logger = logging.getLogger(__name__)

DFLT_SR = 44100
DFLT_NCHNLS = 2
DFLT_BUFFERSIZE = 256


class SineGenerator:
    """
    A sine oscillator with its own gain, both driven by exponential smoothers.

    Targets are held in ``Sig`` objects and followed by ``Port`` filters, whose
    rise and fall times are set per call so each change ramps over its own time.
    """

    def __init__(
        self, freq=DFLT_INIT_FREQ, gain=0.0, *, nchnls=DFLT_NCHNLS, ramp_time=0.05
    ):
        self._freq_target = Sig(freq)
        self._freq = Port(
            self._freq_target, risetime=ramp_time, falltime=ramp_time, init=freq
        )
        self._gain_target = Sig(gain)
        self._gain = Port(
            self._gain_target, risetime=ramp_time, falltime=ramp_time, init=gain
        )
        self._osc = Sine(freq=self._freq, mul=self._gain)
        self._out = self._osc.mix(nchnls).out()

    @staticmethod
    def _ramp_to(port, target, value, ramp):
        port.setRiseTime(ramp)
        port.setFallTime(ramp)
        target.setValue(value)

    def set_frequency(self, value: float, ramp: float):
        self._ramp_to(self._freq, self._freq_target, value, ramp)

    def set_gain(self, value: float, ramp: float):
        self._ramp_to(self._gain, self._gain_target, value, ramp)

    def stop(self):
        for obj in (self._out, self._osc, self._gain, self._freq):
            obj.stop()


class CallAfterHandle:
    """Cancellable handle of a pyo ``CallAfter``."""

    def __init__(self, delay, func):
        self._caller = CallAfter(func, time=delay)

    def cancel(self):
        self._caller.stop()


class PyoBackend(AudioBackend):
    """
    Audio backend playing through a single pyo ``Server``.

    >>> backend = PyoBackend()  # doctest: +SKIP
    >>> backend.initialize()  # doctest: +SKIP
    >>> gen = backend.create_generator(440, 0.0)  # doctest: +SKIP
    >>> gen.set_gain(0.2, ramp=0.05)  # doctest: +SKIP
    """

    def __init__(
        self,
        *,
        sr: int = DFLT_SR,
        nchnls: int = DFLT_NCHNLS,
        buffersize: int = DFLT_BUFFERSIZE,
        duplex: int = 0,
        audio: str = 'portaudio',
    ):
        self.sr = sr
        self.nchnls = nchnls
        self.buffersize = buffersize
        self.duplex = duplex
        self.audio = audio
        self.server = None

    @property
    def is_initialized(self) -> bool:
        return self.server is not None and bool(self.server.getIsStarted())

    def initialize(self):
        """Boot and start the server. Does nothing if it's already running."""
        if self.is_initialized:
            return
        try:
            server = Server(
                sr=self.sr,
                nchnls=self.nchnls,
                buffersize=self.buffersize,
                duplex=self.duplex,
                audio=self.audio,
            ).boot()
            if not server.getIsBooted():
                raise AudioInitError(f"Could not boot the pyo server ({self.audio})")
            server.start()
        except AudioInitError:
            raise
        except Exception as e:
            raise AudioInitError(f"Could not set up audio output: {e}") from e
        self.server = server
        logger.info("Audio server started (sr=%s, nchnls=%s)", self.sr, self.nchnls)

    def create_generator(self, freq=DFLT_INIT_FREQ, gain=0.0):
        if not self.is_initialized:
            raise AudioInitError("Audio backend is not initialized")
        return SineGenerator(freq, gain, nchnls=self.nchnls)

    def call_later(self, delay, func):
        return CallAfterHandle(delay, func)

    def close(self):
        if self.server is None:
            return
        try:
            if self.server.getIsStarted():
                self.server.stop()
            self.server.shutdown()
        finally:
            self.server = None
            logger.info("Audio server shut down")
