"""Shared fixtures: a fake audio backend with a manual clock, and hand builders."""

import pytest

from handtheremin.audio import AudioBackend
from handtheremin.voices import VoiceManager


class FakeGenerator:
    def __init__(self, freq, gain):
        self.freq = freq
        self.gain = gain
        self.calls = []
        self.stop_count = 0
        self.fail = False

    def set_frequency(self, value, ramp):
        if self.fail:
            raise RuntimeError("generator is broken")
        self.calls.append(('freq', value, ramp))
        self.freq = value

    def set_gain(self, value, ramp):
        if self.fail:
            raise RuntimeError("generator is broken")
        self.calls.append(('gain', value, ramp))
        self.gain = value

    def stop(self):
        self.stop_count += 1
        if self.fail:
            raise RuntimeError("generator is broken")


class FakeTimer:
    def __init__(self, when, func):
        self.when = when
        self.func = func
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeBackend(AudioBackend):
    """Records what's asked of it. Deferred calls run when the clock is advanced."""

    def __init__(self, initialized=True):
        self._initialized = initialized
        self.time = 0.0
        self.generators = []
        self.timers = []
        self.fail_create = False

    @property
    def is_initialized(self):
        return self._initialized

    def initialize(self):
        self._initialized = True

    def create_generator(self, freq=440, gain=0.0):
        if self.fail_create:
            raise RuntimeError("no audio output")
        generator = FakeGenerator(freq, gain)
        self.generators.append(generator)
        return generator

    def call_later(self, delay, func):
        timer = FakeTimer(self.time + delay, func)
        self.timers.append(timer)
        return timer

    def now(self):
        return self.time

    def advance(self, seconds):
        self.time += seconds
        due = sorted(
            (t for t in self.timers if not (t.cancelled or t.fired)),
            key=lambda t: t.when,
        )
        for timer in due:
            # small tolerance, for float sums of durations
            if timer.when <= self.time + 1e-9:
                timer.fired = True
                timer.func()

    @property
    def pending_timers(self):
        return [t for t in self.timers if not (t.cancelled or t.fired)]


def make_hand(x=0.5, y=0.5, width=0.05):
    """21 landmarks with the wrist at (x, y) and thumb and pinky tips ``width`` apart."""
    landmarks = [(x, y, 0.0)] * 21
    landmarks[4] = (x - width / 2, y - 0.1, 0.0)
    landmarks[20] = (x + width / 2, y - 0.1, 0.0)
    return landmarks


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def voices(backend):
    return VoiceManager(backend)
