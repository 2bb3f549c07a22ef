import logging

import pytest

from conftest import FakeBackend
from handtheremin.voices import VoiceManager, VoiceState


def test_first_update_creates_a_silent_voice_then_ramps_to_target(backend, voices):
    voice = voices.update(0, 880, 0.2)

    assert len(backend.generators) == 1
    generator = backend.generators[0]
    assert voice.generator is generator
    assert voices.state(0) is VoiceState.ACTIVE
    assert (voice.frequency, voice.gain) == (880, 0.2)
    assert generator.calls == [('freq', 880, 0.05), ('gain', 0.2, 0.05)]


def test_later_updates_reuse_the_voice(backend, voices):
    voices.update(0, 440, 0.1)
    voices.update(0, 500, 0.2)
    voices.update(0, 600, 0.3)

    assert len(backend.generators) == 1
    assert len(voices) == 1
    assert voices.get(0).frequency == 600
    assert backend.generators[0].calls[-2:] == [('freq', 600, 0.05), ('gain', 0.3, 0.05)]


def test_targets_are_floored(backend, voices):
    voice = voices.update(0, 5, 0.0)
    assert voice.frequency == 20
    assert voice.gain == 0.001
    assert backend.generators[0].freq == 20
    assert backend.generators[0].gain == 0.001


def test_floors_are_configurable(backend):
    voices = VoiceManager(backend, freq_floor=50, gain_floor=0.01)
    voice = voices.update(0, 5, 0.0)
    assert (voice.frequency, voice.gain) == (50, 0.01)
    voices.retire(0)
    assert backend.generators[0].gain == 0.01


def test_retire_fades_out_then_releases_on_schedule(backend, voices):
    voices.update(0, 440, 0.3)
    generator = backend.generators[0]

    assert voices.retire(0) is True
    assert voices.state(0) is VoiceState.FADING_OUT
    assert generator.calls[-1] == ('gain', 0.001, 0.1)

    backend.advance(0.1)
    assert 0 in voices  # still fading
    backend.advance(0.049)
    assert 0 in voices
    assert generator.stop_count == 0

    backend.advance(0.001)
    assert 0 not in voices
    assert voices.state(0) is None
    assert generator.stop_count == 1


def test_retire_is_idempotent(backend, voices):
    voices.update(0, 440, 0.3)
    assert voices.retire(0) is True
    assert voices.retire(0) is False  # already fading
    assert len(backend.pending_timers) == 1

    backend.advance(0.2)
    assert voices.retire(0) is False  # already gone
    assert voices.retire(42) is False  # never existed
    assert backend.generators[0].stop_count == 1


def test_reappearing_hand_revives_its_fading_voice(backend, voices):
    voices.update(0, 440, 0.3)
    voices.retire(0)
    backend.advance(0.05)

    voice = voices.update(0, 660, 0.3)

    assert len(backend.generators) == 1
    assert voice.generator is backend.generators[0]
    assert voices.state(0) is VoiceState.ACTIVE
    assert backend.pending_timers == []

    backend.advance(1)
    assert 0 in voices
    assert backend.generators[0].stop_count == 0


def test_revived_then_retired_voice_is_released_on_the_new_schedule(backend, voices):
    voices.update(0, 440, 0.3)
    voices.retire(0)
    backend.advance(0.1)
    voices.update(0, 440, 0.3)
    voices.retire(0)

    backend.advance(0.1)  # the first schedule would have fired by now
    assert 0 in voices
    backend.advance(0.05)
    assert 0 not in voices
    assert backend.generators[0].stop_count == 1


def test_reappearing_hand_restarts_with_a_new_voice():
    backend = FakeBackend()
    voices = VoiceManager(backend, on_reappear='restart')
    voices.update(0, 440, 0.3)
    voices.retire(0)
    backend.advance(0.05)

    voice = voices.update(0, 660, 0.3)

    old, new = backend.generators
    assert voice.generator is new
    assert voices.state(0) is VoiceState.ACTIVE
    assert len(voices) == 1  # at most one voice per hand
    assert [v.generator for v in voices.detached] == [old]

    backend.advance(0.1)  # the old voice is released on its original schedule
    assert old.stop_count == 1
    assert voices.detached == ()
    assert new.stop_count == 0
    assert voices.get(0).generator is new


def test_two_hands_are_independent(backend, voices):
    voices.update(0, 300, 0.1)
    voices.update(1, 900, 0.3)
    first, second = backend.generators
    second_calls = list(second.calls)

    voices.update(0, 350, 0.2)
    voices.retire(0)

    assert second.calls == second_calls
    assert voices.get(1).frequency == 900
    assert voices.get(1).gain == 0.3
    assert voices.state(1) is VoiceState.ACTIVE

    backend.advance(0.15)
    assert voices.hand_ids == {1}
    assert second.stop_count == 0


def test_shutdown_stops_everything_immediately(backend, voices):
    voices.update(0, 300, 0.1)
    voices.update(1, 900, 0.3)
    voices.retire(1)

    voices.shutdown()

    assert len(voices) == 0
    assert [g.stop_count for g in backend.generators] == [1, 1]
    assert backend.pending_timers == []

    # nothing is stopped twice, and shutting down again is harmless
    backend.advance(1)
    voices.shutdown()
    assert [g.stop_count for g in backend.generators] == [1, 1]


def test_shutdown_stops_detached_voices():
    backend = FakeBackend()
    voices = VoiceManager(backend, on_reappear='restart')
    voices.update(0, 440, 0.3)
    voices.retire(0)
    voices.update(0, 440, 0.3)

    voices.shutdown()

    assert [g.stop_count for g in backend.generators] == [1, 1]
    assert voices.detached == ()


def test_generator_creation_failure_is_logged_and_retried(backend, voices, caplog):
    backend.fail_create = True
    with caplog.at_level(logging.ERROR):
        assert voices.update(0, 440, 0.2) is None
    assert 'Could not create voice for hand 0' in caplog.text
    assert 0 not in voices

    backend.fail_create = False
    assert voices.update(0, 440, 0.2) is not None
    assert 0 in voices


def test_failing_update_keeps_previous_values_and_spares_other_hands(
    backend, voices, caplog
):
    voices.update(0, 440, 0.2)
    voices.update(1, 880, 0.2)
    backend.generators[0].fail = True

    with caplog.at_level(logging.ERROR):
        voices.update(0, 500, 0.3)
        voices.update(1, 990, 0.3)

    assert 'Could not update voice of hand 0' in caplog.text
    assert (voices.get(0).frequency, voices.get(0).gain) == (440, 0.2)
    assert (voices.get(1).frequency, voices.get(1).gain) == (990, 0.3)


def test_failing_stop_still_releases_the_voice(backend, voices, caplog):
    voices.update(0, 440, 0.2)
    backend.generators[0].fail = True

    with caplog.at_level(logging.ERROR):
        voices.retire(0)
        backend.advance(0.15)

    assert 0 not in voices
    assert 'Could not stop voice of hand 0' in caplog.text


def test_audio_ready_follows_backend():
    backend = FakeBackend(initialized=False)
    voices = VoiceManager(backend)
    assert not voices.audio_ready
    backend.initialize()
    assert voices.audio_ready


def test_invalid_settings():
    with pytest.raises(ValueError):
        VoiceManager(FakeBackend(), on_reappear='resurrect')
    with pytest.raises(ValueError):
        VoiceManager(FakeBackend(), fade_time=0.2, teardown_delay=0.1)
