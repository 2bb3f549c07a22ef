import pytest

from conftest import FakeBackend, make_hand
from handtheremin.frames import HandReading, ThereminFrameProcessor
from handtheremin.hand_features import (
    HandObservation,
    NearestNeighborHandIds,
    hand_observations,
)
from handtheremin.voices import VoiceManager, VoiceState


def obs(hand_id, x=0.5, z=0.5):
    return HandObservation(hand_id, x, 0.5, z)


@pytest.fixture
def processor(voices):
    return ThereminFrameProcessor(voices)


def test_readings_carry_signals_and_sound_parameters(processor):
    (reading,) = processor.process([obs(3, x=0.5, z=0.5)])
    assert isinstance(reading, HandReading)
    assert (reading.hand_id, reading.x, reading.y, reading.z) == (3, 0.5, 0.5, 0.5)
    assert reading.frequency == pytest.approx(632.4555, abs=1e-3)
    assert reading.volume == pytest.approx(0.2)
    assert processor.readings == [reading]


@pytest.mark.parametrize('x, expected_freq', [(1.0, 200), (0.0, 2000)])
def test_position_to_frequency_end_to_end(backend, processor, x, expected_freq):
    landmark_sets = [make_hand(x=x)]
    (reading,) = processor.process(hand_observations(landmark_sets))
    assert reading.frequency == pytest.approx(expected_freq)
    assert backend.generators[0].freq == pytest.approx(expected_freq)


def test_hand_present_three_frames_then_absent(backend, voices, processor):
    for _ in range(3):
        processor.process([obs(0, x=0.3)])
        backend.advance(1 / 30)
    generator = backend.generators[0]
    assert len(backend.generators) == 1  # created at frame 1, updated at frames 2-3
    assert [c[0] for c in generator.calls] == ['freq', 'gain'] * 3

    processor.process([])  # frame 4: fade-out triggered
    assert voices.state(0) is VoiceState.FADING_OUT
    assert processor.active_hand_ids == frozenset()

    backend.advance(0.149)
    assert 0 in voices  # never earlier than the fade window
    backend.advance(0.001)
    assert 0 not in voices
    assert generator.stop_count == 1


def test_active_hand_ids_track_the_latest_frame(processor):
    frames = [[obs(0)], [obs(0), obs(1)], [obs(1)], [], [obs(2)]]
    for frame in frames:
        processor.process(frame)
        assert processor.active_hand_ids == {o.hand_id for o in frame}


def test_only_vanished_hands_are_retired(voices, processor):
    processor.process([obs(0), obs(1)])
    processor.process([obs(1)])
    assert voices.state(0) is VoiceState.FADING_OUT
    assert voices.state(1) is VoiceState.ACTIVE


def test_two_hands_get_two_independent_voices(backend, voices, processor):
    processor.process([obs(0, x=0.1, z=0.2), obs(1, x=0.9, z=0.9)])
    assert len(backend.generators) == 2
    v0, v1 = voices.get(0), voices.get(1)
    assert v0.frequency > v1.frequency
    assert v0.gain < v1.gain

    processor.process([obs(0, x=0.5, z=0.5), obs(1, x=0.9, z=0.9)])
    assert voices.get(1).frequency == pytest.approx(v1.frequency)
    assert voices.get(1).gain == pytest.approx(v1.gain)


def test_no_audio_until_initialized():
    backend = FakeBackend(initialized=False)
    processor = ThereminFrameProcessor(VoiceManager(backend))

    readings = processor.process([obs(0)])
    assert len(readings) == 1  # still produced, for display
    assert backend.generators == []

    backend.initialize()
    processor.process([obs(0)])
    assert len(backend.generators) == 1


def test_display_only_processor():
    processor = ThereminFrameProcessor()
    assert not processor.audio_ready
    processor.process([obs(0)])
    readings = processor.process([])
    assert readings == []
    assert processor.active_hand_ids == frozenset()


def test_freq_trans_is_applied(backend, processor):
    processor.freq_trans = round
    (reading,) = processor.process([obs(0, x=0.5)])
    assert reading.frequency == 632
    assert backend.generators[0].freq == 632


def test_volume_convention(voices):
    processor = ThereminFrameProcessor(voices, volume_convention='closer_quieter')
    (reading,) = processor.process([obs(0, z=0.0)])
    assert reading.volume == pytest.approx(0.4)

    with pytest.raises(ValueError):
        ThereminFrameProcessor(voices, volume_convention='sideways')


def test_stop_silences_everything_and_forgets_hands(backend, voices, processor):
    processor.process([obs(0), obs(1)])
    processor.process([obs(1)])  # hand 0 is fading

    processor.stop()

    assert len(voices) == 0
    assert [g.stop_count for g in backend.generators] == [1, 1]
    assert processor.active_hand_ids == frozenset()
    assert processor.readings == []

    # a hand seen after a stop starts a fresh voice
    processor.process([obs(1)])
    assert len(backend.generators) == 3


def test_detection_dropout_revives_the_fading_voice(backend, voices, processor):
    hand_ids = NearestNeighborHandIds()
    frames = [[make_hand(0.4)], [], [make_hand(0.41)]]
    for landmark_sets in frames:
        processor.process(hand_observations(landmark_sets, hand_ids=hand_ids))
        backend.advance(1 / 30)

    assert len(backend.generators) == 1
    assert voices.state(0) is VoiceState.ACTIVE
    assert backend.pending_timers == []
    assert processor.active_hand_ids == frozenset({0})

    backend.advance(1)
    assert backend.generators[0].stop_count == 0
