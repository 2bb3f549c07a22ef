"""Hand signal extraction: from landmark geometry to normalized control signals."""

import itertools
import math
from typing import List, NamedTuple, Sequence, Callable, Iterable

from handtheremin.util import HandLandmark, N_HAND_LANDMARKS, landmark_xy

# Apparent hand width (thumb tip to pinky tip) is multiplied by this to get z,
# so that a typical close-up hand saturates to 1.
DFLT_Z_SCALE = 8
DFLT_MAX_MATCH_DISTANCE = 0.25
# About the release time of a voice (0.15 s), at 30 frames per second
DFLT_MAX_MISSING_FRAMES = 5


class MalformedHandError(ValueError):
    """Raised when a hand doesn't come with the expected landmarks."""


class HandObservation(NamedTuple):
    """The control signals of one hand, for one frame."""

    hand_id: int
    x: float
    y: float
    z: float


# -------------------------------------------------------------------------------
# Signal extraction
# -------------------------------------------------------------------------------


def extract_signals(landmarks: Sequence, *, z_scale: float = DFLT_Z_SCALE):
    """
    Extract the normalized ``(x, y, z)`` of a hand from its landmarks.

    ``x`` and ``y`` are those of the wrist. ``z`` is a proxy of closeness to the
    camera (0 = far, 1 = close): the horizontal thumb-to-pinky span, scaled and
    capped to 1.

    >>> hand = [(0.5, 0.6, 0.0)] * 21
    >>> hand[4], hand[20] = (0.40, 0.5, 0.0), (0.45, 0.5, 0.0)
    >>> x, y, z = extract_signals(hand)
    >>> (x, y, round(z, 6))
    (0.5, 0.6, 0.4)
    """
    if len(landmarks) < N_HAND_LANDMARKS:
        raise MalformedHandError(
            f"Expected {N_HAND_LANDMARKS} landmarks, got {len(landmarks)}"
        )
    x, y = landmark_xy(landmarks[HandLandmark.WRIST])
    thumb_x, _ = landmark_xy(landmarks[HandLandmark.THUMB_TIP])
    pinky_x, _ = landmark_xy(landmarks[HandLandmark.PINKY_TIP])
    z = min(abs(thumb_x - pinky_x) * z_scale, 1)
    return x, y, z


# -------------------------------------------------------------------------------
# Hand identification
# -------------------------------------------------------------------------------


def index_hand_ids(landmark_sets: Sequence[Sequence]) -> List[int]:
    """
    Use the position of each hand in the detector's result as its id.

    Only stable as long as the number of hands and the detector's ordering stay
    the same: a hand leaving while another one enters can swap ids.

    >>> index_hand_ids([[], []])
    [0, 1]
    """
    return list(range(len(landmark_sets)))


class NearestNeighborHandIds:
    """
    Give hands ids that persist across frames by matching wrist positions.

    Each hand of the current frame keeps the id of the closest (unclaimed) wrist
    seen recently, if it's within ``max_distance`` (in normalized image units).
    Other hands get a fresh id; ids are never reused.

    A hand that isn't detected stays a match candidate, at its last position,
    for ``max_missing_frames`` frames. That way a detection dropout shorter than
    a voice's release brings the hand back under the same id.

    >>> hand_ids = NearestNeighborHandIds(max_missing_frames=2)
    >>> left, right = [(0.2, 0.5)] * 21, [(0.8, 0.5)] * 21
    >>> hand_ids([left, right])
    [0, 1]
    >>> hand_ids([right, left])  # detector swapped the order
    [1, 0]
    >>> hand_ids([right])
    [1]
    >>> hand_ids([left, right])  # the left hand was only missed for a frame
    [0, 1]
    >>> for _ in range(3): _ = hand_ids([right])
    >>> hand_ids([left, right])  # missed for too long: it's a new hand
    [2, 1]
    """

    def __init__(
        self,
        max_distance: float = DFLT_MAX_MATCH_DISTANCE,
        max_missing_frames: int = DFLT_MAX_MISSING_FRAMES,
    ):
        self.max_distance = max_distance
        self.max_missing_frames = max_missing_frames
        self._previous = {}  # hand_id -> (wrist (x, y), frames since last seen)
        self._new_ids = itertools.count()

    def __call__(self, landmark_sets: Sequence[Sequence]) -> List[int]:
        wrists = [landmark_xy(lms[HandLandmark.WRIST]) for lms in landmark_sets]
        candidates = sorted(
            (math.dist(wrist, prev_wrist), i, hand_id)
            for i, wrist in enumerate(wrists)
            for hand_id, (prev_wrist, _) in self._previous.items()
        )
        ids = [None] * len(wrists)
        claimed = set()
        for distance, i, hand_id in candidates:
            if distance > self.max_distance:
                break
            if ids[i] is None and hand_id not in claimed:
                ids[i] = hand_id
                claimed.add(hand_id)
        ids = [next(self._new_ids) if hand_id is None else hand_id for hand_id in ids]
        missing = {
            hand_id: (wrist, n_missing + 1)
            for hand_id, (wrist, n_missing) in self._previous.items()
            if hand_id not in claimed and n_missing < self.max_missing_frames
        }
        self._previous = {hand_id: (wrist, 0) for hand_id, wrist in zip(ids, wrists)}
        self._previous.update(missing)
        return ids

    def reset(self):
        """Forget the hands seen so far (ids keep increasing)."""
        self._previous = {}


hand_id_funcs = {
    'index': index_hand_ids,
    'nearest': NearestNeighborHandIds,
}


def hand_observations(
    landmark_sets: Iterable[Sequence],
    *,
    hand_ids: Callable = index_hand_ids,
    z_scale: float = DFLT_Z_SCALE,
) -> List[HandObservation]:
    """
    Extract the observations of all the hands detected in a frame.

    Args:
        landmark_sets: One landmark list (of 21 points) per detected hand
        hand_ids: Function giving the list of ids of the hands in a frame
        z_scale: Factor applied to the thumb-to-pinky span to get z

    Returns:
        list: One ``HandObservation`` per hand, in the detector's order
    """
    landmark_sets = list(landmark_sets)
    # extract first, so malformed hands are reported before any id is assigned
    signals = [extract_signals(lms, z_scale=z_scale) for lms in landmark_sets]
    return [
        HandObservation(hand_id, *xyz)
        for hand_id, xyz in zip(hand_ids(landmark_sets), signals)
    ]
