"""Utils for handtheremin."""

from importlib.resources import files

pkg_name = 'handtheremin'
data_files = files(pkg_name) / 'data'


# --------------------------------------------------------------------------------------
# Constants


class HandLandmark:
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


N_HAND_LANDMARKS = 21

# Bones of the hand skeleton, as pairs of landmark indices
HAND_CONNECTIONS = (
    # Thumb
    (0, 1), (1, 2), (2, 3), (3, 4),
    # Index
    (0, 5), (5, 6), (6, 7), (7, 8),
    # Middle
    (0, 9), (9, 10), (10, 11), (11, 12),
    # Ring
    (0, 13), (13, 14), (14, 15), (15, 16),
    # Pinky
    (0, 17), (17, 18), (18, 19), (19, 20),
    # Palm
    (5, 9), (9, 13), (13, 17),
)


def landmark_xy(point):
    """
    Get the ``(x, y)`` of a landmark point.

    Works with objects having ``x`` and ``y`` attributes (like mediapipe's
    ``NormalizedLandmark``) as well as with plain sequences.

    >>> landmark_xy((0.1, 0.2, -0.05))
    (0.1, 0.2)
    """
    if hasattr(point, 'x'):
        return point.x, point.y
    return point[0], point[1]


# --------------------------------------------------------------------------------------
# String utils


def format_reading(hand_id, frequency, volume, *, label_width=8, value_width=8):
    """
    Format a hand's pitch and volume for display.

    >>> format_reading(0, 632.4555, 0.2)
    'Hand 1   freq=   632.5 vol=    0.20'
    """
    label = f"Hand {hand_id + 1}"
    return (
        f"{label:<{label_width}} freq={frequency:>{value_width}.1f}"
        f" vol={volume:>{value_width}.2f}"
    )
