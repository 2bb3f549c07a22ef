"""Display utilities for theremin visualization."""

from typing import Union, Tuple, Optional, Callable, Iterable, Sequence

import cv2
import numpy as np

from handtheremin.mapping import DFLT_MIN_FREQ, DFLT_MAX_FREQ, x_for_frequency
from handtheremin.util import HAND_CONNECTIONS, HandLandmark, landmark_xy, format_reading

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------

Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]  # BGR or BGRA

BONE_COLOR = (129, 185, 16)  # Emerald
JOINT_COLOR = (68, 68, 239)  # Red
WRIST_COLOR = (246, 130, 59)  # Blue
WHITE = (255, 255, 255)

# -------------------------------------------------------------------------------
# Screen drawing functions
# -------------------------------------------------------------------------------


def to_pixels(point, width, height, *, mirror=False):
    """
    Convert a normalized landmark to pixel coordinates.

    >>> to_pixels((0.25, 0.5), 200, 100)
    (50, 50)
    >>> to_pixels((0.25, 0.5), 200, 100, mirror=True)
    (150, 50)
    """
    x, y = landmark_xy(point)
    if mirror:
        x = 1 - x
    return int(x * width), int(y * height)


def readings_text_lines(readings) -> list:
    """One line of text per hand reading."""
    return [format_reading(r.hand_id, r.frequency, r.volume) for r in readings]


def display_text_lines_on_image(
    img: np.ndarray,
    lines: Sequence[str],
    *,
    font=cv2.FONT_HERSHEY_SIMPLEX,
    font_scale: float = 0.7,
    color: Color = (0, 255, 0),
    thickness: int = 2,
    x_pos=10,
    y_pos=30,
    y_increment=30,
    bg_color: Color = (
        150,
        150,
        150,
        128,
    ),  # Light grey, semi-transparent (BGR + alpha)
):
    """
    Display lines of text on the image with a semi-transparent background.

    Args:
        img: The image to draw on
        lines: The lines of text
        font: Font type to use
        font_scale: Size of the font
        color: Text color in BGR format
        thickness: Line thickness of text
        x_pos: Starting x position for text
        y_pos: Starting y position for text
        y_increment: Vertical space between lines
        bg_color: Background color (BGR + alpha) where alpha is 0-255
    """
    if not lines:
        return img

    overlay = img.copy()

    if len(bg_color) == 4:
        bg_rgb = bg_color[:3]
        alpha = bg_color[3] / 255.0
    else:
        bg_rgb = bg_color
        alpha = 0.5

    padding = 5
    for idx, text in enumerate(lines):
        (text_width, text_height), _ = cv2.getTextSize(
            text, font, font_scale, thickness
        )
        cv2.rectangle(
            overlay,
            (x_pos - padding, y_pos + idx * y_increment - text_height - padding),
            (x_pos + text_width + padding, y_pos + idx * y_increment + padding),
            bg_rgb,
            -1,  # Filled rectangle
        )

    cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)

    for idx, text in enumerate(lines):
        cv2.putText(
            img,
            text,
            (x_pos, y_pos + idx * y_increment),
            font,
            font_scale,
            color,
            thickness,
        )

    return img


def draw_hand_landmarks(img, landmark_sets, *, labels=None, mirror=False):
    """
    Draw the skeleton of each hand, with a highlighted, labeled wrist.

    Args:
        img: The image to draw on
        landmark_sets: One list of normalized landmarks per hand
        labels: Text to show above each wrist (defaults to "Hand 1", "Hand 2"...)
        mirror: Whether the image is a horizontally flipped version of the frame
            the landmarks were detected in

    Returns:
        img: The image with landmarks drawn
    """
    h, w = img.shape[:2]
    if labels is None:
        labels = [f"Hand {i + 1}" for i in range(len(landmark_sets))]
    for landmarks, label in zip(landmark_sets, labels):
        points = [to_pixels(lm, w, h, mirror=mirror) for lm in landmarks]
        for start, end in HAND_CONNECTIONS:
            cv2.line(img, points[start], points[end], BONE_COLOR, 2)
        for idx, point in enumerate(points):
            if idx == HandLandmark.WRIST:
                cv2.circle(img, point, 12, WRIST_COLOR, -1)
                cv2.circle(img, point, 12, WHITE, 3)
                (text_width, _), _ = cv2.getTextSize(
                    label, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 2
                )
                cv2.putText(
                    img,
                    label,
                    (point[0] - text_width // 2, point[1] - 20),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.5,
                    WHITE,
                    2,
                )
            else:
                cv2.circle(img, point, 3, JOINT_COLOR, -1)
    return img


def draw_wrist_lines(img, landmark_sets, *, mirror=False):
    """
    Draws vertical and horizontal lines from the edges of the image to the wrist position.

    Args:
        img: The input image.
        landmark_sets: One list of normalized landmarks per hand
        mirror: Whether the image is horizontally flipped

    Returns:
        img: The image with lines drawn.
    """
    h, w = img.shape[:2]
    for landmarks in landmark_sets:
        cx, cy = to_pixels(landmarks[HandLandmark.WRIST], w, h, mirror=mirror)
        cv2.line(img, (cx, 0), (cx, h), (0, 255, 0), 2)
        cv2.line(img, (0, cy), (w, cy), (0, 255, 0), 2)
    return img


def draw_frequency_markers(
    img,
    frequencies: Iterable[float],
    *,
    min_freq: float = DFLT_MIN_FREQ,
    max_freq: float = DFLT_MAX_FREQ,
    mirror=False,
):
    """
    Draw a dot, along the horizontal middle of the image, where each frequency is
    played. Frequencies outside of the playable range are skipped.
    """
    h, w = img.shape[:2]
    vertical_center = h // 2
    font = cv2.FONT_HERSHEY_SIMPLEX
    font_scale = 0.4
    thickness = 1

    for freq in frequencies:
        x = x_for_frequency(freq, min_freq=min_freq, max_freq=max_freq)
        if not 0 <= x <= 1:
            continue
        x_pos, _ = to_pixels((x, 0.5), w, h, mirror=mirror)
        x_pos = min(x_pos, w - 1)
        cv2.circle(img, (x_pos, vertical_center), 5, (0, 0, 255), -1)

        label = f"{int(round(freq))}"
        (text_width, _), _ = cv2.getTextSize(label, font, font_scale, thickness)
        cv2.putText(
            img,
            label,
            (x_pos - text_width // 2, vertical_center + 20),
            font,
            font_scale,
            (0, 200, 200),
            thickness,
        )
    return img


def draw_on_screen(
    img: np.ndarray,
    landmark_sets,
    readings=(),
    *,
    draw_landmarks: bool = True,
    draw_readings: Optional[Callable] = display_text_lines_on_image,
    draw_frequencies: Optional[Iterable] = None,
    min_freq: float = DFLT_MIN_FREQ,
    max_freq: float = DFLT_MAX_FREQ,
    mirror: bool = True,
):
    """
    Draw hand landmarks, wrist lines, readings and pitch markers on the image.

    Args:
        img: The image to draw on (already flipped if ``mirror``)
        landmark_sets: Landmarks of the hands, in the detector's order
        readings: The ``HandReading`` of each hand, in the same order
        draw_landmarks: Whether to draw hand landmarks
        draw_readings: Function to draw the readings' text lines (or None to skip)
        draw_frequencies: Iterable of frequencies to display as markers on screen
        min_freq, max_freq: Frequency range of the pitch mapping
        mirror: Whether ``img`` is a horizontally flipped camera frame

    Returns:
        img: The image with visualizations added
    """
    if draw_frequencies:
        img = draw_frequency_markers(
            img, draw_frequencies, min_freq=min_freq, max_freq=max_freq, mirror=mirror
        )

    if landmark_sets:
        img = draw_wrist_lines(img, landmark_sets, mirror=mirror)
        if draw_landmarks:
            labels = [f"Hand {r.hand_id + 1}" for r in readings] if readings else None
            img = draw_hand_landmarks(img, landmark_sets, labels=labels, mirror=mirror)

    if draw_readings and readings:
        img = draw_readings(img, readings_text_lines(readings))

    return img
