"""Utility functions for running the theremin scripts."""

import json
import logging
import time
from functools import partial
from typing import Union, Callable, Dict, Optional, Any, TypeVar

import cv2
from hum.util import scale_snapper, scale_frequencies, return_none as do_nothing
from i2 import Sig

from handtheremin.audio import AudioBackend, AudioInitError
from handtheremin.pyo_audio import PyoBackend
from handtheremin.display import draw_on_screen as DFLT_DRAW_ON_SCREEN
from handtheremin.frames import ThereminFrameProcessor
from handtheremin.hand_features import hand_id_funcs, hand_observations
from handtheremin.mapping import (
    DFLT_MAX_FREQ,
    DFLT_MAX_VOLUME,
    DFLT_MIN_FREQ,
    DFLT_VOLUME_CONVENTION,
    volume_conventions,
)
from handtheremin.tracker import HandTracker, hand_landmarker_path
from handtheremin.voices import DFLT_ON_REAPPEAR, VoiceManager

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------
# Object resolution
# -------------------------------------------------------------------------------

T = TypeVar('T')


def resolve_object(
    obj: Union[str, T],
    *,
    object_map: Dict[str, T],
    expected_type: type = None,
    error_message: str = None,
) -> T:
    """
    Resolves an object by either returning it directly if it's of the correct type,
    or looking it up in a mapping if it's a string.

    Args:
        obj: The object to resolve. Can be a string (to be looked up in object_map)
             or the object itself (if it's already of type T).
        object_map: A dictionary mapping strings to objects of type T.
        expected_type: (Optional) The expected type of the resolved object.
        error_message: (Optional) A custom error message to use if a ValueError
                       or TypeError is raised. If None, a default message is used.

    Returns:
        The resolved object of type T.

    Raises:
        TypeError: If obj (or what it resolves to) is not of the expected type.
        ValueError: If obj is a string but is not found in object_map.
    """
    if isinstance(obj, str):
        if obj in object_map:
            resolved_obj = object_map[obj]
        else:
            msg = error_message or f"Unknown object identifier: {obj}"
            raise ValueError(msg)
    elif expected_type is None or isinstance(obj, expected_type):
        resolved_obj = obj
    else:
        msg = error_message or f"Expected type {expected_type}, got {type(obj)}"
        raise TypeError(msg)

    if expected_type and not isinstance(resolved_obj, expected_type):
        msg = (
            error_message
            or f"Resolved object should be of type {expected_type}, got {type(resolved_obj)}"
        )
        raise TypeError(msg)

    return resolved_obj


def resolve_hand_ids(hand_ids) -> Callable:
    """
    Get a hand id function from a name of ``hand_id_funcs``, or a callable.

    Classes (like ``NearestNeighborHandIds``) are instantiated, since their
    instances hold the state of the previous frame.
    """
    hand_ids = resolve_object(hand_ids, object_map=hand_id_funcs)
    if isinstance(hand_ids, type):
        hand_ids = hand_ids()
    return hand_ids


# -------------------------------------------------------------------------------
# Logging utilities
# -------------------------------------------------------------------------------


def print_json_if_possible(x):
    """Prints the input (as json, if possible) and adds a newline."""
    try:
        x = json.dumps(x)
    except (TypeError, ValueError):
        pass
    print(x)
    print()


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# -------------------------------------------------------------------------------
# Keyboard handling functions
# -------------------------------------------------------------------------------

ESCAPE_KEY_ASCII = 27
BREAK_KEYS = {ESCAPE_KEY_ASCII, ord('q')}


class KeyboardBreakSignal(Exception):
    """Exception raised when a break key is pressed."""


def read_keyboard(wait_time: int = 5) -> int:
    """
    Read keyboard input with the specified wait time.

    Args:
        wait_time: Time to wait for keyboard input in milliseconds

    Returns:
        The key code or 0 if no key was pressed
    """
    return cv2.waitKey(wait_time) & 0xFF


def keyboard_feature_vector(key_code: int) -> Dict[str, Any]:
    """
    Convert a key code into a feature vector with keyboard information.

    Raises:
        KeyboardBreakSignal: If a key that signals program termination is pressed
    """
    keyboard_fv = {
        'key_code': key_code,
        'key_pressed': 0 < key_code < 255,
        'is_escape': key_code == ESCAPE_KEY_ASCII,
        'timestamp': time.time(),
    }

    if keyboard_fv['key_code'] in BREAK_KEYS:
        raise KeyboardBreakSignal(f"Break key pressed: {key_code}")

    return keyboard_fv


# -------------------------------------------------------------------------------
# Camera handling functions
# -------------------------------------------------------------------------------


class CameraReadError(Exception):
    """Exception raised when camera read fails."""


def read_camera(cap: cv2.VideoCapture) -> Any:
    """
    Read a frame from the camera.

    The frame is returned as captured (not mirrored): hand positions are
    computed in camera coordinates, and only the display is flipped.

    Raises:
        CameraReadError: If the camera read operation fails
    """
    success, img = cap.read()
    if not success:
        raise CameraReadError("Failed to read from camera")
    return img


# -------------------------------------------------------------------------------
# Main run function
# -------------------------------------------------------------------------------

DFLT_HAND_IDS = 'nearest'
DFLT_WINDOW_NAME = 'Hand Theremin'

C_MAJOR_SCALE = (0, 2, 4, 5, 7, 9, 11)


def scale_markers(*, min_freq=DFLT_MIN_FREQ, max_freq=DFLT_MAX_FREQ):
    """The scale frequencies that are within the playable range."""
    return [freq for freq in scale_frequencies() if min_freq <= freq <= max_freq]


def run_theremin(
    *,
    hand_ids: Union[str, Callable] = DFLT_HAND_IDS,
    min_freq: float = DFLT_MIN_FREQ,
    max_freq: float = DFLT_MAX_FREQ,
    max_volume: float = DFLT_MAX_VOLUME,
    volume_convention: str = DFLT_VOLUME_CONVENTION,
    on_reappear: str = DFLT_ON_REAPPEAR,
    snap_to_scale: bool = False,
    audio: Union[bool, AudioBackend] = True,
    model_path: str = hand_landmarker_path,
    camera_index: int = 0,
    log_readings: Optional[Callable] = None,
    window_name: str = DFLT_WINDOW_NAME,
    draw_on_screen: Optional[Callable] = DFLT_DRAW_ON_SCREEN,
):
    """
    Run the hand theremin application.

    Args:
        hand_ids: Hand id function, or name of one of ``hand_id_funcs``
        min_freq, max_freq: Frequency range (Hz) of the pitch mapping
        max_volume: Gain of a voice at its loudest
        volume_convention: Name of one of ``mapping.volume_conventions``
        on_reappear: What to do when a fading hand comes back ('revive' or 'restart')
        snap_to_scale: Whether to snap frequencies to the C major scale
        audio: False for display only, True for the default (pyo) backend, or a backend
        model_path: Path of the MediaPipe hand landmarker model
        camera_index: Index of the camera to capture from
        log_readings: Function to log each frame's readings (or None to disable)
        window_name: Title for the display window
        draw_on_screen: Function drawing on the (mirrored) frame, or None
    """
    hand_ids = resolve_hand_ids(hand_ids)
    log_readings = log_readings or do_nothing

    if audio:
        backend = audio if isinstance(audio, AudioBackend) else PyoBackend()
        voices = VoiceManager(backend, on_reappear=on_reappear)
    else:
        backend = voices = None

    processor = ThereminFrameProcessor(
        voices,
        min_freq=min_freq,
        max_freq=max_freq,
        max_volume=max_volume,
        volume_convention=volume_convention,
        freq_trans=scale_snapper(scale=C_MAJOR_SCALE) if snap_to_scale else None,
    )
    if draw_on_screen is DFLT_DRAW_ON_SCREEN:
        draw_on_screen = partial(
            DFLT_DRAW_ON_SCREEN,
            draw_frequencies=scale_markers(min_freq=min_freq, max_freq=max_freq),
            min_freq=min_freq,
            max_freq=max_freq,
        )

    tracker = None
    cap = None
    try:
        tracker = HandTracker(model_path)
        cap = cv2.VideoCapture(camera_index)
        if backend is not None:
            try:
                backend.initialize()
            except AudioInitError as e:
                logger.warning("No audio, running display-only: %s", e)
        logger.info("Theremin started (audio: %s)", processor.audio_ready)

        while cap.isOpened():
            try:
                # Not using the keyboard features (yet), but this handles break keys
                keyboard_feature_vector(read_keyboard())

                img = read_camera(cap)
                landmark_sets = tracker.find_hands(img)
                observations = hand_observations(landmark_sets, hand_ids=hand_ids)
                readings = processor.process(observations)
                log_readings([r._asdict() for r in readings])

                img = cv2.flip(img, 1)
                if draw_on_screen:
                    img = draw_on_screen(img, landmark_sets, readings)
                cv2.imshow(window_name, img)

            except (CameraReadError, KeyboardBreakSignal):
                break

    finally:
        processor.stop()
        if backend is not None:
            backend.close()
        if tracker is not None:
            tracker.close()
        if cap is not None:
            cap.release()
        cv2.destroyAllWindows()


def _print_registry(title, registry):
    print(title)
    for name in sorted(registry):
        print(f"  - {name}{Sig(registry[name])}")


def theremin_cli(
    # Mapping
    min_freq: float = DFLT_MIN_FREQ,
    max_freq: float = DFLT_MAX_FREQ,
    max_volume: float = DFLT_MAX_VOLUME,
    volume_convention: str = DFLT_VOLUME_CONVENTION,
    snap_to_scale: bool = False,
    # Hands and voices
    hand_ids: str = DFLT_HAND_IDS,
    on_reappear: str = DFLT_ON_REAPPEAR,
    # Input and output
    model_path: str = hand_landmarker_path,
    camera_index: int = 0,
    no_audio: bool = False,
    window_name: str = DFLT_WINDOW_NAME,
    # Logging options
    log_readings: bool = False,
    verbose: bool = False,
    # List available components
    list_hand_ids: bool = False,
    list_volume_conventions: bool = False,
):
    """
    Run the hand theremin with the specified parameters.

    Args:
        min_freq: Lowest frequency (Hz), played with the hand on the far left
        max_freq: Highest frequency (Hz), played with the hand on the far right
        max_volume: Gain of a voice at its loudest
        volume_convention: How closeness maps to volume (see --list-volume-conventions)
        snap_to_scale: Snap frequencies to the C major scale
        hand_ids: How hands are identified across frames (see --list-hand-ids)
        on_reappear: What to do when a fading hand comes back: 'revive' or 'restart'
        model_path: Path of the MediaPipe hand_landmarker.task model
        camera_index: Index of the camera to use
        no_audio: Only display, don't make sound
        window_name: Title for the display window
        log_readings: Print the readings of every frame
        verbose: Log debug messages
        list_hand_ids: List available hand id functions and exit
        list_volume_conventions: List available volume conventions and exit
    """
    if list_hand_ids:
        _print_registry("Available hand id functions:", hand_id_funcs)
        return

    if list_volume_conventions:
        _print_registry("Available volume conventions:", volume_conventions)
        return

    configure_logging(verbose)

    run_theremin(
        hand_ids=hand_ids,
        min_freq=min_freq,
        max_freq=max_freq,
        max_volume=max_volume,
        volume_convention=volume_convention,
        on_reappear=on_reappear,
        snap_to_scale=snap_to_scale,
        audio=not no_audio,
        model_path=model_path,
        camera_index=camera_index,
        log_readings=print_json_if_possible if log_readings else None,
        window_name=window_name,
    )


def dispatched_theremin_cli():
    import argh

    argh.dispatch_command(theremin_cli)
