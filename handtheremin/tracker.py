"""Hand landmark detection, with MediaPipe's HandLandmarker."""

import time

import cv2
import mediapipe as mp

from handtheremin.util import data_files

# Path to the hand landmarker model
hand_landmarker_path = str(data_files / 'hand_landmarker.task')

DFLT_MAX_HANDS = 2
DFLT_MIN_CONFIDENCE = 0.7


class HandTracker:
    """
    Detects hands in video frames with MediaPipe's ``HandLandmarker``.

    Attributes:
        model_path (str): Path of the ``hand_landmarker.task`` model asset.
        max_hands (int): Maximum number of hands to detect.
        min_detection_confidence (float): Minimum hand detection confidence.
        min_presence_confidence (float): Minimum hand presence confidence.
        min_tracking_confidence (float): Minimum tracking confidence.
    """

    def __init__(
        self,
        model_path=hand_landmarker_path,
        *,
        max_hands=DFLT_MAX_HANDS,
        min_detection_confidence=DFLT_MIN_CONFIDENCE,
        min_presence_confidence=DFLT_MIN_CONFIDENCE,
        min_tracking_confidence=DFLT_MIN_CONFIDENCE,
    ):
        self.model_path = model_path
        self.max_hands = max_hands
        self.min_detection_confidence = min_detection_confidence
        self.min_presence_confidence = min_presence_confidence
        self.min_tracking_confidence = min_tracking_confidence

        self.options = mp.tasks.vision.HandLandmarkerOptions(
            base_options=mp.tasks.BaseOptions(model_asset_path=str(model_path)),
            running_mode=mp.tasks.vision.RunningMode.VIDEO,
            num_hands=max_hands,
            min_hand_detection_confidence=min_detection_confidence,
            min_hand_presence_confidence=min_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self.landmarker = mp.tasks.vision.HandLandmarker.create_from_options(
            self.options
        )
        self._last_timestamp_ms = -1

    def find_hands(self, img, timestamp_ms=None):
        """
        Detects hands in the provided (BGR) image.

        Args:
            img: The input image.
            timestamp_ms: Time of the frame. Defaults to the current time.

        Returns:
            list: One list of 21 normalized landmarks per detected hand.
        """
        if timestamp_ms is None:
            timestamp_ms = int(time.monotonic() * 1000)
        # video mode requires strictly increasing timestamps
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        img_rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=img_rgb)
        result = self.landmarker.detect_for_video(mp_image, timestamp_ms)
        return list(result.hand_landmarks)

    def close(self):
        self.landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
