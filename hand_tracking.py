"""Webcam hand tracking (MediaPipe) used as an alternative pointer source."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from pointer import PointerState, normalize

log = logging.getLogger(__name__)

PINCH_SPAN_PX = 160.0


@dataclass
class HandInfo:
    index_tip: tuple[int, int]
    pinch_strength: float
    velocity: tuple[float, float]
    handedness: str

    def to_pointer(self, width: int, height: int, pinch_threshold: float = 0.5) -> PointerState:
        """Index fingertip as the pointer; pinching thumb and index presses it."""
        x, y = normalize(self.index_tip[0], self.index_tip[1], width, height)
        return PointerState(
            x=x,
            y=y,
            vx=self.velocity[0],
            vy=-self.velocity[1],
            pressed=self.pinch_strength >= pinch_threshold,
        )


class HandTracker:
    def __init__(self, max_hands: int = 1, cutoff_hz: float = 10.0) -> None:
        import mediapipe as mp

        self._solution = mp.solutions.hands
        self._hands = self._solution.Hands(
            static_image_mode=False,
            max_num_hands=max_hands,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5,
        )
        self._cutoff = cutoff_hz
        self._reset()

    def _reset(self) -> None:
        self._smoothed_tip: Optional[np.ndarray] = None
        self._last_tip: Optional[np.ndarray] = None
        self._pinch_lp = 0.0
        self._last_time: Optional[float] = None

    def close(self) -> None:
        self._hands.close()

    def _elapsed(self) -> float:
        now = time.perf_counter()
        dt = 1 / 30 if self._last_time is None else max(1e-3, now - self._last_time)
        self._last_time = now
        return dt

    def _smooth(self, tip: np.ndarray, dt: float) -> np.ndarray:
        if self._smoothed_tip is None:
            self._smoothed_tip = tip.copy()
        else:
            alpha = 1 - np.exp(-dt * self._cutoff)
            self._smoothed_tip = (1 - alpha) * self._smoothed_tip + alpha * tip

        if self._last_tip is None:
            velocity = np.zeros(2, dtype=np.float32)
        else:
            velocity = (self._smoothed_tip - self._last_tip) / dt
        self._last_tip = self._smoothed_tip.copy()
        return velocity

    def detect(self, frame: np.ndarray) -> Optional[HandInfo]:
        results = self._hands.process(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        if not results.multi_hand_landmarks:
            if self._last_tip is not None:
                log.debug("Hand lost")
            self._reset()
            return None

        landmarks = results.multi_hand_landmarks[0].landmark
        handedness = (
            results.multi_handedness[0].classification[0].label
            if results.multi_handedness
            else "unknown"
        )
        h, w = frame.shape[:2]
        index_tip = landmarks[self._solution.HandLandmark.INDEX_FINGER_TIP]
        thumb_tip = landmarks[self._solution.HandLandmark.THUMB_TIP]
        tip = np.array([index_tip.x * w, index_tip.y * h], dtype=np.float32)
        pinch_dist = float(np.hypot(tip[0] - thumb_tip.x * w, tip[1] - thumb_tip.y * h))
        pinch = max(0.0, min(1.0, 1 - pinch_dist / PINCH_SPAN_PX))

        velocity = self._smooth(tip, self._elapsed())
        self._pinch_lp += (pinch - self._pinch_lp) * 0.35

        return HandInfo(
            index_tip=(int(self._smoothed_tip[0]), int(self._smoothed_tip[1])),
            pinch_strength=float(self._pinch_lp),
            velocity=(float(velocity[0]), float(velocity[1])),
            handedness=handedness,
        )
