"""
상태 메시지 / 프레임레이트 오버레이
"""
import time
from collections import deque
from typing import Optional, Tuple

import cv2
import numpy as np

COLOR_INFO = (255, 255, 255)
COLOR_ERROR = (0, 0, 255)


class StatusBoard:
    """현재 상태 메시지 하나를 보관하고 출력 프레임 위에 그림"""

    def __init__(self, font_scale: float = 0.6, thickness: int = 1):
        self.font_scale = font_scale
        self.thickness = thickness
        self.message: Optional[str] = None
        self.is_error = False

    def info(self, message: str):
        print(message)
        self.message = message
        self.is_error = False

    def error(self, message: str):
        print(f"❌ {message}")
        self.message = message
        self.is_error = True

    def clear(self):
        # 에러는 사용자가 볼 수 있도록 유지
        if not self.is_error:
            self.message = None

    def draw(self, image: np.ndarray, origin: Tuple[int, int] = (10, 24)) -> np.ndarray:
        if not self.message:
            return image
        color = COLOR_ERROR if self.is_error else COLOR_INFO
        # 가독성을 위한 외곽선
        cv2.putText(image, self.message, origin, cv2.FONT_HERSHEY_SIMPLEX,
                    self.font_scale, (0, 0, 0), self.thickness + 2, cv2.LINE_AA)
        cv2.putText(image, self.message, origin, cv2.FONT_HERSHEY_SIMPLEX,
                    self.font_scale, color, self.thickness, cv2.LINE_AA)
        return image


class FrameRateMeter:
    def __init__(self, window: int = 30, clock=time.perf_counter):
        self._stamps = deque(maxlen=window)
        self._clock = clock

    def tick(self) -> float:
        self._stamps.append(self._clock())
        return self.fps

    @property
    def fps(self) -> float:
        if len(self._stamps) < 2:
            return 0.0
        span = self._stamps[-1] - self._stamps[0]
        return (len(self._stamps) - 1) / span if span > 0 else 0.0

    def draw(self, image: np.ndarray) -> np.ndarray:
        text = f"{self.fps:.1f} FPS"
        h, w = image.shape[:2]
        (tw, _), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        cv2.putText(image, text, (w - tw - 10, h - 10), cv2.FONT_HERSHEY_SIMPLEX,
                    0.5, (0, 255, 0), 1, cv2.LINE_AA)
        return image
