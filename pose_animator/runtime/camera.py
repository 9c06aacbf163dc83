"""
카메라 입력 (cv2.VideoCapture)

열기/읽기 실패는 AcquisitionError 로 올립니다. 재시도는 하지 않습니다.
"""
import logging
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from ..errors import AcquisitionError

logger = logging.getLogger(__name__)


class CameraSource:
    def __init__(
        self,
        device: Union[int, str] = 0,
        width: Optional[int] = 640,
        height: Optional[int] = 480
    ):
        """
        Args:
            device: 카메라 인덱스 또는 동영상 파일/스트림 경로
            width, height: 요청 해상도 (장치가 무시할 수 있음)
        """
        self.device = device
        self.width = width
        self.height = height
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def open(self) -> 'CameraSource':
        logger.info(f"Setting up camera ({self.device})...")
        capture = cv2.VideoCapture(self.device)
        if not capture.isOpened():
            capture.release()
            raise AcquisitionError(
                f"Cannot open camera '{self.device}'. "
                "This may be caused by a missing device or denied permission."
            )
        if self.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._capture = capture
        return self

    def read(self) -> np.ndarray:
        if self._capture is None:
            raise AcquisitionError("Camera is not open")
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise AcquisitionError(f"Failed to read frame from camera '{self.device}'")
        return frame

    def frame_size(self) -> Tuple[int, int]:
        """(width, height) - 장치가 실제로 선택한 해상도"""
        if self._capture is None:
            return int(self.width or 0), int(self.height or 0)
        return (int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
                int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)))

    def close(self):
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def __enter__(self) -> 'CameraSource':
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
