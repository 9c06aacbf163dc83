"""
실시간 루프 / 포즈 요청 스케줄링 (asyncio)

- 프레임마다 포즈 요청은 최대 1개만 진행 중. 진행 중에 들어온 프레임은
  대기 슬롯 하나를 덮어씀 (큐에 쌓지 않음).
- 결과는 요청 순번(sequence)으로 태깅하고, 이미 반영된 것보다 새로울 때만
  LatestPoseSlot 에 반영 (늦게 도착한 오래된 결과는 버림).
- 렌더링 루프는 새 결과가 없으면 마지막 변환을 그대로 다시 그림.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

import numpy as np

from ..errors import AcquisitionError
from ..illustration.illustration import PoseIllustration
from ..skeleton.keypoint_model import Pose
from .camera import CameraSource

logger = logging.getLogger(__name__)


class AsyncPoseEstimator(Protocol):
    async def estimate_async(self, image: np.ndarray, options=None) -> List[Pose]:
        ...


@dataclass(frozen=True)
class PoseResult:
    sequence: int
    pose: Optional[Pose]  # None = 검출 없음


class LatestPoseSlot:
    """가장 최근 요청의 결과 하나만 보관"""

    def __init__(self):
        self._result: Optional[PoseResult] = None

    @property
    def latest(self) -> Optional[PoseResult]:
        return self._result

    @property
    def sequence(self) -> int:
        return self._result.sequence if self._result is not None else -1

    def commit(self, sequence: int, pose: Optional[Pose]) -> bool:
        """더 새로운 결과일 때만 반영. 반영 여부 반환"""
        if sequence <= self.sequence:
            logger.debug(f"[Loop] Discarding stale pose result #{sequence} (have #{self.sequence})")
            return False
        self._result = PoseResult(sequence, pose)
        return True


class PoseRequestScheduler:
    def __init__(self, estimator: AsyncPoseEstimator, options=None, slot: Optional[LatestPoseSlot] = None):
        self.estimator = estimator
        self.options = options
        self.slot = slot or LatestPoseSlot()
        self.error: Optional[AcquisitionError] = None

        self._next_sequence = 0
        self._in_flight: Optional[asyncio.Task] = None
        self._pending: Optional[Tuple[int, np.ndarray]] = None
        self.dropped_frames = 0

    @property
    def busy(self) -> bool:
        return self._in_flight is not None

    def submit(self, frame: np.ndarray) -> int:
        """프레임 제출. 실행 중 루프 안에서 호출해야 함. 요청 순번 반환"""
        sequence = self._next_sequence
        self._next_sequence += 1

        if self._in_flight is None:
            self._start(sequence, frame)
        else:
            if self._pending is not None:
                self.dropped_frames += 1
            self._pending = (sequence, frame)
        return sequence

    def _start(self, sequence: int, frame: np.ndarray):
        self._in_flight = asyncio.get_running_loop().create_task(self._request(sequence, frame))

    async def _request(self, sequence: int, frame: np.ndarray):
        try:
            poses = await self.estimator.estimate_async(frame, self.options)
            # 여러 명이 검출되어도 첫 번째만 사용
            self.slot.commit(sequence, poses[0] if poses else None)
        except AcquisitionError as e:
            logger.error(f"[Loop] Pose request #{sequence} failed: {e}")
            self.error = e
            self._pending = None
        except Exception as e:
            logger.error(f"[Loop] Pose request #{sequence} failed: {e}")
            # 모델 내부 예외 (onnxruntime 등) -> AcquisitionError, 원인은 __cause__ 로 보존
            self.error = AcquisitionError(f"Pose estimation failed: {e}", source='model')
            self.error.__cause__ = e
            self._pending = None
        finally:
            self._in_flight = None
            if self._pending is not None and self.error is None:
                next_sequence, next_frame = self._pending
                self._pending = None
                self._start(next_sequence, next_frame)

    async def drain(self):
        """진행 중/대기 중 요청이 모두 끝날 때까지 대기"""
        while self._in_flight is not None:
            await asyncio.shield(self._in_flight)

    def cancel(self):
        self._pending = None
        if self._in_flight is not None:
            self._in_flight.cancel()
            self._in_flight = None


class AnimationLoop:
    """
    캡처 -> 요청 제출 -> 최신 포즈 -> update_skeleton -> draw -> 표시

    display(image, frame, result) 가 False 를 반환하면 루프 종료.
    """

    def __init__(
        self,
        camera: CameraSource,
        scheduler: PoseRequestScheduler,
        illustration: PoseIllustration,
        display: Callable[[np.ndarray, np.ndarray, Optional[PoseResult]], bool],
        canvas_size: Tuple[int, int] = (640, 480),
        fps: float = 30.0,
        flip: bool = False
    ):
        self.camera = camera
        self.scheduler = scheduler
        self.illustration = illustration
        self.display = display
        self.canvas_size = canvas_size
        self.period = 1.0 / fps if fps > 0 else 0.0
        self.flip = flip

        self.frame_count = 0
        self._consumed = -1
        self._running = False

    async def step(self) -> bool:
        """한 사이클. 계속 돌아야 하면 True"""
        if self.scheduler.error is not None:
            raise self.scheduler.error

        frame = self.camera.read()
        self.scheduler.submit(frame)

        result = self.scheduler.slot.latest
        if result is not None and result.sequence != self._consumed:
            self._consumed = result.sequence
            self.illustration.update_skeleton(result.pose, flip=self.flip)

        image = self.illustration.draw(self.canvas_size)
        self.frame_count += 1
        return self.display(image, frame, result) is not False

    async def run(self, max_frames: Optional[int] = None):
        self._running = True
        logger.info("[Loop] Animation loop started")
        try:
            while self._running:
                started = time.perf_counter()
                if not await self.step():
                    break
                if max_frames is not None and self.frame_count >= max_frames:
                    break
                elapsed = time.perf_counter() - started
                await asyncio.sleep(max(0.0, self.period - elapsed))
        finally:
            self._running = False
            self.scheduler.cancel()
            logger.info(f"[Loop] Stopped after {self.frame_count} frames "
                        f"({self.scheduler.dropped_frames} frames replaced while busy)")

    def stop(self):
        self._running = False
