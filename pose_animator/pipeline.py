"""
Avatar 파이프라인
- 카메라 -> 포즈 요청 스케줄러 -> 일러스트(리타게팅/스키닝) -> 화면
- 일러스트는 루프를 멈추지 않고 교체 가능 (load_avatar)
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from .config import AnimatorConfig
from .errors import AcquisitionError, UnrecognizedRig
from .extractors.pose_estimator import PoseEstimator, PoseEstimatorFactory
from .illustration.illustration import PoseIllustration
from .illustration.svg_loader import load_svg
from .renderers.illustration_renderer import IllustrationRenderer
from .renderers.skeleton_renderer import SkeletonRenderer
from .runtime.camera import CameraSource
from .runtime.scheduler import AnimationLoop, PoseRequestScheduler, PoseResult
from .runtime.status import FrameRateMeter, StatusBoard
from .skeleton.keypoint_model import Pose, mirror

logger = logging.getLogger(__name__)

WINDOW_NAME = 'Pose Animator'


class AvatarPipeline:
    def __init__(
        self,
        config: Optional[AnimatorConfig] = None,
        estimator: Optional[PoseEstimator] = None,
        camera: Optional[CameraSource] = None
    ):
        self.config = config or AnimatorConfig()
        self.status = StatusBoard()
        self.fps_meter = FrameRateMeter()

        renderer = IllustrationRenderer(
            background_color=self.config.background_color,
            curve_samples=self.config.curve_samples,
            antialias=self.config.antialias,
        )
        self.illustration = PoseIllustration(self.config.retarget, self.config.skeleton, renderer)
        self.skeleton_renderer = SkeletonRenderer(kpt_threshold=self.config.retarget.confidence_threshold)

        self.estimator = estimator
        self.camera = camera
        self.avatar_source: Optional[Union[str, Path]] = None

    # ------------------------------------------------------------------
    # 로딩
    # ------------------------------------------------------------------
    def load_estimator(self) -> PoseEstimator:
        if self.estimator is None:
            self.status.info("Loading pose model...")
            self.estimator = PoseEstimatorFactory.get_instance(
                backend=self.config.backend, device=self.config.device, mode=self.config.mode
            )
        return self.estimator

    def load_avatar(self, source: Union[str, Path]) -> bool:
        """일러스트 로드 + 바인드. 실패 시 메시지를 표시하고 기존 상태 유지"""
        self.status.info("Loading avatar...")
        try:
            scene = load_svg(source)
        except (OSError, ValueError) as e:
            self.status.error(f"Cannot load avatar: {e}")
            return False

        try:
            self.illustration.bind_skeleton(scene)
        except UnrecognizedRig as e:
            self.status.error(f"Avatar rig not recognized: {e}")
            return False

        self.avatar_source = source
        self.status.clear()
        return True

    def reload_avatar(self) -> bool:
        if self.avatar_source is None:
            return False
        logger.info(f"[Loop] Reloading avatar: {self.avatar_source}")
        return self.load_avatar(self.avatar_source)

    # ------------------------------------------------------------------
    # 단일 프레임 (오프라인)
    # ------------------------------------------------------------------
    def render_pose(self, pose: Optional[Pose], flip: bool = False) -> np.ndarray:
        """포즈 하나로 일러스트를 움직여 이미지로 반환 (pose 가 None 이면 bind 포즈)"""
        self.illustration.update_skeleton(pose, flip=flip)
        return self.illustration.draw(self.config.canvas_size)

    def render_image(self, image: Union[np.ndarray, str, Path]) -> np.ndarray:
        estimator = self.load_estimator()
        pose = estimator.estimate_single(image, self.config.estimator)
        if pose is None:
            logger.warning("No person detected, rendering bind pose")
        return self.render_pose(pose, flip=self.config.flip_horizontal)

    # ------------------------------------------------------------------
    # 실시간 루프
    # ------------------------------------------------------------------
    def compose(self, avatar: np.ndarray, frame: np.ndarray, result: Optional[PoseResult]) -> np.ndarray:
        """[카메라 미리보기 | 일러스트] + 상태/FPS 오버레이"""
        preview = frame
        pose = result.pose if result is not None else None
        if self.config.flip_horizontal:
            # 미리보기도 거울처럼 보이도록
            preview = cv2.flip(frame, 1)
            pose = mirror(pose) if pose is not None else None
        if self.config.show_keypoints:
            preview = self.skeleton_renderer.render(preview, pose)

        if self.config.show_rig and self.illustration.bind_data is not None:
            scene = self.illustration.current_scene()
            view = self.illustration.renderer.view_matrix(scene, self.config.canvas_size)
            self.skeleton_renderer.render_rig(
                avatar, self.illustration.bind_data.skeleton, self.illustration.current_pose(), view
            )

        h = avatar.shape[0]
        scale = h / preview.shape[0]
        preview = cv2.resize(preview, (int(round(preview.shape[1] * scale)), h))
        output = np.hstack([preview, avatar])

        self.status.draw(output)
        if self.config.show_fps:
            self.fps_meter.tick()
            self.fps_meter.draw(output)
        return output

    def _display(self, avatar: np.ndarray, frame: np.ndarray, result: Optional[PoseResult]) -> bool:
        cv2.imshow(WINDOW_NAME, self.compose(avatar, frame, result))
        key = cv2.waitKey(1) & 0xFF
        if key in (ord('q'), 27):
            return False
        if key == ord('r'):
            self.reload_avatar()
        return True

    async def run_async(self, avatar: Union[str, Path], max_frames: Optional[int] = None):
        try:
            estimator = self.load_estimator()
        except AcquisitionError as e:
            self.status.error(str(e))
            raise

        self.load_avatar(avatar)

        self.status.info("Setting up camera...")
        camera = self.camera or CameraSource(
            self.config.camera_device, self.config.camera_width, self.config.camera_height
        )
        try:
            camera.open()
        except AcquisitionError as e:
            self.status.error(str(e))
            raise
        self.camera = camera
        self.status.clear()

        scheduler = PoseRequestScheduler(estimator, self.config.estimator)
        loop = AnimationLoop(
            camera, scheduler, self.illustration, self._display,
            canvas_size=self.config.canvas_size,
            fps=self.config.fps,
            flip=self.config.flip_horizontal,
        )
        try:
            await loop.run(max_frames=max_frames)
        except AcquisitionError as e:
            self.status.error(str(e))
            raise
        finally:
            camera.close()
            cv2.destroyAllWindows()

    def run(self, avatar: Union[str, Path], max_frames: Optional[int] = None):
        asyncio.run(self.run_async(avatar, max_frames))


def render_avatar(
    avatar: Union[str, Path],
    pose: Optional[Pose] = None,
    config: Optional[AnimatorConfig] = None,
    flip: bool = False
) -> np.ndarray:
    """
    편의 함수: 일러스트를 (포즈가 있으면 그 포즈로) 렌더링

    Raises:
        UnrecognizedRig: 일러스트에서 리그를 인식하지 못한 경우
    """
    pipeline = AvatarPipeline(config)
    pipeline.illustration.bind_skeleton(load_svg(avatar))
    return pipeline.render_pose(pose, flip=flip)
