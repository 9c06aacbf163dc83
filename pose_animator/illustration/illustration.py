"""
PoseIllustration - 일러스트 + 리그 + 현재 포즈를 묶는 파사드

상태:
    UNBOUND   -> bind_skeleton 성공 -> BOUND
    BOUND     -> update_skeleton    -> ANIMATING
    ANIMATING -> bind_skeleton 성공 -> BOUND (새 리그)

바인드 결과와 프레임 결과는 각각 새 객체로 만든 뒤 속성 하나에 대입하여 교체합니다.
draw 는 항상 완결된 스냅샷 하나만 읽습니다.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union
from pathlib import Path

import numpy as np

from ..errors import UnrecognizedRig
from ..renderers.illustration_renderer import IllustrationRenderer
from ..skeleton.builder import BuilderConfig, SkeletonBuilder
from ..skeleton.keypoint_model import Pose
from ..skeleton.skeleton import BindData
from ..skinning.deformer import SkinningEngine
from ..transfer.config import RetargetConfig, SkeletonPose
from ..transfer.engine import PoseRetargetingEngine, bind_pose
from .scene import Scene
from .svg_loader import load_svg

logger = logging.getLogger(__name__)


class IllustrationState(Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    ANIMATING = "animating"


@dataclass(frozen=True, eq=False)
class FrameSnapshot:
    """한 프레임의 완결된 결과 (불변)"""
    skeleton_pose: SkeletonPose
    scene: Scene
    frame_index: int = 0
    held_bones: Tuple = ()
    joint_angles: Dict[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True, eq=False)
class _Rig:
    bind_data: BindData
    engine: PoseRetargetingEngine


class PoseIllustration:
    """
    일러스트 파사드

    Usage:
        illustration = PoseIllustration()
        illustration.bind_skeleton(load_svg('avatar.svg'))
        illustration.update_skeleton(pose, flip=True)
        image = illustration.draw((640, 480))
    """

    def __init__(
        self,
        retarget_config: Optional[RetargetConfig] = None,
        builder_config: Optional[BuilderConfig] = None,
        renderer: Optional[IllustrationRenderer] = None
    ):
        self.retarget_config = retarget_config or RetargetConfig()
        self.builder = SkeletonBuilder(builder_config)
        self.skinning = SkinningEngine()
        self.renderer = renderer or IllustrationRenderer()

        self._rig: Optional[_Rig] = None
        self._snapshot: Optional[FrameSnapshot] = None
        # 리그 인식 실패 + 이전 리그 없음: 아트워크만 정적으로 표시
        self._static_scene: Optional[Scene] = None
        self._frame_index = 0

    # ------------------------------------------------------------------
    # 상태
    # ------------------------------------------------------------------
    @property
    def state(self) -> IllustrationState:
        if self._rig is None:
            return IllustrationState.UNBOUND
        if self._snapshot is None:
            return IllustrationState.BOUND
        return IllustrationState.ANIMATING

    @property
    def bind_data(self) -> Optional[BindData]:
        return self._rig.bind_data if self._rig is not None else None

    @property
    def snapshot(self) -> Optional[FrameSnapshot]:
        return self._snapshot

    @property
    def static_scene(self) -> Optional[Scene]:
        return self._static_scene

    # ------------------------------------------------------------------
    # 연산
    # ------------------------------------------------------------------
    def bind_skeleton(self, scene: Scene) -> BindData:
        """일러스트를 리그로 해석하여 교체

        실패(UnrecognizedRig) 시 기존 리그를 유지하고 예외를 다시 던집니다.
        """
        try:
            bind_data = self.builder.build(scene)
        except UnrecognizedRig as e:
            if self._rig is None:
                self._static_scene = scene
                logger.error(f"[Bind] Rig not recognized, showing artwork statically: {e}")
            else:
                logger.error(f"[Bind] Rig not recognized, keeping previous rig: {e}")
            raise

        engine = PoseRetargetingEngine(bind_data.skeleton, self.retarget_config, scene.view_box)
        # 한 번의 대입으로 교체 (draw 는 이전 리그 또는 새 리그 중 하나만 봄)
        self._rig = _Rig(bind_data, engine)
        self._snapshot = None
        self._static_scene = None
        self._frame_index = 0
        return bind_data

    def load(self, source: Union[str, Path]) -> BindData:
        """파일 경로 / URL / SVG 문자열에서 로드 후 바인드"""
        return self.bind_skeleton(load_svg(source))

    def update_skeleton(self, pose: Optional[Pose], flip: bool = False) -> Optional[FrameSnapshot]:
        """라이브 포즈로 한 프레임 진행. UNBOUND 이거나 pose 가 None 이면 아무것도 하지 않음"""
        rig = self._rig
        if rig is None or pose is None:
            return self._snapshot

        previous = self._snapshot.skeleton_pose if self._snapshot is not None else None
        result = rig.engine.retarget(pose, previous, flip=flip)

        if result.frozen and self._snapshot is not None:
            # 이전 스냅샷을 그대로 재사용 (변형 결과도 동일)
            return self._snapshot

        self._frame_index += 1
        snapshot = FrameSnapshot(
            skeleton_pose=result.pose,
            scene=self.skinning.deform(rig.bind_data, result.pose),
            frame_index=self._frame_index,
            held_bones=result.held_bones,
            joint_angles=result.joint_angles,
        )
        self._snapshot = snapshot
        return snapshot

    def current_scene(self) -> Optional[Scene]:
        """지금 그려질 Scene (애니메이션 > bind 포즈 > 정적 아트워크)"""
        snapshot, rig = self._snapshot, self._rig
        if snapshot is not None:
            return snapshot.scene
        if rig is not None:
            return rig.bind_data.scene
        return self._static_scene

    def current_pose(self) -> Optional[SkeletonPose]:
        if self._snapshot is not None:
            return self._snapshot.skeleton_pose
        if self._rig is not None:
            return bind_pose(self._rig.bind_data.skeleton)
        return None

    def draw(
        self,
        canvas_size: Tuple[int, int],
        background_color: Optional[Tuple[int, int, int]] = None
    ) -> np.ndarray:
        """모든 상태에서 호출 가능. 그릴 것이 없으면 빈 캔버스"""
        scene = self.current_scene()
        if scene is None:
            color = background_color if background_color is not None else self.renderer.background_color
            return np.full((int(canvas_size[1]), int(canvas_size[0]), 3), color, dtype=np.uint8)
        return self.renderer.render(scene, canvas_size, background_color)
