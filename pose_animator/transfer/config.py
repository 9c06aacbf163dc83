"""
Retargeting 설정 및 결과 타입

SkeletonPose 는 프레임마다 새로 만들어지는 불변 스냅샷입니다.
리타게팅 -> 스키닝 -> 렌더링 순으로 그대로 넘겨지므로 렌더러가
반쯤 갱신된 트리를 볼 일이 없습니다.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

from ..extractors.keypoint_constants import JointLabel


@dataclass
class RetargetConfig:
    confidence_threshold: float = 0.1
    # 길이 변화에 반응하는 본 (몸통)
    scale_bones: Tuple[JointLabel, ...] = (JointLabel.PELVIS,)
    scale_min: float = 0.5
    scale_max: float = 1.8
    follow_translation: bool = True
    fit_to_view: bool = True

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'RetargetConfig':
        data = data or {}
        scale_bones = tuple(JointLabel.parse(n) for n in data.get('scale_bones', ['pelvis']))
        return cls(
            confidence_threshold=data.get('confidence_threshold', 0.1),
            scale_bones=scale_bones,
            scale_min=data.get('scale_min', 0.5),
            scale_max=data.get('scale_max', 1.8),
            follow_translation=data.get('follow_translation', True),
            fit_to_view=data.get('fit_to_view', True),
        )


@dataclass(frozen=True)
class BonePose:
    """부모 기준 상대 회전 + 본 축 방향 스케일"""
    rotation: float = 0.0
    scale: float = 1.0


IDENTITY_BONE_POSE = BonePose()


@dataclass(frozen=True, eq=False)
class SkeletonPose:
    """한 프레임의 전체 본 변환 (불변)

    - locals: 본별 상대 회전/스케일 (리타게팅 결과, freeze-frame 시 그대로 유지)
    - world: 본별 강체(회전+이동) 월드 프레임
    - skin: 본별 스키닝 행렬 = world . axis_scale . bind^-1
    """
    translation: np.ndarray
    locals: Dict[JointLabel, BonePose]
    world: Dict[JointLabel, np.ndarray]
    skin: Dict[JointLabel, np.ndarray]
    evaluation_order: Tuple[JointLabel, ...] = ()

    def local(self, label: JointLabel) -> BonePose:
        return self.locals.get(label, IDENTITY_BONE_POSE)

    def bone_position(self, label: JointLabel) -> np.ndarray:
        return self.world[label][:2, 2].copy()

    def is_identity(self, atol: float = 1e-9) -> bool:
        return all(np.allclose(m, np.eye(3), atol=atol) for m in self.skin.values())


@dataclass
class RetargetResult:
    pose: SkeletonPose
    held_bones: Tuple[JointLabel, ...] = ()
    joint_angles: Dict[str, Optional[float]] = field(default_factory=dict)
    frozen: bool = False  # 신뢰할 만한 키포인트가 하나도 없어 이전 포즈를 그대로 사용
