"""
Pose Retargeting Engine

매 프레임 라이브 Pose 를 Skeleton 의 bind 데이터에 매핑하여 새 SkeletonPose 를 만듭니다.

- 미러링은 각도 계산 전에 프레임당 정확히 한 번
- 본마다: 라이브 방향 - bind 방향 = 상대 회전, (몸통만) 길이 비 = 상대 스케일
- 키포인트 신뢰도가 낮으면 해당 본은 이전 프레임 값을 그대로 유지 (freeze-frame)
- 변환 합성은 루트부터 내려가는 forward kinematics
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..extractors.keypoint_constants import JOINT_ANGLE_TRIPLETS, JointLabel
from ..skeleton.keypoint_model import Pose, fit_to_view, joint_angle, mirror, with_derived_joints
from ..skeleton.skeleton import Bone, Skeleton
from ..utils.geometry import (
    EPSILON,
    axis_scale_matrix,
    invert_rigid,
    matrix_rotation,
    rigid_matrix,
    transform_point,
    vector_angle,
    wrap_angle,
)
from .config import IDENTITY_BONE_POSE, BonePose, RetargetConfig, RetargetResult, SkeletonPose

logger = logging.getLogger(__name__)


def evaluation_order(bones: Iterable[Bone]) -> List[Bone]:
    """입력 순서와 무관하게 루트 우선(부모 -> 자식) 순서로 정렬"""
    by_label = {b.label: b for b in bones}
    children: Dict[Optional[JointLabel], List[Bone]] = {}
    for bone in by_label.values():
        children.setdefault(bone.parent, []).append(bone)

    roots = children.get(None, [])
    if len(roots) != 1:
        raise ValueError(f"Expected exactly one root bone, got {len(roots)}")

    order = [roots[0]]
    for bone in order:
        order.extend(sorted(children.get(bone.label, []), key=lambda b: b.label.value))
    if len(order) != len(by_label):
        raise ValueError("Bone tree is not connected to the root")
    return order


def forward_kinematics(
    bones: Iterable[Bone],
    locals: Dict[JointLabel, BonePose],
    translation: Optional[np.ndarray] = None
) -> SkeletonPose:
    """루트부터 부모 변환이 확정된 뒤에만 자식을 계산

    root:  W = T(translation) . B_root . R(rot)
    child: 위치 = W_parent . S_parent . (B_parent^-1 . origin_child)
           각도 = 각도(W_parent) + (angle_child - angle_parent) + rot
    skin = W . S . B^-1
    """
    ordered = evaluation_order(bones)
    bind = {b.label: b for b in ordered}
    translation = np.zeros(2) if translation is None else np.asarray(translation, dtype=float)

    world: Dict[JointLabel, np.ndarray] = {}
    skin: Dict[JointLabel, np.ndarray] = {}
    scaled: Dict[JointLabel, np.ndarray] = {}

    for bone in ordered:
        local = locals.get(bone.label, IDENTITY_BONE_POSE)
        if bone.parent is None:
            position = bone.origin + translation
            angle = bone.angle + local.rotation
        else:
            if bone.parent not in world:
                raise ValueError(f"Parent of '{bone.label.value}' evaluated after child")
            parent = bind[bone.parent]
            offset = transform_point(parent.inverse_bind_matrix, bone.origin)
            position = transform_point(scaled[bone.parent], offset)
            angle = matrix_rotation(world[bone.parent]) + (bone.angle - parent.angle) + local.rotation

        frame = rigid_matrix(position, angle)
        world[bone.label] = frame
        scaled[bone.label] = frame @ axis_scale_matrix(local.scale)
        skin[bone.label] = scaled[bone.label] @ invert_rigid(bone.bind_matrix)

    return SkeletonPose(
        translation=translation.copy(),
        locals={label: locals.get(label, IDENTITY_BONE_POSE) for label in world},
        world=world,
        skin=skin,
        evaluation_order=tuple(b.label for b in ordered),
    )


def bind_pose(skeleton: Skeleton) -> SkeletonPose:
    """모든 본이 bind 상태인 포즈 (스킨 행렬 = 단위행렬)"""
    return forward_kinematics(skeleton, {})


class PoseRetargetingEngine:
    def __init__(
        self,
        skeleton: Skeleton,
        config: Optional[RetargetConfig] = None,
        view_box: Optional[Tuple[float, float, float, float]] = None
    ):
        self.skeleton = skeleton
        self.config = config or RetargetConfig()
        self.view_box = view_box
        self._bind_angles = self._compute_bind_angles()

    def _compute_bind_angles(self) -> Dict[str, Optional[float]]:
        bind_points = Pose.from_points({b.label: tuple(b.origin) for b in self.skeleton})
        return {
            name: joint_angle(bind_points, a, b, c, 0.0)
            for name, (a, b, c) in JOINT_ANGLE_TRIPLETS.items()
        }

    def prepare(self, pose: Pose, flip: bool = False) -> Pose:
        """미러링(1회) -> 일러스트 좌표로 맞춤 -> pelvis/neck 계산"""
        if flip:
            pose = mirror(pose, self._mirror_width(pose))
        if self.config.fit_to_view and self.view_box is not None and pose.frame_size:
            pose = fit_to_view(pose, pose.frame_size, self.view_box)
        return with_derived_joints(pose)

    def _mirror_width(self, pose: Pose) -> float:
        """반전 기준선 x = width / 2. 프레임 크기를 모르면 viewBox, 그 다음 스켈레톤 범위 중심"""
        if pose.frame_size:
            return float(pose.frame_size[0])
        if self.view_box is not None:
            x, _, width, _ = self.view_box
            return 2.0 * x + width
        xs = [b.origin[0] for b in self.skeleton]
        return float(min(xs) + max(xs)) if xs else 0.0

    def retarget(
        self,
        pose: Pose,
        previous: Optional[SkeletonPose] = None,
        flip: bool = False
    ) -> RetargetResult:
        if previous is None:
            previous = bind_pose(self.skeleton)

        threshold = self.config.confidence_threshold
        if pose.confident_count(threshold) == 0:
            # 사람 없음 / 전부 저신뢰: 이전 포즈 그대로 (bind 포즈로 튀지 않음)
            logger.debug("[Retarget] No confident keypoints, holding previous pose")
            return RetargetResult(pose=previous, held_bones=tuple(previous.locals), frozen=True)

        live = self.prepare(pose, flip)

        locals: Dict[JointLabel, BonePose] = {}
        world_delta: Dict[JointLabel, float] = {}
        held: List[JointLabel] = []

        for bone in self.skeleton:
            parent_delta = world_delta[bone.parent] if bone.parent is not None else 0.0
            local = self._solve_bone(bone, live, parent_delta)
            if local is None:
                local = previous.local(bone.label)
                held.append(bone.label)
            locals[bone.label] = local
            world_delta[bone.label] = parent_delta + local.rotation

        translation = self._solve_translation(live, previous)
        skeleton_pose = forward_kinematics(self.skeleton, locals, translation)

        if held:
            logger.debug(f"[Retarget] Holding {len(held)} bones: {[l.value for l in held]}")

        return RetargetResult(
            pose=skeleton_pose,
            held_bones=tuple(held),
            joint_angles=self._joint_angles(live),
        )

    def _solve_bone(self, bone: Bone, live: Pose, parent_delta: float) -> Optional[BonePose]:
        """라이브 데이터로 본의 상대 변환 계산. 데이터가 없으면 None (이전 값 유지)"""
        if bone.look_at is None:
            # leaf: 부모를 그대로 따름
            return IDENTITY_BONE_POSE

        threshold = self.config.confidence_threshold
        if not (live.is_confident(bone.label, threshold) and live.is_confident(bone.look_at, threshold)):
            return None

        vec = live.position(bone.look_at) - live.position(bone.label)
        length = float(np.linalg.norm(vec))
        if length < EPSILON:
            return None

        world_rotation = wrap_angle(vector_angle(vec) - bone.angle)
        rotation = wrap_angle(world_rotation - parent_delta)

        scale = 1.0
        if bone.label in self.config.scale_bones and bone.length > EPSILON:
            scale = float(np.clip(length / bone.length, self.config.scale_min, self.config.scale_max))

        return BonePose(rotation=rotation, scale=scale)

    def _solve_translation(self, live: Pose, previous: SkeletonPose) -> np.ndarray:
        if not self.config.follow_translation:
            return np.zeros(2)
        root = self.skeleton[self.skeleton.root]
        if live.is_confident(root.label, self.config.confidence_threshold):
            return live.position(root.label) - root.origin
        return previous.translation.copy()

    def _joint_angles(self, live: Pose) -> Dict[str, Optional[float]]:
        """관절 각도 (undefined 이면 bind 각도로 폴백)"""
        angles = {}
        for name, (a, b, c) in JOINT_ANGLE_TRIPLETS.items():
            value = joint_angle(live, a, b, c, self.config.confidence_threshold)
            angles[name] = value if value is not None else self._bind_angles[name]
        return angles
