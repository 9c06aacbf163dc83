"""
Skeleton Builder

벡터 일러스트의 관절 그룹(`joint-<label>`)을 본 트리로 변환하고, 나머지 패스를
스킨 영역으로 바인딩합니다. 일러스트 로드 시 한 번만 실행됩니다.

규칙 (convention over configuration):
1. 깊이 우선 순회. 관절 그룹 하나 = 본 하나. 부모 = 가장 가까운 관절 조상 그룹.
   단, 그 그룹이 정규 계층상 조상이 아니면 가장 가까운 정규 조상을 부모로 사용.
2. 정규 라벨 중 일러스트에 없는 것은 부모 원점에 길이 0인 virtual 본으로 합성.
3. 관절 그룹이 아닌 패스는 가장 가까운 관절 조상에 rigid 바인딩.
   `data-weights="leftShoulder:0.5,leftElbow:0.5"` 가 있으면 soft 바인딩.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..errors import MalformedBindWeights, UnrecognizedRig
from ..extractors.keypoint_constants import BONE_TABLE, ROOT_JOINT, JointLabel, canonical_order
from ..illustration.scene import Scene, SceneGroup, ScenePath
from ..utils.geometry import EPSILON, vector_angle
from .skeleton import BindData, Bone, Skeleton, SkinRegion

logger = logging.getLogger(__name__)

# 루트 방향을 정할 수 없을 때 (y축 아래 방향 좌표계에서 위쪽)
DEFAULT_ROOT_ANGLE = -np.pi / 2


@dataclass
class BuilderConfig:
    joint_prefix: str = 'joint-'
    weights_attribute: str = 'data-weights'
    nominal_leaf_length: float = 20.0
    weight_tolerance: float = 1e-3

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'BuilderConfig':
        data = data or {}
        return cls(
            joint_prefix=data.get('joint_prefix', 'joint-'),
            weights_attribute=data.get('weights_attribute', 'data-weights'),
            nominal_leaf_length=data.get('nominal_leaf_length', 20.0),
            weight_tolerance=data.get('weight_tolerance', 1e-3),
        )


@dataclass
class _JointGroup:
    label: JointLabel
    group: SceneGroup
    nested_parent: Optional[JointLabel]


def _is_canonical_ancestor(candidate: JointLabel, label: JointLabel) -> bool:
    cursor = BONE_TABLE[label][0]
    while cursor is not None:
        if cursor == candidate:
            return True
        cursor = BONE_TABLE[cursor][0]
    return False


def parse_weights(raw: str, region: str) -> Dict[JointLabel, float]:
    """'leftShoulder:0.5, leftElbow:0.5' -> {JointLabel: weight}"""
    weights: Dict[JointLabel, float] = {}
    for item in raw.split(','):
        if not item.strip():
            continue
        if ':' not in item:
            raise MalformedBindWeights(region, {'raw': raw}, f"entry '{item.strip()}' is not label:weight")
        name, value = item.split(':', 1)
        try:
            label = JointLabel.parse(name)
            weights[label] = weights.get(label, 0.0) + float(value)
        except ValueError as e:
            raise MalformedBindWeights(region, {'raw': raw}, str(e)) from e
    return weights


def validate_weights(
    region: str,
    weights: Dict[JointLabel, float],
    skeleton: Skeleton,
    tolerance: float = 1e-3
) -> Tuple[Tuple[JointLabel, float], ...]:
    """가중치 검증. 실패하면 MalformedBindWeights (런타임 재정규화는 하지 않음)"""
    readable = {label.value: w for label, w in weights.items()}
    if not weights:
        raise MalformedBindWeights(region, readable, 'no influences')
    for label, w in weights.items():
        if w < 0:
            raise MalformedBindWeights(region, readable, f"negative weight for '{label.value}'")
        if label not in skeleton:
            raise MalformedBindWeights(region, readable, f"unknown bone '{label.value}'")
        if skeleton[label].virtual:
            raise MalformedBindWeights(region, readable, f"bone '{label.value}' is virtual")
    total = sum(weights.values())
    if abs(total - 1.0) > tolerance:
        raise MalformedBindWeights(region, readable, f"weights sum to {total:.4f}, expected 1")
    return tuple((label, float(w)) for label, w in weights.items() if w > 0)


class SkeletonBuilder:
    def __init__(self, config: Optional[BuilderConfig] = None):
        self.config = config or BuilderConfig()

    def build(self, scene: Scene) -> BindData:
        joints: Dict[JointLabel, _JointGroup] = {}
        path_owner: List[Tuple[ScenePath, Optional[JointLabel]]] = []
        self._collect(scene.root, None, joints, path_owner)

        if ROOT_JOINT not in joints:
            raise UnrecognizedRig(
                f"No root joint group '{self.config.joint_prefix}{ROOT_JOINT.value}' found",
                ROOT_JOINT.value,
            )
        if joints[ROOT_JOINT].nested_parent is not None:
            raise UnrecognizedRig(
                f"Root joint '{ROOT_JOINT.value}' is nested inside "
                f"'{joints[ROOT_JOINT].nested_parent.value}'", ROOT_JOINT.value,
            )

        parents = self._resolve_parents(joints)
        origins = self._resolve_origins(joints, parents)
        skeleton = Skeleton(self._make_bones(joints, parents, origins))

        regions, rejected = self._bind_regions(path_owner, skeleton)

        logger.info(
            f"[Bind] {len(skeleton)} bones ({len(skeleton.virtual_bones())} virtual), "
            f"{len(regions)} skin regions, {len(rejected)} rejected"
        )
        return BindData(scene=scene, skeleton=skeleton, regions=regions, rejected_regions=rejected)

    # ------------------------------------------------------------------
    # 1. 순회
    # ------------------------------------------------------------------
    def _joint_label(self, group: SceneGroup) -> Optional[JointLabel]:
        prefix = self.config.joint_prefix
        if not group.name.startswith(prefix):
            return None
        name = group.name[len(prefix):]
        try:
            return JointLabel.parse(name)
        except ValueError:
            raise UnrecognizedRig(f"Unrecognized joint label '{name}' on group '{group.name}'", name)

    def _collect(self, group: SceneGroup, owner: Optional[JointLabel], joints, path_owner):
        for child in group.children:
            if isinstance(child, SceneGroup):
                label = self._joint_label(child)
                if label is not None:
                    if label in joints:
                        raise UnrecognizedRig(f"Duplicate joint group '{child.name}'", label.value)
                    joints[label] = _JointGroup(label, child, owner)
                    self._collect(child, label, joints, path_owner)
                else:
                    self._collect(child, owner, joints, path_owner)
            else:
                path_owner.append((child, owner))

    # ------------------------------------------------------------------
    # 2. 계층 / 원점
    # ------------------------------------------------------------------
    def _resolve_parents(self, joints: Dict[JointLabel, _JointGroup]) -> Dict[JointLabel, Optional[JointLabel]]:
        parents: Dict[JointLabel, Optional[JointLabel]] = {}
        for label, joint in joints.items():
            if label == ROOT_JOINT:
                parents[label] = None
            elif joint.nested_parent is not None and _is_canonical_ancestor(joint.nested_parent, label):
                parents[label] = joint.nested_parent
            else:
                # 중첩되지 않았거나 정규 계층과 맞지 않는 중첩 (예: joint-neck 안의 어깨):
                # 존재하는 가장 가까운 정규 조상 (없으면 루트)
                cursor = BONE_TABLE[label][0]
                while cursor is not None and cursor not in joints:
                    cursor = BONE_TABLE[cursor][0]
                parents[label] = cursor if cursor is not None else ROOT_JOINT

        # 없는 라벨은 정규 부모 아래 virtual 본으로 (위에서부터 채움)
        for label in canonical_order():
            if label not in parents:
                parents[label] = BONE_TABLE[label][0]
        return parents

    def _resolve_origins(self, joints, parents) -> Dict[JointLabel, np.ndarray]:
        origins: Dict[JointLabel, np.ndarray] = {}
        for label, joint in joints.items():
            origin = joint.group.origin
            if origin is None:
                origin = self._bounds_center(joint.group)
                logger.warning(f"[Bind] '{joint.group.name}' has no origin marker, using artwork center")
            origins[label] = np.asarray(origin, dtype=float)

        for label in canonical_order():
            if label not in origins:
                origins[label] = origins[parents[label]].copy()
        return origins

    def _bounds_center(self, group: SceneGroup) -> np.ndarray:
        pts = [p.points for p in group.iter_paths() if len(p.points)]
        if not pts:
            raise UnrecognizedRig(f"Joint group '{group.name}' has neither origin nor artwork", group.name)
        allp = np.vstack(pts)
        return (allp.min(axis=0) + allp.max(axis=0)) / 2

    # ------------------------------------------------------------------
    # 3. 본 생성
    # ------------------------------------------------------------------
    def _make_bones(self, joints, parents, origins) -> Dict[JointLabel, Bone]:
        order = [ROOT_JOINT]
        for label in order:
            order.extend(l for l, p in parents.items() if p == label)
        if len(order) != len(parents):
            # 부모 체인이 루트에 닿지 않음 -> 사이클
            stray = sorted(l.value for l in parents if l not in order)
            raise UnrecognizedRig(f"Joint hierarchy has a cycle or orphan: {stray}")

        bones: Dict[JointLabel, Bone] = {}
        for label in order:
            parent = parents[label]
            virtual = label not in joints
            look_at = BONE_TABLE[label][1]
            origin = origins[label]

            angle, length = None, 0.0
            if look_at is not None:
                vec = origins[look_at] - origin
                if np.linalg.norm(vec) > EPSILON:
                    angle, length = vector_angle(vec), float(np.linalg.norm(vec))
            if angle is None:
                # leaf 또는 방향을 알 수 없는 본: 부모 방향을 따름
                angle = bones[parent].angle if parent is not None else DEFAULT_ROOT_ANGLE
                length = 0.0 if virtual else self.config.nominal_leaf_length

            bones[label] = Bone(
                label=label,
                parent=parent,
                origin=origin,
                angle=angle,
                length=0.0 if virtual else length,
                look_at=look_at,
                virtual=virtual,
                group_name=None if virtual else joints[label].group.name,
            )
        return bones

    # ------------------------------------------------------------------
    # 4. 스킨 영역
    # ------------------------------------------------------------------
    def _bind_regions(self, path_owner, skeleton: Skeleton):
        regions: Dict[int, SkinRegion] = {}
        rejected: Dict[int, str] = {}
        attr = self.config.weights_attribute

        for path, owner in path_owner:
            raw = path.attributes.get(attr)
            if raw is not None:
                try:
                    weights = validate_weights(
                        path.name, parse_weights(raw, path.name), skeleton, self.config.weight_tolerance
                    )
                except MalformedBindWeights as e:
                    logger.warning(f"[Bind] {e} -> rendered statically")
                    rejected[path.uid] = e.reason
                    continue
                regions[path.uid] = SkinRegion(path.uid, path.name, weights)
            elif owner is not None:
                regions[path.uid] = SkinRegion(path.uid, path.name, ((owner, 1.0),))
        return regions, rejected


def build_skeleton(scene: Scene, config: Optional[BuilderConfig] = None) -> BindData:
    """편의 함수"""
    return SkeletonBuilder(config).build(scene)
