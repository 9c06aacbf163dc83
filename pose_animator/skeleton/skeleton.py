"""
Skeleton 데이터 모델

- Bone: bind 시점의 위치/방향/길이 (불변)
- Skeleton: 본 트리 + 관절 라벨 매핑 (빌드 후 불변)
- SkinRegion: 패스 하나와 본 가중치
- BindData: 원본 Scene + Skeleton + 스킨 영역 (일러스트 교체 시 통째로 교체)

프레임마다 바뀌는 현재 변환은 여기 두지 않고 transfer.config.SkeletonPose 스냅샷으로 전달합니다.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..errors import UnrecognizedRig
from ..extractors.keypoint_constants import JointLabel
from ..illustration.scene import Scene
from ..utils.geometry import invert_rigid, rigid_matrix


@dataclass(frozen=True, eq=False)
class Bone:
    label: JointLabel
    parent: Optional[JointLabel]
    origin: np.ndarray          # bind 위치 (일러스트 좌표)
    angle: float                # bind 방향 (라디안)
    length: float
    look_at: Optional[JointLabel] = None
    virtual: bool = False       # 일러스트에 없어서 합성된 본 (아트워크를 변형하지 않음)
    group_name: Optional[str] = None

    @property
    def bind_matrix(self) -> np.ndarray:
        return rigid_matrix(self.origin, self.angle)

    @property
    def inverse_bind_matrix(self) -> np.ndarray:
        return invert_rigid(self.bind_matrix)

    @property
    def bind_direction(self) -> np.ndarray:
        return np.array([np.cos(self.angle), np.sin(self.angle)]) * self.length

    @property
    def is_root(self) -> bool:
        return self.parent is None


class Skeleton:
    """본 트리

    불변식: 루트 정확히 1개, 사이클 없음, 루트가 아닌 본의 부모는 같은 트리에 존재.
    """

    def __init__(self, bones: Dict[JointLabel, Bone]):
        self.bones: Dict[JointLabel, Bone] = dict(bones)
        self._children: Dict[JointLabel, List[JointLabel]] = {label: [] for label in self.bones}
        for label, bone in self.bones.items():
            if bone.parent is not None and bone.parent in self._children:
                self._children[bone.parent].append(label)
        self.validate()
        self._order = self._compute_order()

    def validate(self):
        roots = [label for label, bone in self.bones.items() if bone.parent is None]
        if len(roots) != 1:
            raise UnrecognizedRig(f"Skeleton must have exactly one root, found {len(roots)}")
        self.root = roots[0]

        for label, bone in self.bones.items():
            if bone.parent is not None and bone.parent not in self.bones:
                raise UnrecognizedRig(
                    f"Bone '{label.value}' has missing parent '{bone.parent.value}'", label.value
                )

        for label, bone in self.bones.items():
            # 부모를 따라 올라가서 루트에 도달해야 함
            seen = {label}
            cursor = bone.parent
            while cursor is not None:
                if cursor in seen:
                    raise UnrecognizedRig(f"Cycle detected at bone '{label.value}'", label.value)
                seen.add(cursor)
                cursor = self.bones[cursor].parent

    def _compute_order(self) -> List[JointLabel]:
        order = [self.root]
        for label in order:
            order.extend(self._children[label])
        return order

    def topological_order(self) -> List[JointLabel]:
        """루트 우선 순서 (부모가 항상 자식보다 앞)"""
        return list(self._order)

    def children(self, label: JointLabel) -> List[JointLabel]:
        return list(self._children.get(label, []))

    def __getitem__(self, label: JointLabel) -> Bone:
        return self.bones[label]

    def __contains__(self, label: JointLabel) -> bool:
        return label in self.bones

    def __iter__(self) -> Iterator[Bone]:
        return (self.bones[label] for label in self._order)

    def __len__(self) -> int:
        return len(self.bones)

    def real_bones(self) -> List[Bone]:
        return [b for b in self if not b.virtual]

    def virtual_bones(self) -> List[Bone]:
        return [b for b in self if b.virtual]

    def describe(self) -> List[str]:
        """트리 출력용 라인 목록"""
        lines = []

        def visit(label, depth):
            bone = self.bones[label]
            tag = ' (virtual)' if bone.virtual else ''
            lines.append(
                f"{'  ' * depth}{label.value}{tag} origin=({bone.origin[0]:.1f}, {bone.origin[1]:.1f}) "
                f"angle={np.degrees(bone.angle):.1f} len={bone.length:.1f}"
            )
            for child in self._children[label]:
                visit(child, depth + 1)

        visit(self.root, 0)
        return lines


@dataclass(frozen=True)
class SkinRegion:
    """패스 하나의 본 바인딩 (가중치 합 = 1)"""
    path_uid: int
    path_name: str
    weights: Tuple[Tuple[JointLabel, float], ...]

    @property
    def is_rigid(self) -> bool:
        return len(self.weights) == 1

    @property
    def bones(self) -> List[JointLabel]:
        return [label for label, _ in self.weights]


@dataclass(frozen=True, eq=False)
class BindData:
    """빌드 결과 (불변). 새 일러스트를 불러오면 통째로 교체됩니다."""
    scene: Scene
    skeleton: Skeleton
    regions: Dict[int, SkinRegion] = field(default_factory=dict)
    rejected_regions: Dict[int, str] = field(default_factory=dict)

    def region_for(self, path_uid: int) -> Optional[SkinRegion]:
        return self.regions.get(path_uid)

    @property
    def static_path_count(self) -> int:
        return self.scene.path_count() - len(self.regions)
