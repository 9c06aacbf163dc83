"""
Keypoint Model

한 사람의 2D 포즈(이름 붙은 점 + 신뢰도)와 두 가지 연산:
- mirror(): 좌/우 라벨 교환 + x좌표 반전
- joint_angle(): 꼭짓점 b에서의 부호 있는 각도

신뢰도가 임계값보다 낮은 키포인트는 집합에서 제거하지 않습니다.
사용하는 쪽은 반드시 is_confident()로 확인해야 합니다.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from ..extractors.keypoint_constants import (
    COCO_KEYPOINT_ORDER,
    DERIVED_JOINTS,
    JointLabel,
    get_symmetric_pair,
)
from ..utils.geometry import EPSILON, apply_transform, fit_transform

DEFAULT_CONFIDENCE_THRESHOLD = 0.1


@dataclass(frozen=True)
class Keypoint:
    """단일 키포인트"""
    name: JointLabel
    x: float
    y: float
    confidence: float

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)


@dataclass(frozen=True)
class Pose:
    """한 사람의 포즈 (프레임 단위)"""
    keypoints: Dict[JointLabel, Keypoint] = field(default_factory=dict)
    score: float = 0.0
    frame_size: Optional[Tuple[int, int]] = None  # (width, height)

    @classmethod
    def from_arrays(
        cls,
        keypoints: np.ndarray,
        scores: np.ndarray,
        frame_size: Optional[Tuple[int, int]] = None
    ) -> 'Pose':
        """COCO-17 순서의 (17, 2), (17,) 배열로부터 생성"""
        kpts = {}
        for idx, label in enumerate(COCO_KEYPOINT_ORDER):
            if idx >= len(keypoints):
                break
            conf = float(np.clip(scores[idx], 0.0, 1.0))
            kpts[label] = Keypoint(label, float(keypoints[idx][0]), float(keypoints[idx][1]), conf)
        score = float(np.mean([k.confidence for k in kpts.values()])) if kpts else 0.0
        return cls(kpts, score, frame_size)

    @classmethod
    def from_points(
        cls,
        points: Dict[JointLabel, Tuple[float, float]],
        confidence: float = 1.0,
        frame_size: Optional[Tuple[int, int]] = None
    ) -> 'Pose':
        kpts = {label: Keypoint(label, float(x), float(y), confidence) for label, (x, y) in points.items()}
        return cls(kpts, confidence if kpts else 0.0, frame_size)

    def get(self, label: JointLabel) -> Optional[Keypoint]:
        return self.keypoints.get(label)

    def is_confident(self, label: JointLabel, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> bool:
        kpt = self.keypoints.get(label)
        return kpt is not None and kpt.confidence >= threshold

    def confident_count(self, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> int:
        return sum(1 for k in self.keypoints.values() if k.confidence >= threshold)

    def position(self, label: JointLabel) -> Optional[np.ndarray]:
        kpt = self.keypoints.get(label)
        return kpt.position if kpt is not None else None

    def labels(self) -> Iterable[JointLabel]:
        return self.keypoints.keys()

    def to_dict(self) -> Dict:
        return {
            'score': self.score,
            'frame_size': list(self.frame_size) if self.frame_size else None,
            'keypoints': [
                {'part': k.name.value, 'position': {'x': k.x, 'y': k.y}, 'score': k.confidence}
                for k in self.keypoints.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Pose':
        """PoseNet 스타일 JSON ({part, position{x,y}, score}) 로드"""
        kpts = {}
        for item in data.get('keypoints', []):
            label = JointLabel.parse(item['part'])
            pos = item['position']
            kpts[label] = Keypoint(label, float(pos['x']), float(pos['y']), float(item.get('score', 1.0)))
        frame_size = data.get('frame_size')
        return cls(kpts, float(data.get('score', 0.0)), tuple(frame_size) if frame_size else None)


def mirror(pose: Pose, frame_width: Optional[float] = None) -> Pose:
    """좌/우 키포인트 교환 + 프레임 세로 중심선 기준 x 반전

    카메라 영상은 공연자 기준으로 거울상이지만 리그는 공연자 기준 좌/우로
    작성되어 있으므로 필요합니다. mirror(mirror(p)) == p.
    """
    if frame_width is None:
        frame_width = pose.frame_size[0] if pose.frame_size else 0.0

    flipped = {}
    for label, kpt in pose.keypoints.items():
        target = get_symmetric_pair(label) or label
        flipped[target] = Keypoint(target, frame_width - kpt.x, kpt.y, kpt.confidence)
    return Pose(flipped, pose.score, pose.frame_size)


def joint_angle(
    pose: Pose,
    a: JointLabel,
    b: JointLabel,
    c: JointLabel,
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
) -> Optional[float]:
    """꼭짓점 b에서 b->a 에서 b->c 로의 부호 있는 각도 (-pi, pi]

    세 점 중 하나라도 신뢰도가 낮으면 None (undefined).
    호출하는 쪽은 None일 때 bind 포즈 각도로 폴백해야 합니다.
    """
    if not (pose.is_confident(a, threshold) and pose.is_confident(b, threshold)
            and pose.is_confident(c, threshold)):
        return None

    vertex = pose.keypoints[b].position
    ray_a = pose.keypoints[a].position - vertex
    ray_c = pose.keypoints[c].position - vertex
    if np.linalg.norm(ray_a) < EPSILON or np.linalg.norm(ray_c) < EPSILON:
        return None

    cross = ray_a[0] * ray_c[1] - ray_a[1] * ray_c[0]
    dot = float(np.dot(ray_a, ray_c))
    return math.atan2(cross, dot)


def with_derived_joints(pose: Pose) -> Pose:
    """pelvis(엉덩이 중점), neck(어깨 중점) 추가. 신뢰도 = 두 소스 중 최소값"""
    kpts = dict(pose.keypoints)
    for label, (src_a, src_b) in DERIVED_JOINTS.items():
        ka, kb = pose.keypoints.get(src_a), pose.keypoints.get(src_b)
        if ka is None or kb is None:
            continue
        kpts[label] = Keypoint(
            label, (ka.x + kb.x) / 2, (ka.y + kb.y) / 2, min(ka.confidence, kb.confidence)
        )
    return Pose(kpts, pose.score, pose.frame_size)


def transform_pose(pose: Pose, matrix: np.ndarray) -> Pose:
    """모든 키포인트 위치에 3x3 변환 적용"""
    if not pose.keypoints:
        return pose
    labels = list(pose.keypoints.keys())
    pts = np.array([[pose.keypoints[l].x, pose.keypoints[l].y] for l in labels])
    moved = apply_transform(matrix, pts)
    kpts = {
        l: Keypoint(l, float(p[0]), float(p[1]), pose.keypoints[l].confidence)
        for l, p in zip(labels, moved)
    }
    return Pose(kpts, pose.score, pose.frame_size)


def fit_to_view(pose: Pose, frame_size: Tuple[int, int], view_bounds) -> Pose:
    """카메라 픽셀 좌표 -> 일러스트 좌표 (균일 스케일 + 중앙 정렬)

    Args:
        frame_size: (width, height) 카메라 프레임
        view_bounds: (x, y, width, height) 일러스트 뷰박스
    """
    vx, vy, vw, vh = view_bounds
    # 프레임 -> 뷰 크기, 그 다음 뷰 원점으로 이동
    m = fit_transform(frame_size, (vw, vh))
    m[0, 2] += vx
    m[1, 2] += vy
    return transform_pose(pose, m)
