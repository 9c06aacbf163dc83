"""
공용 픽스처: T-포즈 리그 SVG, 포즈 생성 헬퍼
"""
from typing import Dict, Iterable, Optional, Tuple

import pytest

from pose_animator.extractors.keypoint_constants import JointLabel, get_children
from pose_animator.illustration.svg_loader import load_svg
from pose_animator.skeleton.builder import build_skeleton
from pose_animator.skeleton.keypoint_model import Keypoint, Pose

J = JointLabel

# 일러스트 좌표 (y 아래 방향). pelvis/neck 은 엉덩이/어깨 중점과 정확히 일치
TPOSE: Dict[JointLabel, Tuple[float, float]] = {
    J.PELVIS: (100.0, 150.0),
    J.NECK: (100.0, 80.0),
    J.NOSE: (100.0, 60.0),
    J.LEFT_SHOULDER: (130.0, 80.0),
    J.LEFT_ELBOW: (160.0, 80.0),
    J.LEFT_WRIST: (190.0, 80.0),
    J.RIGHT_SHOULDER: (70.0, 80.0),
    J.RIGHT_ELBOW: (40.0, 80.0),
    J.RIGHT_WRIST: (10.0, 80.0),
    J.LEFT_HIP: (110.0, 150.0),
    J.LEFT_KNEE: (110.0, 200.0),
    J.LEFT_ANKLE: (110.0, 250.0),
    J.RIGHT_HIP: (90.0, 150.0),
    J.RIGHT_KNEE: (90.0, 200.0),
    J.RIGHT_ANKLE: (90.0, 250.0),
}

DERIVED = (J.PELVIS, J.NECK)

SOFT_SLEEVE = (
    '<path id="sleeve" d="M 140 76 L 150 76 L 150 84 L 140 84 Z" '
    'data-weights="leftShoulder:0.5, leftElbow:0.5"/>'
)
BAD_SLEEVE = (
    '<path id="bad-sleeve" d="M 40 76 L 50 76 L 50 84 Z" '
    'data-weights="rightShoulder:0.25,rightElbow:0.25"/>'
)
BACKGROUND = '<rect id="floor" x="0" y="280" width="200" height="20" fill="#00ff00"/>'


def _present_children(label: JointLabel, present: Iterable[JointLabel]):
    # 없는 관절은 건너뛰고 그 자식을 바로 붙임
    present = set(present)
    result = []
    for child in get_children(label):
        if child in present:
            result.append(child)
        else:
            result.extend(_present_children(child, present))
    return result


def make_rig_svg(
    joints: Optional[Dict[JointLabel, Tuple[float, float]]] = None,
    extra: str = '',
    nested: bool = True,
    view_box: str = '0 0 200 300'
) -> str:
    joints = TPOSE if joints is None else joints

    def group(label: JointLabel) -> str:
        x, y = joints[label]
        art = (f'<rect id="art-{label.value}" x="{x - 3}" y="{y - 3}" '
               f'width="6" height="6" fill="#ff0000"/>')
        kids = ''.join(group(c) for c in _present_children(label, joints)) if nested else ''
        return f'<g id="joint-{label.value}" data-origin="{x},{y}">{art}{kids}</g>'

    if nested:
        content = group(J.PELVIS)
    else:
        content = ''.join(group(label) for label in joints)
    return (f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="{view_box}">'
            f'{BACKGROUND}{content}{extra}</svg>')


def make_pose(
    points: Optional[Dict[JointLabel, Tuple[float, float]]] = None,
    confidence: float = 1.0,
    overrides: Optional[Dict[JointLabel, float]] = None,
    frame_size: Optional[Tuple[int, int]] = None
) -> Pose:
    """모델이 내는 COCO 키포인트만 (pelvis/neck 제외)"""
    points = TPOSE if points is None else points
    overrides = overrides or {}
    kpts = {
        label: Keypoint(label, x, y, overrides.get(label, confidence))
        for label, (x, y) in points.items()
        if label not in DERIVED
    }
    return Pose(kpts, confidence, frame_size)


def raised_right_arm() -> Dict[JointLabel, Tuple[float, float]]:
    """오른팔을 어깨 기준 90도 위로 든 포즈"""
    points = dict(TPOSE)
    sx, sy = TPOSE[J.RIGHT_SHOULDER]
    points[J.RIGHT_ELBOW] = (sx, sy - 30.0)
    points[J.RIGHT_WRIST] = (sx, sy - 60.0)
    return points


@pytest.fixture
def rig_svg():
    return make_rig_svg(extra=SOFT_SLEEVE + BAD_SLEEVE)


@pytest.fixture
def scene(rig_svg):
    return load_svg(rig_svg)


@pytest.fixture
def bind_data(scene):
    return build_skeleton(scene)


@pytest.fixture
def skeleton(bind_data):
    return bind_data.skeleton


@pytest.fixture
def tpose():
    return make_pose()
