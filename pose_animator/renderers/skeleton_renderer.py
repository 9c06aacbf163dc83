"""
스켈레톤 렌더링 모듈

라이브 키포인트(카메라 미리보기 위)와 리그 본(일러스트 위)을 시각화합니다. 디버그용.
"""
from typing import Optional, Tuple

import cv2
import numpy as np

from ..extractors.keypoint_constants import BODY_COLORS, get_body_bone_labels
from ..skeleton.keypoint_model import Pose
from ..skeleton.skeleton import Skeleton
from ..transfer.config import SkeletonPose
from ..utils.geometry import identity, transform_point


class SkeletonRenderer:
    """
    스켈레톤 렌더러

    키포인트를 이미지에 시각화합니다.
    """

    def __init__(
        self,
        line_thickness: int = 4,
        point_radius: int = 4,
        kpt_threshold: float = 0.3
    ):
        """
        Args:
            line_thickness: 본 선 굵기
            point_radius: 키포인트 반지름
            kpt_threshold: 키포인트 표시 임계값
        """
        self.line_thickness = line_thickness
        self.point_radius = point_radius
        self.kpt_threshold = kpt_threshold
        self.body_bones = get_body_bone_labels()

    def render(
        self,
        image: np.ndarray,
        pose: Optional[Pose],
        background_color: Optional[Tuple[int, int, int]] = None
    ) -> np.ndarray:
        """
        포즈 렌더링

        Args:
            image: 배경 이미지
            pose: 그릴 포즈 (None이면 배경만)
            background_color: 배경색 (None이면 원본 이미지 사용)

        Returns:
            렌더링된 이미지
        """
        if background_color is not None:
            canvas = np.full(image.shape, background_color, dtype=np.uint8)
        else:
            canvas = image.copy()

        if pose is None:
            return canvas

        # 1. 본 그리기
        for i, (start, end) in enumerate(self.body_bones):
            if not (pose.is_confident(start, self.kpt_threshold) and pose.is_confident(end, self.kpt_threshold)):
                continue
            pt1 = tuple(pose.position(start).astype(int))
            pt2 = tuple(pose.position(end).astype(int))
            color = BODY_COLORS[i % len(BODY_COLORS)]
            cv2.line(canvas, pt1, pt2, color, self.line_thickness, cv2.LINE_AA)

        # 2. 키포인트 그리기
        for label in pose.labels():
            if not pose.is_confident(label, self.kpt_threshold):
                continue
            center = tuple(pose.position(label).astype(int))
            cv2.circle(canvas, center, self.point_radius, (0, 0, 255), -1, cv2.LINE_AA)
            cv2.circle(canvas, center, self.point_radius, (255, 255, 255), 1, cv2.LINE_AA)

        return canvas

    def render_rig(
        self,
        canvas: np.ndarray,
        skeleton: Skeleton,
        skeleton_pose: SkeletonPose,
        view: Optional[np.ndarray] = None,
        color: Tuple[int, int, int] = (255, 100, 100)
    ) -> np.ndarray:
        """
        현재 SkeletonPose 의 본을 일러스트 위에 그리기 (virtual 본 제외)

        Args:
            view: 일러스트 -> 캔버스 변환 (IllustrationRenderer.view_matrix)
        """
        view = identity() if view is None else view
        for bone in skeleton.real_bones():
            start = transform_point(view, skeleton_pose.bone_position(bone.label))
            pt1 = tuple(np.round(start).astype(int))
            if bone.parent is not None and not skeleton[bone.parent].virtual:
                parent = transform_point(view, skeleton_pose.bone_position(bone.parent))
                cv2.line(canvas, tuple(np.round(parent).astype(int)), pt1, color, 2, cv2.LINE_AA)
            cv2.circle(canvas, pt1, self.point_radius, color, -1, cv2.LINE_AA)
        return canvas


def render_skeleton(
    pose: Pose,
    image_shape: Tuple[int, int, int],
    kpt_threshold: float = 0.3
) -> np.ndarray:
    """
    편의 함수: 검은 배경에 스켈레톤 렌더링
    """
    renderer = SkeletonRenderer(kpt_threshold=kpt_threshold)
    return renderer.render(np.zeros(image_shape, dtype=np.uint8), pose)
