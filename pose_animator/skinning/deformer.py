"""
Skinning / Deformation Engine

Linear blend skinning:
    p' = sum_i( w_i * Skin_i . p ),  Skin_i = World_i . S_i . Bind_i^-1

항상 bind 시점의 지오메트리에서 다시 계산합니다 (이전 프레임 결과를 입력으로 쓰지 않음).
따라서 같은 SkeletonPose 를 넣으면 이전 프레임 이력과 무관하게 같은 결과가 나옵니다.
"""
import logging
from typing import Dict, Optional

import numpy as np

from ..illustration.scene import Scene, ScenePath
from ..skeleton.skeleton import BindData, SkinRegion
from ..transfer.config import SkeletonPose
from ..utils.geometry import apply_transform

logger = logging.getLogger(__name__)


def blend_matrix(region: SkinRegion, pose: SkeletonPose) -> np.ndarray:
    """가중 평균 스킨 행렬 (선형이므로 점별 블렌딩과 동일)"""
    matrix = np.zeros((3, 3))
    for label, weight in region.weights:
        matrix += weight * pose.skin[label]
    return matrix


def skin_points(points: np.ndarray, region: Optional[SkinRegion], pose: SkeletonPose) -> np.ndarray:
    if region is None or len(points) == 0:
        return np.array(points, dtype=float)
    if region.is_rigid:
        return apply_transform(pose.skin[region.weights[0][0]], points)
    return apply_transform(blend_matrix(region, pose), points)


class SkinningEngine:
    """BindData + SkeletonPose -> 변형된 Scene (구조, 순서, 스타일 동일)"""

    def deform(self, bind_data: BindData, pose: SkeletonPose) -> Scene:
        regions: Dict[int, SkinRegion] = bind_data.regions

        def deform_path(path: ScenePath) -> ScenePath:
            # 바인딩되지 않은/거부된 패스는 bind 지오메트리 그대로 (정적 표시)
            return path.with_points(skin_points(path.points, regions.get(path.uid), pose))

        return bind_data.scene.map_paths(deform_path)


def deform(bind_data: BindData, pose: SkeletonPose) -> Scene:
    """편의 함수"""
    return SkinningEngine().deform(bind_data, pose)
