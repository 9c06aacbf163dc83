"""
RTMPose 기반 포즈 추정기

rtmlib Body(COCO-17) 모델을 감싸서 프레임 -> List[Pose] 를 반환합니다.
모델 출력 이외의 후처리(좌우 반전, 점수 필터, NMS, 최대 인원)는 여기서 처리합니다.
"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import cv2
import numpy as np

from ..errors import AcquisitionError
from ..skeleton.keypoint_model import Pose

logger = logging.getLogger(__name__)

try:
    from rtmlib import Body
    RTMLIB_AVAILABLE = True
except ImportError:
    RTMLIB_AVAILABLE = False
    logger.warning("rtmlib not installed. Run: pip install rtmlib onnxruntime")


@dataclass
class EstimatorOptions:
    flip_horizontal: bool = False
    max_detections: int = 1
    score_threshold: float = 0.3
    nms_radius: float = 20.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'EstimatorOptions':
        data = data or {}
        return cls(
            flip_horizontal=data.get('flip_horizontal', False),
            max_detections=data.get('max_detections', 1),
            score_threshold=data.get('score_threshold', 0.3),
            nms_radius=data.get('nms_radius', 20.0),
        )


def _pose_distance(a: Pose, b: Pose, threshold: float) -> Optional[float]:
    """양쪽 모두 신뢰할 만한 키포인트들의 평균 거리"""
    dists = [
        float(np.linalg.norm(a.position(label) - b.position(label)))
        for label in a.labels()
        if a.is_confident(label, threshold) and b.is_confident(label, threshold)
    ]
    return float(np.mean(dists)) if dists else None


def suppress_duplicates(poses: List[Pose], nms_radius: float, threshold: float) -> List[Pose]:
    """점수 순으로 정렬 후, 이미 채택된 포즈와 nms_radius 이내로 겹치는 포즈 제거"""
    kept: List[Pose] = []
    for pose in sorted(poses, key=lambda p: p.score, reverse=True):
        duplicate = False
        for other in kept:
            dist = _pose_distance(pose, other, threshold)
            if dist is not None and dist < nms_radius:
                duplicate = True
                break
        if not duplicate:
            kept.append(pose)
    return kept


class PoseEstimator:
    """
    RTMPose Body 키포인트 추정기

    17 키포인트 (COCO 순서). 검출된 인물마다 Pose 하나.
    """

    def __init__(
        self,
        backend: str = 'onnxruntime',
        device: str = 'cpu',
        mode: str = 'balanced',
        model: Optional[Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]] = None
    ):
        """
        Args:
            backend: 'onnxruntime', 'opencv', 'openvino'
            device: 'cpu', 'cuda', 'mps'
            mode: 'performance', 'balanced', 'lightweight'
            model: image -> (keypoints (N,17,2), scores (N,17)) 호출 가능 객체 (None이면 rtmlib Body)
        """
        self.backend = backend
        self.device = device
        self.mode = mode

        if model is None:
            model = self._init_model()
        self.model = model

    def _init_model(self):
        if not RTMLIB_AVAILABLE:
            raise AcquisitionError("rtmlib is not installed", source='model')

        logger.info(f"Initializing RTMPose body model (backend={self.backend}, "
                    f"device={self.device}, mode={self.mode})")
        try:
            model = Body(mode=self.mode, backend=self.backend, device=self.device)
        except Exception as e:
            raise AcquisitionError(f"Failed to load pose model: {e}", source='model') from e
        logger.info("Pose model initialized")
        return model

    def estimate(
        self,
        image: Union[np.ndarray, str, Path],
        options: Optional[EstimatorOptions] = None
    ) -> List[Pose]:
        """
        이미지에서 포즈 추정

        Args:
            image: BGR 이미지 배열 또는 이미지 경로
            options: 후처리 옵션

        Returns:
            점수 내림차순 Pose 목록 (최대 max_detections). 검출 없으면 빈 리스트.
        """
        options = options or EstimatorOptions()

        if isinstance(image, (str, Path)):
            img = cv2.imread(str(image))
            if img is None:
                raise AcquisitionError(f"Cannot load image: {image}", source='image')
        else:
            img = image

        if options.flip_horizontal:
            img = cv2.flip(img, 1)

        h, w = img.shape[:2]
        keypoints, scores = self.model(img)
        keypoints = np.asarray(keypoints, dtype=float)
        scores = np.asarray(scores, dtype=float)
        if keypoints.size == 0:
            return []
        if keypoints.ndim == 2:
            keypoints, scores = keypoints[None], scores[None]

        poses = [Pose.from_arrays(k, s, frame_size=(w, h)) for k, s in zip(keypoints, scores)]
        poses = [p for p in poses if p.score >= options.score_threshold]
        poses = suppress_duplicates(poses, options.nms_radius, options.score_threshold)
        return poses[:max(0, options.max_detections)]

    def estimate_single(
        self,
        image: Union[np.ndarray, str, Path],
        options: Optional[EstimatorOptions] = None
    ) -> Optional[Pose]:
        """첫 번째(최고 점수) 포즈만. 없으면 None"""
        poses = self.estimate(image, options)
        return poses[0] if poses else None

    async def estimate_async(
        self,
        image: np.ndarray,
        options: Optional[EstimatorOptions] = None
    ) -> List[Pose]:
        """추론은 워커 스레드에서 (이벤트 루프를 막지 않음)"""
        return await asyncio.to_thread(self.estimate, image, options)


class PoseEstimatorFactory:
    """포즈 추정기 팩토리 (싱글톤 패턴)"""

    _instance: Optional[PoseEstimator] = None
    _config: Optional[Dict[str, Any]] = None

    @classmethod
    def get_instance(
        cls,
        backend: str = 'onnxruntime',
        device: str = 'cpu',
        mode: str = 'balanced',
        force_new: bool = False
    ) -> PoseEstimator:
        """
        PoseEstimator 인스턴스 반환 (싱글톤)

        Args:
            force_new: True면 기존 인스턴스 무시하고 새로 생성
        """
        new_config = {
            'backend': backend,
            'device': device,
            'mode': mode,
        }

        # 설정이 변경되었거나 인스턴스가 없으면 새로 생성
        if force_new or cls._instance is None or cls._config != new_config:
            cls._instance = PoseEstimator(**new_config)
            cls._config = new_config

        return cls._instance

    @classmethod
    def release(cls):
        """인스턴스 해제"""
        cls._instance = None
        cls._config = None
