"""
2D 기하 유틸리티

모든 변환은 3x3 동차(homogeneous) 행렬로 표현합니다. 점 배열은 (N, 2).
"""
import math

import numpy as np

EPSILON = 1e-9


def vector_angle(vec: np.ndarray) -> float:
    """벡터의 방향각 (라디안, atan2)"""
    return math.atan2(float(vec[1]), float(vec[0]))


def wrap_angle(angle: float) -> float:
    """(-pi, pi] 범위로 정규화"""
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


def identity() -> np.ndarray:
    return np.eye(3)


def translation_matrix(tx: float, ty: float) -> np.ndarray:
    m = np.eye(3)
    m[0, 2] = tx
    m[1, 2] = ty
    return m


def rotation_matrix(angle: float) -> np.ndarray:
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    return np.array([
        [cos_a, -sin_a, 0.0],
        [sin_a, cos_a, 0.0],
        [0.0, 0.0, 1.0],
    ])


def axis_scale_matrix(scale: float) -> np.ndarray:
    """본 로컬 x축(본 방향)으로만 스케일"""
    m = np.eye(3)
    m[0, 0] = scale
    return m


def rigid_matrix(position: np.ndarray, angle: float) -> np.ndarray:
    """T(position) . R(angle)"""
    return translation_matrix(float(position[0]), float(position[1])) @ rotation_matrix(angle)


def invert_rigid(matrix: np.ndarray) -> np.ndarray:
    """회전+이동 행렬의 역행렬 (전치 이용)"""
    rot = matrix[:2, :2]
    inv = np.eye(3)
    inv[:2, :2] = rot.T
    inv[:2, 2] = -rot.T @ matrix[:2, 2]
    return inv


def apply_transform(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """(N, 2) 점 배열에 3x3 변환 적용"""
    points = np.asarray(points, dtype=float)
    if points.size == 0:
        return points.reshape(0, 2)
    return points @ matrix[:2, :2].T + matrix[:2, 2]


def transform_point(matrix: np.ndarray, point: np.ndarray) -> np.ndarray:
    return apply_transform(matrix, np.asarray(point, dtype=float).reshape(1, 2))[0]


def matrix_rotation(matrix: np.ndarray) -> float:
    return math.atan2(matrix[1, 0], matrix[0, 0])


def fit_transform(src_size, dst_size, src_origin=(0.0, 0.0)) -> np.ndarray:
    """src 영역을 dst 영역 안에 균일 스케일 + 중앙 정렬로 맞추는 변환

    Args:
        src_size: (width, height)
        dst_size: (width, height)
        src_origin: src 영역의 좌상단 좌표
    """
    src_w, src_h = float(src_size[0]), float(src_size[1])
    dst_w, dst_h = float(dst_size[0]), float(dst_size[1])
    if src_w < EPSILON or src_h < EPSILON:
        return identity()
    scale = min(dst_w / src_w, dst_h / src_h)
    offset_x = (dst_w - src_w * scale) / 2 - src_origin[0] * scale
    offset_y = (dst_h - src_h * scale) / 2 - src_origin[1] * scale
    m = np.eye(3)
    m[0, 0] = m[1, 1] = scale
    m[0, 2] = offset_x
    m[1, 2] = offset_y
    return m
