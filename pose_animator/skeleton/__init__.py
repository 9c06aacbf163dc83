from .keypoint_model import (
    Keypoint,
    Pose,
    mirror,
    joint_angle,
    with_derived_joints,
    fit_to_view,
    DEFAULT_CONFIDENCE_THRESHOLD,
)
from .skeleton import Bone, Skeleton, SkinRegion, BindData
from .builder import BuilderConfig, SkeletonBuilder, build_skeleton, validate_weights

__all__ = [
    'Keypoint',
    'Pose',
    'mirror',
    'joint_angle',
    'with_derived_joints',
    'fit_to_view',
    'DEFAULT_CONFIDENCE_THRESHOLD',
    'Bone',
    'Skeleton',
    'SkinRegion',
    'BindData',
    'BuilderConfig',
    'SkeletonBuilder',
    'build_skeleton',
    'validate_weights',
]
