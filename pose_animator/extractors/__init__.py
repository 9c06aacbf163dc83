from .keypoint_constants import (
    JointLabel,
    BODY_KEYPOINTS,
    BONE_TABLE,
    COCO_KEYPOINT_ORDER,
    DERIVED_JOINTS,
    ROOT_JOINT,
    SYMMETRIC_BODY_PAIRS,
    canonical_order,
    get_symmetric_pair,
)

__all__ = [
    'JointLabel',
    'BODY_KEYPOINTS',
    'BONE_TABLE',
    'COCO_KEYPOINT_ORDER',
    'DERIVED_JOINTS',
    'ROOT_JOINT',
    'SYMMETRIC_BODY_PAIRS',
    'canonical_order',
    'get_symmetric_pair',
]
