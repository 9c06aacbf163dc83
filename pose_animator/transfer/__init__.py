from .config import (
    BonePose,
    RetargetConfig,
    RetargetResult,
    SkeletonPose,
)
from .engine import (
    PoseRetargetingEngine,
    bind_pose,
    evaluation_order,
    forward_kinematics,
)

__all__ = [
    'BonePose',
    'RetargetConfig',
    'RetargetResult',
    'SkeletonPose',
    'PoseRetargetingEngine',
    'bind_pose',
    'evaluation_order',
    'forward_kinematics',
]
