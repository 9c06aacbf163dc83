from .camera import CameraSource
from .scheduler import AnimationLoop, LatestPoseSlot, PoseRequestScheduler, PoseResult
from .status import FrameRateMeter, StatusBoard

__all__ = [
    'CameraSource',
    'AnimationLoop',
    'LatestPoseSlot',
    'PoseRequestScheduler',
    'PoseResult',
    'FrameRateMeter',
    'StatusBoard',
]
