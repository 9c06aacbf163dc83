"""
Pose Animator
=============

벡터 일러스트(SVG)에 관절 그룹으로 뼈대를 심어 두고, 웹캠 포즈 추정 결과로
실시간으로 움직이는 2D 아바타 시스템입니다.

Features:
- RTMPose(rtmlib) 기반 COCO-17 키포인트 추정
- `joint-<label>` 그룹 규칙으로 일러스트 -> 본 트리 자동 구성 (없는 관절은 virtual 본)
- 본 단위 리타게팅 (상대 회전 + 몸통 스케일), 저신뢰 관절은 이전 프레임 유지
- Linear blend skinning (`data-weights` 소프트 바인딩)
- 최신 요청 우선 비동기 루프, 일러스트 핫스왑

사용법:
```python
from pose_animator import PoseIllustration, load_svg, Pose

illustration = PoseIllustration()
illustration.bind_skeleton(load_svg("avatar.svg"))

illustration.update_skeleton(pose, flip=True)
image = illustration.draw((640, 480))
```

실시간 실행:
```python
from pose_animator import AvatarPipeline, AnimatorConfig

pipeline = AvatarPipeline(AnimatorConfig.load())
pipeline.run("avatar.svg")
```
"""

__version__ = '0.1.0'

from .config import AnimatorConfig, DEFAULT_CONFIG_PATH

from .errors import (
    PoseAnimatorError,
    AcquisitionError,
    UnrecognizedRig,
    MalformedBindWeights,
)

from .extractors.keypoint_constants import JointLabel
from .extractors.pose_estimator import (
    EstimatorOptions,
    PoseEstimator,
    PoseEstimatorFactory,
    RTMLIB_AVAILABLE,
)

from .skeleton import (
    Keypoint,
    Pose,
    mirror,
    joint_angle,
    Bone,
    Skeleton,
    BindData,
    SkeletonBuilder,
    build_skeleton,
)

from .transfer import (
    PoseRetargetingEngine,
    RetargetConfig,
    SkeletonPose,
    forward_kinematics,
)

from .skinning import SkinningEngine

from .illustration import Scene, load_svg
from .illustration.illustration import FrameSnapshot, IllustrationState, PoseIllustration

from .renderers import IllustrationRenderer, SkeletonRenderer

from .pipeline import AvatarPipeline, render_avatar

__all__ = [
    # Config
    'AnimatorConfig',
    'DEFAULT_CONFIG_PATH',

    # Errors
    'PoseAnimatorError',
    'AcquisitionError',
    'UnrecognizedRig',
    'MalformedBindWeights',

    # Extractors
    'JointLabel',
    'EstimatorOptions',
    'PoseEstimator',
    'PoseEstimatorFactory',
    'RTMLIB_AVAILABLE',

    # Skeleton
    'Keypoint',
    'Pose',
    'mirror',
    'joint_angle',
    'Bone',
    'Skeleton',
    'BindData',
    'SkeletonBuilder',
    'build_skeleton',

    # Transfer
    'PoseRetargetingEngine',
    'RetargetConfig',
    'SkeletonPose',
    'forward_kinematics',

    # Skinning
    'SkinningEngine',

    # Illustration
    'Scene',
    'load_svg',
    'FrameSnapshot',
    'IllustrationState',
    'PoseIllustration',

    # Renderers
    'IllustrationRenderer',
    'SkeletonRenderer',

    # Pipeline
    'AvatarPipeline',
    'render_avatar',
]
