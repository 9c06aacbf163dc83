"""
COCO-17 Body 키포인트 + 리그(Rig) 관절 상수 정의

키포인트 구성:
- Body: 0-16 (17개, COCO 순서)
- Derived: pelvis(골반 중심), neck(어깨 중심) - 모델이 직접 내지 않고 계산으로 얻음

일러스트레이션의 관절 그룹 이름(`joint-<label>`)은 여기 정의된 JointLabel과
정확히 일치해야 합니다.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple


class JointLabel(Enum):
    """리그가 인식하는 관절 라벨 (값 = 일러스트 그룹에 쓰는 이름)"""
    NOSE = 'nose'
    LEFT_EYE = 'leftEye'
    RIGHT_EYE = 'rightEye'
    LEFT_EAR = 'leftEar'
    RIGHT_EAR = 'rightEar'
    LEFT_SHOULDER = 'leftShoulder'
    RIGHT_SHOULDER = 'rightShoulder'
    LEFT_ELBOW = 'leftElbow'
    RIGHT_ELBOW = 'rightElbow'
    LEFT_WRIST = 'leftWrist'
    RIGHT_WRIST = 'rightWrist'
    LEFT_HIP = 'leftHip'
    RIGHT_HIP = 'rightHip'
    LEFT_KNEE = 'leftKnee'
    RIGHT_KNEE = 'rightKnee'
    LEFT_ANKLE = 'leftAnkle'
    RIGHT_ANKLE = 'rightAnkle'
    PELVIS = 'pelvis'
    NECK = 'neck'

    @classmethod
    def parse(cls, name: str) -> 'JointLabel':
        """'leftElbow', 'left_elbow', 'LEFT_ELBOW' 모두 허용"""
        key = name.strip()
        for label in cls:
            if key == label.value or key.upper() == label.name:
                return label
        raise ValueError(f"Unknown joint label: {name}")


# =============================================================================
# 키포인트 인덱스 (COCO-17, 모델 출력 순서)
# =============================================================================

COCO_KEYPOINT_ORDER: List[JointLabel] = [
    JointLabel.NOSE,
    JointLabel.LEFT_EYE,
    JointLabel.RIGHT_EYE,
    JointLabel.LEFT_EAR,
    JointLabel.RIGHT_EAR,
    JointLabel.LEFT_SHOULDER,
    JointLabel.RIGHT_SHOULDER,
    JointLabel.LEFT_ELBOW,
    JointLabel.RIGHT_ELBOW,
    JointLabel.LEFT_WRIST,
    JointLabel.RIGHT_WRIST,
    JointLabel.LEFT_HIP,
    JointLabel.RIGHT_HIP,
    JointLabel.LEFT_KNEE,
    JointLabel.RIGHT_KNEE,
    JointLabel.LEFT_ANKLE,
    JointLabel.RIGHT_ANKLE,
]

BODY_KEYPOINTS: Dict[JointLabel, int] = {label: i for i, label in enumerate(COCO_KEYPOINT_ORDER)}

# 계산으로 얻는 관절: (라벨, (소스 A, 소스 B)) -> 두 점의 중점
DERIVED_JOINTS: Dict[JointLabel, Tuple[JointLabel, JointLabel]] = {
    JointLabel.PELVIS: (JointLabel.LEFT_HIP, JointLabel.RIGHT_HIP),
    JointLabel.NECK: (JointLabel.LEFT_SHOULDER, JointLabel.RIGHT_SHOULDER),
}

# =============================================================================
# 대칭 쌍 (Symmetric Pairs)
# =============================================================================

SYMMETRIC_BODY_PAIRS: List[Tuple[JointLabel, JointLabel]] = [
    (JointLabel.LEFT_EYE, JointLabel.RIGHT_EYE),
    (JointLabel.LEFT_EAR, JointLabel.RIGHT_EAR),
    (JointLabel.LEFT_SHOULDER, JointLabel.RIGHT_SHOULDER),
    (JointLabel.LEFT_ELBOW, JointLabel.RIGHT_ELBOW),
    (JointLabel.LEFT_WRIST, JointLabel.RIGHT_WRIST),
    (JointLabel.LEFT_HIP, JointLabel.RIGHT_HIP),
    (JointLabel.LEFT_KNEE, JointLabel.RIGHT_KNEE),
    (JointLabel.LEFT_ANKLE, JointLabel.RIGHT_ANKLE),
]

# =============================================================================
# 계층 구조 (부모, look-at 자식)
# =============================================================================

# label -> (canonical parent, look-at child)
# look-at 자식이 None이면 leaf 본 (고정 길이, 부모 방향을 따름)
BONE_TABLE: Dict[JointLabel, Tuple[Optional[JointLabel], Optional[JointLabel]]] = {
    # 루트 (골반 -> 목 : 몸통)
    JointLabel.PELVIS: (None, JointLabel.NECK),
    JointLabel.NECK: (JointLabel.PELVIS, JointLabel.NOSE),

    # 머리
    JointLabel.NOSE: (JointLabel.NECK, None),
    JointLabel.LEFT_EYE: (JointLabel.NOSE, None),
    JointLabel.RIGHT_EYE: (JointLabel.NOSE, None),
    JointLabel.LEFT_EAR: (JointLabel.NOSE, None),
    JointLabel.RIGHT_EAR: (JointLabel.NOSE, None),

    # 팔
    JointLabel.LEFT_SHOULDER: (JointLabel.PELVIS, JointLabel.LEFT_ELBOW),
    JointLabel.LEFT_ELBOW: (JointLabel.LEFT_SHOULDER, JointLabel.LEFT_WRIST),
    JointLabel.LEFT_WRIST: (JointLabel.LEFT_ELBOW, None),
    JointLabel.RIGHT_SHOULDER: (JointLabel.PELVIS, JointLabel.RIGHT_ELBOW),
    JointLabel.RIGHT_ELBOW: (JointLabel.RIGHT_SHOULDER, JointLabel.RIGHT_WRIST),
    JointLabel.RIGHT_WRIST: (JointLabel.RIGHT_ELBOW, None),

    # 다리
    JointLabel.LEFT_HIP: (JointLabel.PELVIS, JointLabel.LEFT_KNEE),
    JointLabel.LEFT_KNEE: (JointLabel.LEFT_HIP, JointLabel.LEFT_ANKLE),
    JointLabel.LEFT_ANKLE: (JointLabel.LEFT_KNEE, None),
    JointLabel.RIGHT_HIP: (JointLabel.PELVIS, JointLabel.RIGHT_KNEE),
    JointLabel.RIGHT_KNEE: (JointLabel.RIGHT_HIP, JointLabel.RIGHT_ANKLE),
    JointLabel.RIGHT_ANKLE: (JointLabel.RIGHT_KNEE, None),
}

ROOT_JOINT = JointLabel.PELVIS

# 관절 각도 진단용 삼중쌍 (a, 꼭짓점 b, c)
JOINT_ANGLE_TRIPLETS: Dict[str, Tuple[JointLabel, JointLabel, JointLabel]] = {
    'left_elbow': (JointLabel.LEFT_SHOULDER, JointLabel.LEFT_ELBOW, JointLabel.LEFT_WRIST),
    'right_elbow': (JointLabel.RIGHT_SHOULDER, JointLabel.RIGHT_ELBOW, JointLabel.RIGHT_WRIST),
    'left_shoulder': (JointLabel.NECK, JointLabel.LEFT_SHOULDER, JointLabel.LEFT_ELBOW),
    'right_shoulder': (JointLabel.NECK, JointLabel.RIGHT_SHOULDER, JointLabel.RIGHT_ELBOW),
    'left_knee': (JointLabel.LEFT_HIP, JointLabel.LEFT_KNEE, JointLabel.LEFT_ANKLE),
    'right_knee': (JointLabel.RIGHT_HIP, JointLabel.RIGHT_KNEE, JointLabel.RIGHT_ANKLE),
    'left_hip': (JointLabel.PELVIS, JointLabel.LEFT_HIP, JointLabel.LEFT_KNEE),
    'right_hip': (JointLabel.PELVIS, JointLabel.RIGHT_HIP, JointLabel.RIGHT_KNEE),
}

# =============================================================================
# 본(Bone) 연결 관계 - 디버그 오버레이용
# =============================================================================

BODY_BONES: List[Tuple[JointLabel, JointLabel]] = [
    # 몸통
    (JointLabel.LEFT_SHOULDER, JointLabel.RIGHT_SHOULDER),
    (JointLabel.LEFT_SHOULDER, JointLabel.LEFT_HIP),
    (JointLabel.RIGHT_SHOULDER, JointLabel.RIGHT_HIP),
    (JointLabel.LEFT_HIP, JointLabel.RIGHT_HIP),

    # 팔
    (JointLabel.LEFT_SHOULDER, JointLabel.LEFT_ELBOW),
    (JointLabel.LEFT_ELBOW, JointLabel.LEFT_WRIST),
    (JointLabel.RIGHT_SHOULDER, JointLabel.RIGHT_ELBOW),
    (JointLabel.RIGHT_ELBOW, JointLabel.RIGHT_WRIST),

    # 다리
    (JointLabel.LEFT_HIP, JointLabel.LEFT_KNEE),
    (JointLabel.LEFT_KNEE, JointLabel.LEFT_ANKLE),
    (JointLabel.RIGHT_HIP, JointLabel.RIGHT_KNEE),
    (JointLabel.RIGHT_KNEE, JointLabel.RIGHT_ANKLE),

    # 머리
    (JointLabel.NOSE, JointLabel.LEFT_EYE),
    (JointLabel.NOSE, JointLabel.RIGHT_EYE),
    (JointLabel.LEFT_EYE, JointLabel.LEFT_EAR),
    (JointLabel.RIGHT_EYE, JointLabel.RIGHT_EAR),
]

# =============================================================================
# 렌더링 색상
# =============================================================================

# OpenPose 스타일 색상 (BGR)
BODY_COLORS = [
    (255, 0, 0),     # 0: 빨강
    (255, 85, 0),    # 1
    (255, 170, 0),   # 2
    (255, 255, 0),   # 3: 노랑
    (170, 255, 0),   # 4
    (85, 255, 0),    # 5
    (0, 255, 0),     # 6: 초록
    (0, 255, 85),    # 7
    (0, 255, 170),   # 8
    (0, 255, 255),   # 9: 시안
    (0, 170, 255),   # 10
    (0, 85, 255),    # 11
    (0, 0, 255),     # 12: 파랑
    (85, 0, 255),    # 13
    (170, 0, 255),   # 14
    (255, 0, 255),   # 15: 마젠타
]

# =============================================================================
# 유틸리티 함수
# =============================================================================

def get_symmetric_pair(label: JointLabel) -> Optional[JointLabel]:
    """대칭 관절 라벨 가져오기"""
    for left, right in SYMMETRIC_BODY_PAIRS:
        if label == left:
            return right
        elif label == right:
            return left
    return None


def get_children(label: JointLabel) -> List[JointLabel]:
    """정규 계층에서 직접 자식 목록"""
    return [child for child, (parent, _) in BONE_TABLE.items() if parent == label]


def canonical_order() -> List[JointLabel]:
    """루트부터 내려가는 정규 계층 순서 (부모가 항상 자식보다 먼저)"""
    order = [ROOT_JOINT]
    for label in order:
        order.extend(get_children(label))
    return order


def get_body_bone_labels() -> List[Tuple[JointLabel, JointLabel]]:
    """디버그 본 연결 목록"""
    return list(BODY_BONES)
