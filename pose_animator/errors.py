"""
에러 분류 (Error taxonomy)

- AcquisitionError: 카메라/모델 사용 불가. 파이프라인에는 치명적이지만 프로세스는 유지,
  사용자에게 메시지로 표시하고 재시도하지 않음.
- UnrecognizedRig: 일러스트에서 필수 관절 라벨을 찾지 못함. bind 실패, 기존 리그 유지.
- MalformedBindWeights: 스킨 가중치 합이 1이 아님. 해당 영역만 정적 렌더링.

저신뢰 프레임(LowConfidenceFrame)은 예외가 아니라 리타게팅 엔진의 freeze-frame으로 처리됩니다.
"""
from typing import Dict, Optional


class PoseAnimatorError(Exception):
    """패키지 공통 베이스 예외"""


class AcquisitionError(PoseAnimatorError):
    """카메라 또는 포즈 모델을 사용할 수 없음"""

    def __init__(self, message: str, source: str = 'camera'):
        super().__init__(message)
        self.source = source


class UnrecognizedRig(PoseAnimatorError):
    """일러스트에서 리그를 구성할 수 없음"""

    def __init__(self, message: str, label: Optional[str] = None):
        super().__init__(message)
        self.label = label


class MalformedBindWeights(PoseAnimatorError):
    """스킨 영역의 가중치가 유효하지 않음 (빌드 시점 검증 실패)"""

    def __init__(self, region: str, weights: Dict[str, float], reason: str):
        super().__init__(f"Region '{region}' has malformed bind weights {weights}: {reason}")
        self.region = region
        self.weights = weights
        self.reason = reason
