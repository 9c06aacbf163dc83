"""
전체 설정 (configs/default.yaml)
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .extractors.pose_estimator import EstimatorOptions
from .skeleton.builder import BuilderConfig
from .transfer.config import RetargetConfig
from .utils.io import load_config

DEFAULT_CONFIG_PATH = Path(__file__).parent / "configs" / "default.yaml"


@dataclass
class AnimatorConfig:
    # 모델
    backend: str = 'onnxruntime'
    device: str = 'cpu'
    mode: str = 'balanced'

    # 카메라
    camera_device: Union[int, str] = 0
    camera_width: int = 640
    camera_height: int = 480

    # 렌더링
    canvas_width: int = 640
    canvas_height: int = 480
    background_color: Tuple[int, int, int] = (255, 255, 255)
    curve_samples: int = 12
    antialias: bool = True
    show_keypoints: bool = True
    show_rig: bool = False
    show_fps: bool = True

    # 루프
    fps: float = 30.0
    flip_horizontal: bool = True

    estimator: EstimatorOptions = field(default_factory=EstimatorOptions)
    retarget: RetargetConfig = field(default_factory=RetargetConfig)
    skeleton: BuilderConfig = field(default_factory=BuilderConfig)

    # 원본 yaml (디버그용)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.canvas_width, self.canvas_height

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> 'AnimatorConfig':
        config = config or {}
        model = config.get('model', {})
        camera = config.get('camera', {})
        rendering = config.get('rendering', {})
        loop = config.get('loop', {})

        return cls(
            backend=model.get('backend', 'onnxruntime'),
            device=model.get('device', 'cpu'),
            mode=model.get('mode', 'balanced'),
            camera_device=camera.get('device', 0),
            camera_width=camera.get('width', 640),
            camera_height=camera.get('height', 480),
            canvas_width=rendering.get('canvas_width', 640),
            canvas_height=rendering.get('canvas_height', 480),
            background_color=tuple(rendering.get('background_color', (255, 255, 255))),
            curve_samples=rendering.get('curve_samples', 12),
            antialias=rendering.get('antialias', True),
            show_keypoints=rendering.get('show_keypoints', True),
            show_rig=rendering.get('show_rig', False),
            show_fps=rendering.get('show_fps', True),
            fps=loop.get('fps', 30.0),
            flip_horizontal=loop.get('flip_horizontal', True),
            estimator=EstimatorOptions.from_dict(config.get('estimator')),
            retarget=RetargetConfig.from_dict(config.get('retarget')),
            skeleton=BuilderConfig.from_dict(config.get('skeleton')),
            raw=config,
        )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'AnimatorConfig':
        return cls.from_dict(load_config(yaml_path))

    @classmethod
    def load(cls, yaml_path: Optional[Union[str, Path]] = None) -> 'AnimatorConfig':
        """경로가 없으면 기본 설정 파일, 그것도 없으면 기본값"""
        path = Path(yaml_path) if yaml_path else DEFAULT_CONFIG_PATH
        if path.exists():
            return cls.from_yaml(path)
        return cls()
