from .scene import PathStyle, Scene, SceneGroup, ScenePath
from .svg_loader import SVGLoader, load_svg

__all__ = [
    'PathStyle',
    'Scene',
    'SceneGroup',
    'ScenePath',
    'SVGLoader',
    'load_svg',
]
