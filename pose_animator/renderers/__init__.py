from .illustration_renderer import IllustrationRenderer, render_scene
from .skeleton_renderer import SkeletonRenderer, render_skeleton

__all__ = ['IllustrationRenderer', 'render_scene', 'SkeletonRenderer', 'render_skeleton']
