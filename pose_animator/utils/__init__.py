from .geometry import (
    apply_transform,
    fit_transform,
    vector_angle,
    wrap_angle,
)
from .io import (
    load_config,
    save_config,
    save_image,
    load_json,
    save_json,
    load_text_source,
)

__all__ = [
    'apply_transform',
    'fit_transform',
    'vector_angle',
    'wrap_angle',
    'load_config',
    'save_config',
    'save_image',
    'load_json',
    'save_json',
    'load_text_source',
]
