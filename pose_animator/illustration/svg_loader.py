"""
SVG 문서 -> Scene Graph 로더

- 파싱은 svgelements.SVG.parse 에 맡김 (CSS <style> 클래스, style 속성, <use>,
  단위, 상속되는 fill/stroke, 누적 transform 모두 처리됨)
- 여기서는 그 결과를 Scene 트리로 옮기고 관절 그룹 원점만 추가로 해석
- 모든 좌표는 누적 transform을 적용한 일러스트(문서) 좌표로 저장

관절 그룹의 원점(origin):
1. `data-origin="x,y"` 속성 (그룹 로컬 좌표)
2. 직계 자식 중 class에 `joint`가 있는 circle의 중심 (이 원은 그리지 않음)
"""
import io
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
from svgelements import (
    SVG,
    Arc,
    Circle,
    Close,
    Color,
    CubicBezier,
    Group,
    Line,
    Matrix,
    Move,
    QuadraticBezier,
    Shape,
    Use,
)

from ..utils.geometry import transform_point
from ..utils.io import load_text_source
from .scene import PathStyle, Scene, SceneGroup, ScenePath

logger = logging.getLogger(__name__)

INKSCAPE_LABEL = '{http://www.inkscape.org/namespaces/inkscape}label'

# svgelements 가 요소별 원본 속성(style/CSS 반영)을 보관하는 키
OWN_ATTRIBUTES = 'attributes'

DEFAULT_SIZE = 800.0


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1] if '}' in tag else tag


def _parse_numbers(value: str) -> List[float]:
    return [float(v) for v in re.findall(r'[-+]?[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?', value or '')]


def _parse_ratio(value, default: float = 1.0) -> float:
    """opacity 값 (0~1, 퍼센트 허용)"""
    if value is None:
        return default
    text = str(value).strip()
    nums = _parse_numbers(text)
    if not nums:
        return default
    number = nums[0] / 100.0 if text.endswith('%') else nums[0]
    return min(max(number, 0.0), 1.0)


def _matrix_array(matrix: Optional[Matrix]) -> np.ndarray:
    if matrix is None:
        return np.eye(3)
    m = Matrix(matrix)
    return np.array([
        [m.a, m.c, m.e],
        [m.b, m.d, m.f],
        [0.0, 0.0, 1.0],
    ])


def _own_attributes(element) -> Dict[str, str]:
    values = getattr(element, 'values', None) or {}
    return dict(values.get(OWN_ATTRIBUTES) or {})


def _paint(color: Optional[Color], declared_opacity) -> Tuple[Optional[Tuple[int, int, int]], float]:
    """(RGB 또는 None, 불투명도). fill-opacity / stroke-opacity 가 (상속 포함) 선언되어 있으면 그 값,
    아니면 색 자체의 알파 (#rrggbbaa, rgba())"""
    if color is None or color.value is None:
        return None, 1.0
    if declared_opacity is not None:
        return (int(color.red), int(color.green), int(color.blue)), _parse_ratio(declared_opacity)
    return (int(color.red), int(color.green), int(color.blue)), color.alpha / 255.0


def _shape_tag(shape: Shape) -> str:
    """svgelements 클래스명 -> SVG 태그명 (SimpleLine -> line)"""
    return type(shape).__name__.lower().replace('simple', '')


class SVGLoader:
    """SVG 텍스트를 Scene으로 변환"""

    def __init__(self):
        self._uid = 0
        self._group_uid = 0

    def load(self, source: Union[str, Path]) -> Scene:
        """파일 경로, URL, 또는 SVG 문자열"""
        text = load_text_source(source)
        return self.parse(text)

    def parse(self, text: str) -> Scene:
        self._uid = 0
        self._group_uid = 0
        try:
            root_el = ET.fromstring(text)
        except ET.ParseError as e:
            raise ValueError(f"Invalid SVG document: {e}") from e
        if _local_name(root_el.tag) != 'svg':
            raise ValueError("Not an SVG document (root element is not <svg>)")

        # 퍼센트/누락된 width, height 는 viewBox 크기로 해석 -> viewBox 좌표가 그대로 유지됨
        declared = _parse_numbers(root_el.attrib.get('viewBox', ''))
        has_view_box = len(declared) == 4 and declared[2] > 0 and declared[3] > 0
        width, height = (declared[2], declared[3]) if has_view_box else (DEFAULT_SIZE, DEFAULT_SIZE)

        document = SVG.parse(io.BytesIO(text.encode('utf-8')), reify=False, width=width, height=height)
        if document is None:
            raise ValueError("Not an SVG document")

        root = SceneGroup(name=root_el.attrib.get('id', 'root'), attributes=dict(root_el.attrib))
        self._walk_children(document, root, 1.0)

        if has_view_box or 'width' in root_el.attrib or 'height' in root_el.attrib:
            view_box = (0.0, 0.0, float(document.width), float(document.height))
        else:
            view_box = self._content_bounds(root)

        logger.info(f"[SVG] Loaded {sum(1 for _ in root.iter_paths())} paths, viewBox={view_box}")
        return Scene(root=root, view_box=view_box)

    # ------------------------------------------------------------------
    # 구조 순회
    # ------------------------------------------------------------------
    def _walk_children(self, container, group: SceneGroup, opacity: float):
        marker_origin = None
        for child in container:
            attributes = _own_attributes(child)
            child_opacity = opacity * _parse_ratio(attributes.get('opacity'))

            if isinstance(child, (Group, Use)):
                sub = SceneGroup(name=self._name(attributes, 'g'), attributes=attributes)
                sub.origin = self._declared_origin(attributes, child)
                self._walk_children(child, sub, child_opacity)
                group.children.append(sub)
            elif isinstance(child, Circle) and 'joint' in str(attributes.get('class', '')).split():
                center = np.array([float(child.cx or 0.0), float(child.cy or 0.0)])
                marker_origin = transform_point(_matrix_array(child.transform), center)
            elif isinstance(child, Shape):
                path = self._shape_to_path(child, attributes, child_opacity)
                if path is not None:
                    group.children.append(path)

        if group.origin is None and marker_origin is not None:
            group.origin = marker_origin

    def _name(self, attributes: Dict[str, str], fallback: str) -> str:
        name = attributes.get('id') or attributes.get(INKSCAPE_LABEL)
        if not name:
            name = f"{fallback}-{self._group_uid}"
            self._group_uid += 1
        return name

    def _declared_origin(self, attributes: Dict[str, str], element) -> Optional[np.ndarray]:
        raw = attributes.get('data-origin')
        if raw is None:
            return None
        nums = _parse_numbers(raw)
        if len(nums) != 2:
            raise ValueError(f"Invalid data-origin '{raw}' on '{attributes.get('id', '?')}'")
        return transform_point(_matrix_array(getattr(element, 'transform', None)), np.array(nums))

    # ------------------------------------------------------------------
    # 도형 -> 패스
    # ------------------------------------------------------------------
    def _shape_to_path(self, shape: Shape, attributes: Dict[str, str], opacity: float) -> Optional[ScenePath]:
        commands, points = self._segments(shape)
        if not commands:
            return None

        uid = self._uid
        self._uid += 1
        name = attributes.get('id') or attributes.get(INKSCAPE_LABEL) or f"{_shape_tag(shape)}-{uid}"
        return ScenePath(
            uid=uid,
            name=name,
            commands=tuple(commands),
            points=np.array(points, dtype=float).reshape(-1, 2),
            style=self._style(shape, opacity),
            attributes=attributes,
        )

    def _segments(self, shape: Shape) -> Tuple[List[str], List[Tuple[float, float]]]:
        """누적 transform 이 적용된 세그먼트 -> (명령, 제어점). 호(arc)는 3차 베지어로"""
        commands: List[str] = []
        points: List[Tuple[float, float]] = []
        try:
            segments = shape.segments(transformed=True)
        except (ValueError, ZeroDivisionError) as e:
            logger.warning(f"[SVG] Skipping unreadable shape: {e}")
            return commands, points

        for seg in segments:
            if isinstance(seg, Move):
                commands.append('M')
                points.append((seg.end.x, seg.end.y))
            elif isinstance(seg, Close):
                commands.append('Z')
            elif isinstance(seg, Line):
                commands.append('L')
                points.append((seg.end.x, seg.end.y))
            elif isinstance(seg, QuadraticBezier):
                commands.append('Q')
                points.extend([(seg.control.x, seg.control.y), (seg.end.x, seg.end.y)])
            elif isinstance(seg, CubicBezier):
                commands.append('C')
                points.extend([
                    (seg.control1.x, seg.control1.y),
                    (seg.control2.x, seg.control2.y),
                    (seg.end.x, seg.end.y),
                ])
            elif isinstance(seg, Arc):
                for cubic in seg.as_cubic_curves():
                    commands.append('C')
                    points.extend([
                        (cubic.control1.x, cubic.control1.y),
                        (cubic.control2.x, cubic.control2.y),
                        (cubic.end.x, cubic.end.y),
                    ])

        if commands and commands[0] != 'M':
            # 모든 서브패스는 M 으로 시작해야 함
            return [], []
        return commands, points

    def _style(self, shape: Shape, opacity: float) -> PathStyle:
        inherited = shape.values or {}
        fill, fill_alpha = _paint(shape.fill, inherited.get('fill-opacity'))
        stroke, stroke_alpha = _paint(shape.stroke, inherited.get('stroke-opacity'))
        width = shape.stroke_width
        # 누적 스케일을 선 굵기에 반영
        scale = float(np.sqrt(abs(np.linalg.det(_matrix_array(shape.transform)[:2, :2]))))
        return PathStyle(
            fill=fill,
            stroke=stroke,
            stroke_width=(float(width) if width is not None else 1.0) * scale,
            opacity=opacity,
            fill_opacity=fill_alpha,
            stroke_opacity=stroke_alpha,
        )

    def _content_bounds(self, root: SceneGroup) -> Tuple[float, float, float, float]:
        pts = [p.points for p in root.iter_paths() if len(p.points)]
        if not pts:
            return (0.0, 0.0, DEFAULT_SIZE, DEFAULT_SIZE)
        allp = np.vstack(pts)
        mn, mx = allp.min(axis=0), allp.max(axis=0)
        return (float(mn[0]), float(mn[1]), float(mx[0] - mn[0]) or 1.0, float(mx[1] - mn[1]) or 1.0)


def load_svg(source: Union[str, Path]) -> Scene:
    """편의 함수: 경로/URL/문자열 -> Scene"""
    return SVGLoader().load(source)
