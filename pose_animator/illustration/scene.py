"""
벡터 일러스트 Scene Graph

SVG 문서를 읽어 만든 일반적인 그룹/패스 트리입니다. 리그로서의 해석은
skeleton.builder 가 담당하고, 여기서는 구조와 페인트 속성만 보관합니다.

패스 지오메트리는 명령 시퀀스 + 제어점 배열로 표현합니다.
    M: 1점, L: 1점, Q: 2점, C: 3점, Z: 0점
아핀 변환은 제어점에 그대로 적용해도 베지어 곡선이 정확히 보존됩니다.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np

POINTS_PER_COMMAND = {'M': 1, 'L': 1, 'Q': 2, 'C': 3, 'Z': 0}

Color = Tuple[int, int, int]  # RGB


@dataclass(frozen=True)
class PathStyle:
    fill: Optional[Color] = (0, 0, 0)
    stroke: Optional[Color] = None
    stroke_width: float = 1.0
    opacity: float = 1.0
    fill_opacity: float = 1.0
    stroke_opacity: float = 1.0


@dataclass(eq=False)
class ScenePath:
    """단일 패스 (그려지는 최소 단위)"""
    uid: int
    name: str
    commands: Tuple[str, ...]
    points: np.ndarray
    style: PathStyle = field(default_factory=PathStyle)
    attributes: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.points = np.asarray(self.points, dtype=float).reshape(-1, 2)
        expected = sum(POINTS_PER_COMMAND[c] for c in self.commands)
        if expected != len(self.points):
            raise ValueError(
                f"Path '{self.name}': commands need {expected} points, got {len(self.points)}"
            )

    def with_points(self, points: np.ndarray) -> 'ScenePath':
        """같은 구조/스타일, 새 지오메트리 (원본은 변경하지 않음)"""
        return replace(self, points=np.array(points, dtype=float), attributes=dict(self.attributes))

    def bounds(self) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        if len(self.points) == 0:
            return None
        return self.points.min(axis=0), self.points.max(axis=0)

    def subpaths(self, curve_samples: int = 12) -> List[Tuple[np.ndarray, bool]]:
        """베지어를 평탄화한 폴리라인 목록 [(points (K,2), closed)]"""
        result = []
        current: List[np.ndarray] = []
        start = None
        idx = 0
        for cmd in self.commands:
            if cmd == 'M':
                if len(current) > 1:
                    result.append((np.array(current), False))
                start = self.points[idx]
                current = [start]
                idx += 1
            elif cmd == 'L':
                current.append(self.points[idx])
                idx += 1
            elif cmd == 'Q':
                p0 = current[-1]
                p1, p2 = self.points[idx], self.points[idx + 1]
                current.extend(_sample_quadratic(p0, p1, p2, curve_samples))
                idx += 2
            elif cmd == 'C':
                p0 = current[-1]
                p1, p2, p3 = self.points[idx], self.points[idx + 1], self.points[idx + 2]
                current.extend(_sample_cubic(p0, p1, p2, p3, curve_samples))
                idx += 3
            elif cmd == 'Z':
                if len(current) > 1:
                    result.append((np.array(current), True))
                current = [start] if start is not None else []
        if len(current) > 1:
            result.append((np.array(current), False))
        return result


@dataclass(eq=False)
class SceneGroup:
    """그룹 노드. children 순서 = 문서 순서 = 페인트 순서"""
    name: str
    children: List[Union['SceneGroup', ScenePath]] = field(default_factory=list)
    attributes: Dict[str, str] = field(default_factory=dict)
    origin: Optional[np.ndarray] = None

    def iter_paths(self) -> Iterator[ScenePath]:
        for child in self.children:
            if isinstance(child, SceneGroup):
                yield from child.iter_paths()
            else:
                yield child

    def find(self, name: str) -> Optional[Union['SceneGroup', ScenePath]]:
        for child in self.children:
            if child.name == name:
                return child
            if isinstance(child, SceneGroup):
                found = child.find(name)
                if found is not None:
                    return found
        return None


@dataclass
class Scene:
    """문서 전체 (뷰박스 + 루트 그룹)"""
    root: SceneGroup
    view_box: Tuple[float, float, float, float]  # (x, y, width, height)

    @property
    def width(self) -> float:
        return self.view_box[2]

    @property
    def height(self) -> float:
        return self.view_box[3]

    def iter_paths(self) -> Iterator[ScenePath]:
        return self.root.iter_paths()

    def path_count(self) -> int:
        return sum(1 for _ in self.iter_paths())

    def map_paths(self, fn) -> 'Scene':
        """모든 패스를 fn(path) 결과로 바꾼 새 Scene (구조/순서 동일)"""
        return Scene(_map_group(self.root, fn), self.view_box)


def _map_group(group: SceneGroup, fn) -> SceneGroup:
    children = []
    for child in group.children:
        if isinstance(child, SceneGroup):
            children.append(_map_group(child, fn))
        else:
            children.append(fn(child))
    origin = None if group.origin is None else group.origin.copy()
    return SceneGroup(group.name, children, dict(group.attributes), origin)


def _sample_quadratic(p0, p1, p2, samples: int) -> List[np.ndarray]:
    t = np.linspace(0.0, 1.0, samples + 1)[1:, None]
    pts = (1 - t) ** 2 * p0 + 2 * (1 - t) * t * p1 + t ** 2 * p2
    return list(pts)


def _sample_cubic(p0, p1, p2, p3, samples: int) -> List[np.ndarray]:
    t = np.linspace(0.0, 1.0, samples + 1)[1:, None]
    pts = ((1 - t) ** 3 * p0 + 3 * (1 - t) ** 2 * t * p1
           + 3 * (1 - t) * t ** 2 * p2 + t ** 3 * p3)
    return list(pts)
