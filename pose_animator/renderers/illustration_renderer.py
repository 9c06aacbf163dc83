"""
일러스트 렌더링 모듈

변형된 Scene 을 OpenCV 캔버스(BGR)에 그립니다.
매 프레임 새 캔버스에 문서 순서대로 칠하므로 이전 프레임 상태가 남지 않습니다.
"""
from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..illustration.scene import PathStyle, Scene, ScenePath
from ..utils.geometry import apply_transform, fit_transform


def _to_bgr(color: Tuple[int, int, int]) -> Tuple[int, int, int]:
    r, g, b = color
    return int(b), int(g), int(r)


class IllustrationRenderer:
    """
    일러스트 렌더러

    베지어는 선분으로 평탄화하고, 채우기는 cv2.fillPoly, 외곽선은 cv2.polylines 로 그립니다.
    """

    def __init__(
        self,
        background_color: Tuple[int, int, int] = (255, 255, 255),
        curve_samples: int = 12,
        antialias: bool = True
    ):
        """
        Args:
            background_color: 배경색 (BGR)
            curve_samples: 베지어 곡선 하나당 샘플 수
            antialias: 외곽선 LINE_AA 사용 여부
        """
        self.background_color = background_color
        self.curve_samples = curve_samples
        self.line_type = cv2.LINE_AA if antialias else cv2.LINE_8

    def view_matrix(self, scene: Scene, canvas_size: Tuple[int, int]) -> np.ndarray:
        """일러스트 뷰박스 -> 캔버스 (균일 스케일 + 중앙 정렬)"""
        vx, vy, vw, vh = scene.view_box
        return fit_transform((vw, vh), canvas_size, (vx, vy))

    def render(
        self,
        scene: Scene,
        canvas_size: Tuple[int, int],
        background_color: Optional[Tuple[int, int, int]] = None
    ) -> np.ndarray:
        """
        Scene 렌더링

        Args:
            scene: 그릴 Scene (보통 SkinningEngine.deform 결과)
            canvas_size: (width, height)
            background_color: None이면 기본 배경색

        Returns:
            (H, W, 3) BGR 이미지
        """
        width, height = int(canvas_size[0]), int(canvas_size[1])
        color = background_color if background_color is not None else self.background_color
        canvas = np.full((height, width, 3), color, dtype=np.uint8)

        view = self.view_matrix(scene, (width, height))
        stroke_scale = float(np.sqrt(abs(np.linalg.det(view[:2, :2]))))

        for path in scene.iter_paths():
            self._draw_path(canvas, path, view, stroke_scale)
        return canvas

    def _draw_path(self, canvas: np.ndarray, path: ScenePath, view: np.ndarray, stroke_scale: float):
        subpaths = path.subpaths(self.curve_samples)
        if not subpaths:
            return
        polylines = [
            (np.round(apply_transform(view, pts)).astype(np.int32), closed)
            for pts, closed in subpaths
            if len(pts) >= 2
        ]
        if not polylines:
            return

        style = path.style
        if style.fill is not None:
            self._fill(canvas, polylines, style)
        if style.stroke is not None and style.stroke_width > 0:
            self._stroke(canvas, polylines, style, stroke_scale)

    def _fill(self, canvas: np.ndarray, polylines: List[Tuple[np.ndarray, bool]], style: PathStyle):
        # 열린 서브패스도 SVG 규칙대로 닫아서 채움
        contours = [pts for pts, _ in polylines if len(pts) >= 3]
        if not contours:
            return
        alpha = style.opacity * style.fill_opacity
        self._blend(canvas, alpha, lambda target: cv2.fillPoly(
            target, contours, _to_bgr(style.fill), self.line_type
        ))

    def _stroke(self, canvas: np.ndarray, polylines: List[Tuple[np.ndarray, bool]],
                style: PathStyle, stroke_scale: float):
        thickness = max(1, int(round(style.stroke_width * stroke_scale)))
        alpha = style.opacity * style.stroke_opacity

        def draw(target):
            for pts, closed in polylines:
                cv2.polylines(target, [pts], closed, _to_bgr(style.stroke), thickness, self.line_type)

        self._blend(canvas, alpha, draw)

    @staticmethod
    def _blend(canvas: np.ndarray, alpha: float, draw):
        if alpha <= 0.0:
            return
        if alpha >= 1.0:
            draw(canvas)
            return
        overlay = canvas.copy()
        draw(overlay)
        cv2.addWeighted(overlay, alpha, canvas, 1.0 - alpha, 0, dst=canvas)


def render_scene(
    scene: Scene,
    canvas_size: Tuple[int, int],
    background_color: Tuple[int, int, int] = (255, 255, 255)
) -> np.ndarray:
    """
    편의 함수: Scene 렌더링
    """
    renderer = IllustrationRenderer(background_color=background_color)
    return renderer.render(scene, canvas_size)
