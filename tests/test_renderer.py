import numpy as np

from conftest import make_pose
from pose_animator.illustration.svg_loader import load_svg
from pose_animator.renderers.illustration_renderer import IllustrationRenderer, render_scene
from pose_animator.renderers.skeleton_renderer import SkeletonRenderer, render_skeleton
from pose_animator.transfer.engine import bind_pose

SVG_NS = 'xmlns="http://www.w3.org/2000/svg"'

SQUARE = (
    f'<svg {SVG_NS} viewBox="0 0 100 100">'
    '<rect id="red" x="25" y="25" width="50" height="50" fill="#ff0000"/>'
    '</svg>'
)


def test_render_fills_in_bgr():
    image = render_scene(load_svg(SQUARE), (100, 100))
    assert image.shape == (100, 100, 3)
    assert image.dtype == np.uint8
    assert image[50, 50].tolist() == [0, 0, 255]
    assert image[5, 5].tolist() == [255, 255, 255]


def test_view_box_is_fitted_into_canvas():
    image = render_scene(load_svg(SQUARE), (200, 100))
    # 100x100 뷰박스 -> 세로 100 에 맞춤, 가로 50px 여백
    assert image[50, 100].tolist() == [0, 0, 255]
    assert image[50, 60].tolist() == [255, 255, 255]
    assert image[50, 140].tolist() == [255, 255, 255]


def test_paint_order_follows_document_order():
    scene = load_svg(
        f'<svg {SVG_NS} viewBox="0 0 100 100">'
        '<rect x="0" y="0" width="100" height="100" fill="#0000ff"/>'
        '<rect x="40" y="40" width="20" height="20" fill="#00ff00"/>'
        '</svg>'
    )
    image = render_scene(scene, (100, 100))
    assert image[50, 50].tolist() == [0, 255, 0]
    assert image[10, 10].tolist() == [255, 0, 0]


def test_fill_opacity_blends_with_background():
    scene = load_svg(
        f'<svg {SVG_NS} viewBox="0 0 100 100">'
        '<rect x="0" y="0" width="100" height="100" fill="#000000" fill-opacity="0.5"/>'
        '</svg>'
    )
    image = IllustrationRenderer(background_color=(255, 255, 255)).render(scene, (100, 100))
    assert 120 <= int(image[50, 50, 0]) <= 135


def test_every_frame_starts_from_fresh_canvas():
    renderer = IllustrationRenderer()
    scene = load_svg(SQUARE)
    first = renderer.render(scene, (100, 100))
    second = renderer.render(scene, (100, 100))
    assert np.array_equal(first, second)


def test_skeleton_overlay_draws_confident_points_only():
    pose = make_pose(overrides={})
    image = render_skeleton(pose, (300, 200, 3), kpt_threshold=0.5)
    assert image.any()

    hidden = make_pose(confidence=0.1)
    blank = render_skeleton(hidden, (300, 200, 3), kpt_threshold=0.5)
    assert not blank.any()


def test_rig_overlay(bind_data):
    canvas = np.zeros((300, 200, 3), dtype=np.uint8)
    SkeletonRenderer().render_rig(canvas, bind_data.skeleton, bind_pose(bind_data.skeleton))
    assert canvas.any()
