import math
import random

import numpy as np
import pytest

from conftest import TPOSE, make_pose, raised_right_arm
from pose_animator.extractors.keypoint_constants import JointLabel
from pose_animator.skeleton.keypoint_model import Pose, mirror
from pose_animator.transfer.config import BonePose, RetargetConfig
from pose_animator.transfer.engine import (
    PoseRetargetingEngine,
    bind_pose,
    evaluation_order,
    forward_kinematics,
)

J = JointLabel

RIGHT_ARM = {J.RIGHT_SHOULDER, J.RIGHT_ELBOW, J.RIGHT_WRIST}


def _engine(skeleton, **kwargs):
    return PoseRetargetingEngine(skeleton, RetargetConfig(**kwargs))


def test_bind_pose_is_identity(skeleton):
    pose = bind_pose(skeleton)
    assert pose.is_identity()
    for bone in skeleton:
        assert pose.bone_position(bone.label) == pytest.approx(bone.origin)


def test_tpose_matching_bind_resolves_to_identity(skeleton, tpose):
    result = _engine(skeleton).retarget(tpose)

    assert result.held_bones == ()
    for label, local in result.pose.locals.items():
        assert local.rotation == pytest.approx(0.0, abs=1e-9), label
        assert local.scale == pytest.approx(1.0), label
    assert result.pose.is_identity(atol=1e-9)
    assert result.pose.translation == pytest.approx([0.0, 0.0])


def test_raised_right_arm_only_moves_arm_chain(skeleton):
    result = _engine(skeleton).retarget(make_pose(raised_right_arm()))
    pose = result.pose

    assert pose.local(J.RIGHT_SHOULDER).rotation == pytest.approx(math.pi / 2)
    assert pose.local(J.RIGHT_ELBOW).rotation == pytest.approx(0.0, abs=1e-9)

    for bone in skeleton:
        skin = pose.skin[bone.label]
        if bone.label in RIGHT_ARM:
            assert not np.allclose(skin, np.eye(3)), bone.label
        else:
            assert np.allclose(skin, np.eye(3), atol=1e-9), bone.label

    # 팔꿈치/손목은 라이브 위치로 이동
    assert pose.bone_position(J.RIGHT_ELBOW) == pytest.approx([70.0, 50.0])
    assert pose.bone_position(J.RIGHT_WRIST) == pytest.approx([70.0, 20.0])


def test_low_confidence_pair_freezes_bone_exactly(skeleton):
    engine = _engine(skeleton)
    previous = engine.retarget(make_pose(raised_right_arm())).pose

    # 같은 포즈에서 팔꿈치만 신뢰도 하락 + 팔꿈치 위치 자체도 엉뚱한 곳
    points = raised_right_arm()
    points[J.RIGHT_ELBOW] = (0.0, 0.0)
    result = engine.retarget(make_pose(points, overrides={J.RIGHT_ELBOW: 0.0}), previous)

    assert set(result.held_bones) == {J.RIGHT_SHOULDER, J.RIGHT_ELBOW}
    for label in (J.RIGHT_SHOULDER, J.RIGHT_ELBOW, J.RIGHT_WRIST):
        assert result.pose.local(label) == previous.local(label)
        assert np.array_equal(result.pose.skin[label], previous.skin[label])
        assert np.array_equal(result.pose.world[label], previous.world[label])


def test_no_confident_keypoints_returns_previous_pose(skeleton):
    engine = _engine(skeleton)
    previous = engine.retarget(make_pose(raised_right_arm())).pose

    result = engine.retarget(Pose(), previous)
    assert result.frozen
    assert result.pose is previous

    result = engine.retarget(make_pose(confidence=0.01), previous)
    assert result.pose is previous


def test_first_frame_without_data_is_bind_pose(skeleton):
    result = _engine(skeleton).retarget(Pose())
    assert result.frozen
    assert result.pose.is_identity()


def test_torso_scale_is_clamped(skeleton):
    points = dict(TPOSE)
    # 몸통 길이 70 -> 210 (x3)
    for label in (J.NOSE, J.LEFT_SHOULDER, J.RIGHT_SHOULDER, J.LEFT_ELBOW,
                  J.RIGHT_ELBOW, J.LEFT_WRIST, J.RIGHT_WRIST):
        x, y = points[label]
        points[label] = (x, y - 140.0)
    result = _engine(skeleton).retarget(make_pose(points))
    assert result.pose.local(J.PELVIS).scale == pytest.approx(1.8)

    squashed = dict(TPOSE)
    for label in (J.LEFT_SHOULDER, J.RIGHT_SHOULDER):
        x, y = squashed[label]
        squashed[label] = (x, 149.0)
    result = _engine(skeleton).retarget(make_pose(squashed))
    assert result.pose.local(J.PELVIS).scale == pytest.approx(0.5)


def test_limb_bones_do_not_scale(skeleton):
    points = dict(TPOSE)
    points[J.LEFT_ELBOW] = (190.0, 80.0)
    points[J.LEFT_WRIST] = (250.0, 80.0)
    result = _engine(skeleton).retarget(make_pose(points))
    assert result.pose.local(J.LEFT_SHOULDER).scale == 1.0


def test_root_translation_follows_pelvis(skeleton):
    shifted = {label: (x + 15.0, y - 5.0) for label, (x, y) in TPOSE.items()}
    result = _engine(skeleton).retarget(make_pose(shifted))
    assert result.pose.translation == pytest.approx([15.0, -5.0])
    assert result.pose.bone_position(J.LEFT_WRIST) == pytest.approx([205.0, 75.0])

    result = _engine(skeleton, follow_translation=False).retarget(make_pose(shifted))
    assert result.pose.translation == pytest.approx([0.0, 0.0])


def test_flip_mirrors_once_before_solving(skeleton):
    frame_width = 200
    live = make_pose(raised_right_arm(), frame_size=(frame_width, 300))
    engine = PoseRetargetingEngine(skeleton, RetargetConfig(fit_to_view=False))

    flipped_input = mirror(live)
    a = engine.retarget(flipped_input, flip=True).pose
    b = engine.retarget(live).pose
    for label in b.skin:
        assert np.allclose(a.skin[label], b.skin[label], atol=1e-9), label


def test_joint_angles_fall_back_to_bind(skeleton):
    engine = _engine(skeleton)
    result = engine.retarget(make_pose(overrides={J.LEFT_WRIST: 0.0}))
    bind_elbow = result.joint_angles['left_elbow']
    assert abs(bind_elbow) == pytest.approx(math.pi)

    bent = dict(TPOSE)
    bent[J.LEFT_WRIST] = (160.0, 110.0)
    result = engine.retarget(make_pose(bent))
    assert abs(result.joint_angles['left_elbow']) == pytest.approx(math.pi / 2)


@pytest.mark.parametrize("seed", range(10))
def test_forward_kinematics_independent_of_input_order(skeleton, seed):
    rng = random.Random(seed)
    locals = {
        bone.label: BonePose(rotation=rng.uniform(-math.pi, math.pi), scale=rng.uniform(0.5, 1.8))
        for bone in skeleton
    }
    translation = np.array([rng.uniform(-20, 20), rng.uniform(-20, 20)])
    expected = forward_kinematics(list(skeleton), locals, translation)

    shuffled = list(skeleton)
    rng.shuffle(shuffled)
    actual = forward_kinematics(shuffled, locals, translation)

    position = {label: i for i, label in enumerate(actual.evaluation_order)}
    for bone in skeleton:
        if bone.parent is not None:
            assert position[bone.parent] < position[bone.label]
        assert np.allclose(actual.world[bone.label], expected.world[bone.label])
        assert np.allclose(actual.skin[bone.label], expected.skin[bone.label])


def test_evaluation_order_rejects_broken_trees(skeleton):
    bones = [b for b in skeleton if b.label != J.PELVIS]
    with pytest.raises(ValueError):
        evaluation_order(bones)


def test_children_attach_to_scaled_parent_end(skeleton):
    pose = forward_kinematics(skeleton, {J.PELVIS: BonePose(0.0, 1.5)})
    # neck 은 pelvis 축을 따라 1.5배 위치
    assert pose.bone_position(J.NECK) == pytest.approx([100.0, 150.0 - 70.0 * 1.5])
    # 자식 자신은 스케일을 물려받지 않음
    assert pose.local(J.NECK).scale == 1.0
    neck_skin = pose.skin[J.NECK]
    assert np.allclose(neck_skin[:2, :2], np.eye(2))


def test_head_tilt_leaves_arms_in_place(skeleton):
    points = dict(TPOSE)
    points[J.NOSE] = (120.0, 60.0)
    pose = _engine(skeleton).retarget(make_pose(points)).pose

    assert not np.allclose(pose.skin[J.NECK], np.eye(3))
    assert np.allclose(pose.skin[J.PELVIS], np.eye(3), atol=1e-9)
    for label in (J.LEFT_SHOULDER, J.LEFT_ELBOW, J.LEFT_WRIST,
                  J.RIGHT_SHOULDER, J.RIGHT_ELBOW, J.RIGHT_WRIST):
        assert np.allclose(pose.skin[label], np.eye(3), atol=1e-9), label


@pytest.mark.parametrize("view_box", [(0.0, 0.0, 200.0, 300.0), None])
def test_flip_without_frame_size_mirrors_about_artwork_center(skeleton, view_box):
    engine = PoseRetargetingEngine(skeleton, RetargetConfig(), view_box=view_box)
    live = make_pose(raised_right_arm())
    assert live.frame_size is None

    a = engine.retarget(mirror(live, 200.0), flip=True).pose
    b = engine.retarget(live).pose
    assert a.translation == pytest.approx([0.0, 0.0])
    for label in b.skin:
        assert np.allclose(a.skin[label], b.skin[label], atol=1e-9), label
