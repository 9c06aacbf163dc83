import numpy as np
import pytest

from conftest import make_pose, raised_right_arm
from pose_animator.extractors.keypoint_constants import JointLabel
from pose_animator.skinning.deformer import SkinningEngine, blend_matrix
from pose_animator.transfer.config import BonePose
from pose_animator.transfer.engine import PoseRetargetingEngine, bind_pose, forward_kinematics

J = JointLabel


def _points_by_name(scene):
    return {p.name: p.points for p in scene.iter_paths()}


def test_bind_pose_reproduces_bind_geometry(bind_data):
    deformed = SkinningEngine().deform(bind_data, bind_pose(bind_data.skeleton))
    original = _points_by_name(bind_data.scene)
    for name, pts in _points_by_name(deformed).items():
        assert np.allclose(pts, original[name]), name


def test_tpose_deforms_to_bind_geometry(bind_data, tpose):
    result = PoseRetargetingEngine(bind_data.skeleton).retarget(tpose)
    deformed = SkinningEngine().deform(bind_data, result.pose)
    original = _points_by_name(bind_data.scene)
    for name, pts in _points_by_name(deformed).items():
        assert np.allclose(pts, original[name], atol=1e-9), name


def test_deform_is_memoryless(bind_data):
    pose = PoseRetargetingEngine(bind_data.skeleton).retarget(make_pose(raised_right_arm())).pose
    engine = SkinningEngine()
    first = _points_by_name(engine.deform(bind_data, pose))
    second = _points_by_name(engine.deform(bind_data, pose))
    for name in first:
        assert np.array_equal(first[name], second[name]), name


def test_deform_does_not_mutate_bind_scene(bind_data):
    before = {name: pts.copy() for name, pts in _points_by_name(bind_data.scene).items()}
    pose = PoseRetargetingEngine(bind_data.skeleton).retarget(make_pose(raised_right_arm())).pose
    SkinningEngine().deform(bind_data, pose)
    for name, pts in _points_by_name(bind_data.scene).items():
        assert np.array_equal(pts, before[name])


def test_structure_and_paint_order_preserved(bind_data):
    pose = PoseRetargetingEngine(bind_data.skeleton).retarget(make_pose(raised_right_arm())).pose
    deformed = SkinningEngine().deform(bind_data, pose)

    original = list(bind_data.scene.iter_paths())
    moved = list(deformed.iter_paths())
    assert [p.name for p in moved] == [p.name for p in original]
    assert [p.commands for p in moved] == [p.commands for p in original]
    assert [p.style for p in moved] == [p.style for p in original]
    assert deformed.view_box == bind_data.scene.view_box


def test_rigid_region_follows_bone(bind_data):
    pose = PoseRetargetingEngine(bind_data.skeleton).retarget(make_pose(raised_right_arm())).pose
    deformed = SkinningEngine().deform(bind_data, pose)
    art = deformed.root.find('art-rightWrist')
    # 6x6 사각형의 중심 = 손목 위치
    assert art.points.mean(axis=0) == pytest.approx([70.0, 20.0])

    untouched = deformed.root.find('art-leftWrist')
    assert untouched.points.mean(axis=0) == pytest.approx([190.0, 80.0])


def test_static_regions_stay_put(bind_data):
    pose = PoseRetargetingEngine(bind_data.skeleton).retarget(make_pose(raised_right_arm())).pose
    deformed = SkinningEngine().deform(bind_data, pose)
    for name in ('floor', 'bad-sleeve'):
        assert np.array_equal(deformed.root.find(name).points, bind_data.scene.root.find(name).points)


def test_soft_region_blends_bone_transforms(bind_data):
    skeleton = bind_data.skeleton
    pose = forward_kinematics(skeleton, {J.LEFT_SHOULDER: BonePose(rotation=0.4)})
    sleeve = bind_data.scene.root.find('sleeve')
    region = bind_data.region_for(sleeve.uid)

    expected = 0.5 * pose.skin[J.LEFT_SHOULDER] + 0.5 * pose.skin[J.LEFT_ELBOW]
    assert np.allclose(blend_matrix(region, pose), expected)

    deformed = SkinningEngine().deform(bind_data, pose).root.find('sleeve')
    homogeneous = np.hstack([sleeve.points, np.ones((len(sleeve.points), 1))])
    assert np.allclose(deformed.points, (homogeneous @ expected.T)[:, :2])
