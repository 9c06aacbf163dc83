import math

import numpy as np
import pytest

from conftest import TPOSE, make_rig_svg
from pose_animator.errors import MalformedBindWeights, UnrecognizedRig
from pose_animator.extractors.keypoint_constants import JointLabel, canonical_order
from pose_animator.illustration.svg_loader import load_svg
from pose_animator.skeleton.builder import BuilderConfig, build_skeleton, parse_weights, validate_weights

J = JointLabel


def test_every_canonical_label_gets_a_bone(skeleton):
    assert {b.label for b in skeleton} == set(canonical_order())
    assert skeleton.root == J.PELVIS


def test_missing_labels_become_zero_length_virtual_bones(skeleton):
    virtual = {b.label for b in skeleton.virtual_bones()}
    assert virtual == {J.LEFT_EYE, J.RIGHT_EYE, J.LEFT_EAR, J.RIGHT_EAR}
    for label in virtual:
        bone = skeleton[label]
        assert bone.length == 0.0
        assert bone.parent == J.NOSE
        assert bone.origin.tolist() == list(TPOSE[J.NOSE])


def test_bind_angles_and_lengths_from_look_at_child(skeleton):
    pelvis = skeleton[J.PELVIS]
    assert pelvis.angle == pytest.approx(-math.pi / 2)
    assert pelvis.length == pytest.approx(70.0)

    right_shoulder = skeleton[J.RIGHT_SHOULDER]
    assert abs(right_shoulder.angle) == pytest.approx(math.pi)
    assert right_shoulder.length == pytest.approx(30.0)

    # leaf: 부모 방향 + 기본 길이
    wrist = skeleton[J.LEFT_WRIST]
    assert wrist.angle == pytest.approx(skeleton[J.LEFT_ELBOW].angle)
    assert wrist.length == BuilderConfig().nominal_leaf_length


def test_parents_follow_group_nesting(skeleton):
    assert skeleton[J.LEFT_ELBOW].parent == J.LEFT_SHOULDER
    assert skeleton[J.LEFT_SHOULDER].parent == J.PELVIS
    assert skeleton[J.LEFT_HIP].parent == J.PELVIS


def test_topological_order_puts_parents_first(skeleton):
    order = skeleton.topological_order()
    position = {label: i for i, label in enumerate(order)}
    for bone in skeleton:
        if bone.parent is not None:
            assert position[bone.parent] < position[bone.label]


def test_flat_groups_attach_to_canonical_ancestor():
    bind_data = build_skeleton(load_svg(make_rig_svg(nested=False)))
    skeleton = bind_data.skeleton
    assert skeleton[J.LEFT_WRIST].parent == J.LEFT_ELBOW
    assert skeleton[J.NOSE].parent == J.NECK
    assert skeleton[J.RIGHT_KNEE].parent == J.RIGHT_HIP


def test_shoulders_drawn_inside_neck_group_still_hang_from_pelvis():
    def joint(label, inner=''):
        x, y = TPOSE[label]
        return f'<g id="joint-{label.value}" data-origin="{x},{y}">{inner}</g>'

    neck = joint(J.NECK, joint(J.NOSE) + joint(J.LEFT_SHOULDER, joint(J.LEFT_ELBOW))
                 + joint(J.RIGHT_SHOULDER))
    svg = (f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 200 300">'
           f'{joint(J.PELVIS, neck)}</svg>')
    skeleton = build_skeleton(load_svg(svg)).skeleton

    assert skeleton[J.LEFT_SHOULDER].parent == J.PELVIS
    assert skeleton[J.RIGHT_SHOULDER].parent == J.PELVIS
    assert skeleton[J.LEFT_ELBOW].parent == J.LEFT_SHOULDER
    assert skeleton[J.NOSE].parent == J.NECK


def test_missing_intermediate_joint_attaches_to_nearest_present_ancestor():
    joints = {k: v for k, v in TPOSE.items() if k != J.LEFT_ELBOW}
    skeleton = build_skeleton(load_svg(make_rig_svg(joints, nested=False))).skeleton

    assert skeleton[J.LEFT_ELBOW].virtual
    assert skeleton[J.LEFT_WRIST].parent == J.LEFT_SHOULDER


def test_rigid_binding_to_enclosing_joint(bind_data):
    scene = bind_data.scene
    art = scene.root.find('art-leftElbow')
    region = bind_data.region_for(art.uid)
    assert region.is_rigid
    assert region.weights == ((J.LEFT_ELBOW, 1.0),)


def test_soft_binding_is_accepted(bind_data):
    sleeve = bind_data.scene.root.find('sleeve')
    region = bind_data.region_for(sleeve.uid)
    assert region is not None
    assert sum(w for _, w in region.weights) == pytest.approx(1.0)
    assert set(region.bones) == {J.LEFT_SHOULDER, J.LEFT_ELBOW}


def test_weights_summing_to_half_are_rejected_not_renormalized(bind_data):
    bad = bind_data.scene.root.find('bad-sleeve')
    assert bind_data.region_for(bad.uid) is None
    assert 'sum' in bind_data.rejected_regions[bad.uid]


def test_accepted_regions_sum_to_one(bind_data):
    for region in bind_data.regions.values():
        assert abs(sum(w for _, w in region.weights) - 1.0) <= 1e-3


def test_paths_outside_joints_are_static(bind_data):
    floor = bind_data.scene.root.find('floor')
    assert bind_data.region_for(floor.uid) is None
    # floor + bad-sleeve
    assert bind_data.static_path_count == 2


def test_validate_weights_errors(skeleton):
    with pytest.raises(MalformedBindWeights) as info:
        validate_weights('arm', {J.LEFT_SHOULDER: 0.25, J.LEFT_ELBOW: 0.25}, skeleton)
    assert info.value.region == 'arm'

    with pytest.raises(MalformedBindWeights):
        validate_weights('arm', {J.LEFT_SHOULDER: 1.5, J.LEFT_ELBOW: -0.5}, skeleton)
    with pytest.raises(MalformedBindWeights):
        validate_weights('eye', {J.LEFT_EYE: 1.0}, skeleton)
    with pytest.raises(MalformedBindWeights):
        validate_weights('empty', {}, skeleton)


def test_parse_weights_rejects_unknown_labels():
    assert parse_weights('leftKnee:0.4,leftAnkle:0.6', 'leg') == {J.LEFT_KNEE: 0.4, J.LEFT_ANKLE: 0.6}
    with pytest.raises(MalformedBindWeights):
        parse_weights('tail:1.0', 'tail')
    with pytest.raises(MalformedBindWeights):
        parse_weights('leftKnee', 'leg')


def test_unknown_joint_label_is_rejected():
    svg = make_rig_svg(extra='<g id="joint-tail" data-origin="100,160"><rect x="0" y="0" width="2" height="2"/></g>')
    with pytest.raises(UnrecognizedRig) as info:
        build_skeleton(load_svg(svg))
    assert info.value.label == 'tail'


def test_missing_root_is_rejected():
    joints = {k: v for k, v in TPOSE.items() if k != J.PELVIS}
    with pytest.raises(UnrecognizedRig):
        build_skeleton(load_svg(make_rig_svg(joints, nested=False)))


def test_duplicate_joint_is_rejected():
    svg = make_rig_svg(extra='<g id="joint-nose" data-origin="1,1"><rect x="0" y="0" width="2" height="2"/></g>')
    with pytest.raises(UnrecognizedRig):
        build_skeleton(load_svg(svg))


def test_origin_falls_back_to_marker_then_bounds():
    svg = (
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 100 100">'
        '<g id="joint-pelvis"><circle class="joint" cx="50" cy="60" r="2"/>'
        '<rect x="40" y="50" width="20" height="20"/>'
        '<g id="joint-neck"><rect x="45" y="10" width="10" height="10"/></g>'
        '</g></svg>'
    )
    skeleton = build_skeleton(load_svg(svg)).skeleton
    assert skeleton[J.PELVIS].origin.tolist() == [50.0, 60.0]
    assert skeleton[J.NECK].origin.tolist() == [50.0, 15.0]
    # marker circle 은 그려지지 않음
    assert np.isclose(skeleton[J.PELVIS].angle, -math.pi / 2)


def test_custom_joint_prefix():
    svg = make_rig_svg().replace('id="joint-', 'id="bone_')
    bind_data = build_skeleton(load_svg(svg), BuilderConfig(joint_prefix='bone_'))
    assert len(bind_data.skeleton.real_bones()) == len(TPOSE)
