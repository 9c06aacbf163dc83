#!/usr/bin/env python
"""
Pose Animator - CLI
"""
import argparse
import logging
import sys
from pathlib import Path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Pose Animator - 포즈로 움직이는 2D 벡터 아바타',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', '-c', default=None, help='설정 파일 경로')
    parser.add_argument('--debug', action='store_true', help='DEBUG 로그 출력')

    subparsers = parser.add_subparsers(dest='command', help='명령어')

    # run 명령어
    run_parser = subparsers.add_parser('run', help='웹캠으로 아바타 실시간 구동 (q: 종료, r: 아바타 다시 로드)')
    run_parser.add_argument('--avatar', '-a', required=True, help='SVG 파일 경로 또는 URL')
    run_parser.add_argument('--camera', default=None, help='카메라 인덱스 또는 동영상 경로')
    run_parser.add_argument('--max-frames', type=int, default=None, help='지정한 프레임 수 후 종료')

    # render 명령어
    render_parser = subparsers.add_parser('render', help='아바타를 이미지로 렌더링')
    render_parser.add_argument('--avatar', '-a', required=True, help='SVG 파일 경로 또는 URL')
    render_parser.add_argument('--output', '-o', required=True, help='출력 이미지 경로')
    source = render_parser.add_mutually_exclusive_group()
    source.add_argument('--pose', '-p', default=None, help='포즈 JSON (없으면 bind 포즈)')
    source.add_argument('--image', '-i', default=None, help='포즈를 추정할 이미지')
    render_parser.add_argument('--flip', action='store_true', help='포즈 좌우 미러링')

    # inspect 명령어
    inspect_parser = subparsers.add_parser('inspect', help='일러스트의 본 트리 / 스킨 바인딩 출력')
    inspect_parser.add_argument('--avatar', '-a', required=True, help='SVG 파일 경로 또는 URL')

    return parser


def main(argv=None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # 지연 임포트
    from pose_animator import (
        AnimatorConfig,
        AvatarPipeline,
        DEFAULT_CONFIG_PATH,
        PoseAnimatorError,
        Pose,
        build_skeleton,
        load_svg,
    )
    from pose_animator.utils import load_json, save_image

    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    if config_path.exists():
        print(f"[INFO] Loading config from: {config_path}")
        config = AnimatorConfig.from_yaml(config_path)
    else:
        print(f"[WARNING] Config not found: {config_path}, using defaults")
        config = AnimatorConfig()

    try:
        if args.command == 'run':
            if args.camera is not None:
                config.camera_device = int(args.camera) if args.camera.isdigit() else args.camera
            pipeline = AvatarPipeline(config)
            pipeline.run(args.avatar, max_frames=args.max_frames)

        elif args.command == 'render':
            pipeline = AvatarPipeline(config)
            if not pipeline.load_avatar(args.avatar):
                return 1

            if args.image:
                print(f"Estimating pose: {args.image}")
                image = pipeline.render_image(args.image)
            else:
                pose = Pose.from_dict(load_json(args.pose)) if args.pose else None
                image = pipeline.render_pose(pose, flip=args.flip)

            save_image(image, args.output)
            print(f"Saved: {args.output}")

        elif args.command == 'inspect':
            bind_data = build_skeleton(load_svg(args.avatar), config.skeleton)
            skeleton = bind_data.skeleton
            print(f"Bones: {len(skeleton)} ({len(skeleton.virtual_bones())} virtual)")
            for line in skeleton.describe():
                print(f"  {line}")

            print(f"Skin regions: {len(bind_data.regions)}")
            for region in bind_data.regions.values():
                weights = ', '.join(f"{label.value}:{w:.2f}" for label, w in region.weights)
                print(f"  {region.path_name} -> {weights}")
            if bind_data.rejected_regions:
                print(f"Rejected regions: {len(bind_data.rejected_regions)}")
                for uid, reason in bind_data.rejected_regions.items():
                    print(f"  #{uid}: {reason}")
            print(f"Static paths: {bind_data.static_path_count}")

    except PoseAnimatorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
