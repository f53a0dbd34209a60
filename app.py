import argparse
import dataclasses
import logging
import time

import cv2

from config import load_config
from session import FaceMeshSession
from visualization import guidance_lines

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Face framing guide using MediaPipe Face Mesh")
    parser.add_argument("--camera", "-c", type=int, default=None, help="Camera index (default from config: 0)")
    parser.add_argument("--width", type=int, default=None, help="Capture width (default from config: 1280)")
    parser.add_argument("--height", type=int, default=None, help="Capture height (default from config: 720)")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--interval", type=float, default=0.1, help="Seconds between pose polls")
    parser.add_argument("--debug", "-d", action="store_true", help="Show the debug window and log per-frame details")
    return parser.parse_args(argv)


def build_config(args):
    config = load_config(args.config)
    overrides = {}
    if args.camera is not None:
        overrides["index"] = args.camera
    if args.width is not None:
        overrides["width"] = args.width
    if args.height is not None:
        overrides["height"] = args.height
    if overrides:
        config = dataclasses.replace(config, camera=dataclasses.replace(config.camera, **overrides))
    return config


def main(argv=None):
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = build_config(args)

    session = FaceMeshSession(config)

    def on_init(success, error_message=None):
        if not success:
            logger.error("Initialization failed: %s", error_message)

    if not session.init(debug=args.debug, callback=on_init):
        return 1

    last_guidance = None

    def on_pose(pose, error_message=None):
        nonlocal last_guidance
        guidance = " / ".join(guidance_lines(pose, error_message))
        if guidance != last_guidance:
            print(guidance)
            last_guidance = guidance

    try:
        while True:
            session.detect_face(on_pose)
            if args.debug:
                session.show_debug()
                key = cv2.waitKey(max(1, int(args.interval * 1000))) & 0xFF
                if key in (ord("q"), 27):
                    break
            else:
                time.sleep(args.interval)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        session.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
