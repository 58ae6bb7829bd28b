"""
Yoga Pose Demo - Real-time Skeleton Overlay and Pose Classification
===================================================================

Captures webcam video, runs MoveNet on every frame, draws the skeleton and,
when a trained classifier is available, names the yoga pose.

Usage:
    python main.py                     # Webcam
    python main.py --detect            # Webcam, detection on from the start
    python main.py --video path.mp4    # Video file
    python main.py --image path.jpg    # Single image

Controls:
    D       - Toggle pose detection
    C       - Toggle camera
    K       - Toggle pose classification
    S       - Save screenshot
    Q / ESC - Quit
"""

import argparse
import logging
import os
import time
from functools import partial
from typing import Optional

import cv2
import numpy as np

import config
from pipeline.session import DetectionSession, FrameResult
from pipeline.step1_frame_capture import ImageCapture, VideoCapture, WebcamCapture
from pipeline.step4_pose_classifier import PoseClassifier
from utils.visualization import draw_error_message, draw_pose_label, draw_status_overlay

logger = logging.getLogger(__name__)


class YogaPoseDemo:
    """Window loop around a DetectionSession."""

    def __init__(
        self,
        session: DetectionSession,
        window_name: str = config.WINDOW_NAME,
        screenshot_dir: str = config.SCREENSHOT_DIR
    ):
        self.session = session
        self.window_name = window_name
        self.screenshot_dir = screenshot_dir
        self.screenshot_count = 0

    def initialize(self, classify: bool = True) -> None:
        """Load models. Failures are kept in session.error_message."""
        logger.info("Loading MoveNet model...")
        self.session.load_model()
        if classify:
            self.session.load_classifier()

    def progress(self) -> Optional[float]:
        """Percent of the video file played, None for other sources."""
        capture = self.session.capture
        if isinstance(capture, VideoCapture):
            return capture.get_progress()
        return None

    def compose(self, result: FrameResult, fps: float) -> np.ndarray:
        """Final frame to display: skeleton, label, status, error."""
        frame = result.annotated_frame
        frame = draw_status_overlay(frame, self.session.is_detecting, fps, self.progress())
        if result.pose_label is not None:
            frame = draw_pose_label(frame, result.pose_label,
                                    result.classification.confidence)
        if self.session.error_message:
            frame = draw_error_message(frame, self.session.error_message)
        return frame

    def save_screenshot(self, frame) -> str:
        os.makedirs(self.screenshot_dir, exist_ok=True)
        path = os.path.join(self.screenshot_dir, f"yoga_{self.screenshot_count:04d}.jpg")
        cv2.imwrite(path, frame)
        self.screenshot_count += 1
        logger.info("Screenshot saved: %s", path)
        return path

    def handle_key(self, key: int, frame=None) -> bool:
        """Apply a key press. Returns False when the loop should end."""
        if key in (ord('q'), 27):
            return False
        if key == ord('d'):
            detecting = self.session.toggle_detection()
            logger.info("Detection %s", "on" if detecting else "off")
        elif key == ord('c'):
            self.session.toggle_camera()
        elif key == ord('k'):
            enabled = self.session.toggle_classification()
            logger.info("Classification %s", "on" if enabled else "off")
        elif key == ord('s') and frame is not None:
            self.save_screenshot(frame)
        return True

    def run(self, detect: bool = False) -> None:
        """Main capture and display loop."""
        self.session.start_camera()
        if detect:
            self.session.start_detection()

        fps_start = time.time()
        frame_count = 0
        fps = 0.0
        last_frame = None

        while True:
            displayed = None
            if self.session.show_video:
                result = self.session.step()
                if result is None and not self.session.show_video:
                    break
                if result is not None:
                    displayed = self.compose(result, fps)
            if displayed is None:
                displayed = draw_error_message(
                    last_frame, self.session.error_message or "Camera off (press C)"
                )

            cv2.imshow(self.window_name, displayed)
            last_frame = displayed

            frame_count += 1
            if frame_count % 30 == 0:
                fps = 30 / max(time.time() - fps_start, 1e-6)
                fps_start = time.time()
                progress = self.progress()
                if progress is not None:
                    logger.info("Video progress: %.1f%%", progress)

            key = cv2.waitKey(1) & 0xFF
            if not self.handle_key(key, displayed):
                break

        self.session.close()
        cv2.destroyAllWindows()

    def run_image(self, output_path: str = 'output_result.jpg') -> Optional[FrameResult]:
        """Process a single image, save and return the result."""
        self.session.start_camera()
        if not self.session.start_detection():
            self.session.close()
            return None

        result = self.session.step()
        self.session.close()
        if result is None:
            return None

        cv2.imwrite(output_path, self.compose(result, 0.0))
        logger.info("Saved result to: %s", output_path)
        return result


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Yoga Pose Demo - Real-time Pose Detection',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    input_group = parser.add_mutually_exclusive_group()
    input_group.add_argument('--video', type=str, help='Path to video file')
    input_group.add_argument('--image', type=str, help='Path to image file')

    parser.add_argument('--camera', type=int, default=config.CAMERA_ID,
                        help='Camera ID for webcam mode')
    parser.add_argument('--detect', action='store_true',
                        help='Start with pose detection enabled')
    parser.add_argument('--classifier', type=str, default=config.CLASSIFIER_MODEL_PATH,
                        help='Path to pose classifier weights')
    parser.add_argument('--labels', type=str, default=config.CLASSIFIER_LABELS_PATH,
                        help='Path to pickled label encoder')
    parser.add_argument('--no-classify', action='store_true',
                        help='Disable yoga pose classification')
    parser.add_argument('--no-mirror', action='store_true',
                        help='Do not mirror input frames')
    parser.add_argument('--output', type=str, default='output_result.jpg',
                        help='Output path in image mode')
    parser.add_argument('--log-level', type=str, default=logging.getLevelName(config.LOG_LEVEL),
                        help='Logging level')

    return parser.parse_args(argv)


def build_session(args) -> DetectionSession:
    if args.image:
        capture_factory = partial(ImageCapture, args.image)
    elif args.video:
        capture_factory = partial(VideoCapture, args.video)
    else:
        capture_factory = partial(WebcamCapture, args.camera,
                                  config.CAMERA_WIDTH, config.CAMERA_HEIGHT)

    classifier_factory = None
    if not args.no_classify:
        classifier_factory = partial(PoseClassifier, args.classifier, args.labels)

    # A still image is never mirrored
    mirror = not args.no_mirror and not args.image
    return DetectionSession(
        capture_factory=capture_factory,
        classifier_factory=classifier_factory,
        mirror=mirror
    )


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=config.LOG_FORMAT)

    demo = YogaPoseDemo(build_session(args))
    demo.initialize(classify=not args.no_classify)

    if args.image:
        result = demo.run_image(args.output)
        if result is None:
            logger.error("No result for %s: %s", args.image,
                         demo.session.error_message or "no frame")
            return 1
        if result.classification is not None:
            print(f"\nResult: {result.classification.label} "
                  f"({result.classification.confidence * 100:.1f}%)")
        else:
            print(f"\nDetected poses: {len(result.poses)}")
        return 0

    demo.run(detect=args.detect)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
