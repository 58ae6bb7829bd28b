"""
Detection Session
=================
Camera, model and detection-loop state for the demo window.

One call to `step()` is one animation frame: read, estimate, classify, draw.
Failures at model load and camera start are reported through a single
user-facing `error_message`; nothing is retried.
"""

import logging

import cv2
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import config
from .step1_frame_capture import CameraError, FrameCapture, WebcamCapture
from .step2_pose_estimation import PoseEstimator, PoseResult
from .step4_pose_classifier import ClassificationResult, PoseClassifier
from utils.visualization import render_poses

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Output of one detection step."""
    frame: np.ndarray
    annotated_frame: np.ndarray
    poses: List[PoseResult] = field(default_factory=list)
    classification: Optional[ClassificationResult] = None

    @property
    def pose_label(self) -> Optional[str]:
        """Label to display, None when below the confidence threshold."""
        if self.classification is None:
            return None
        if self.classification.confidence < config.CLASSIFY_CONFIDENCE:
            return None
        return self.classification.label


def default_capture_factory() -> FrameCapture:
    return WebcamCapture(
        camera_id=config.CAMERA_ID,
        width=config.CAMERA_WIDTH,
        height=config.CAMERA_HEIGHT
    )


class DetectionSession:
    """State machine behind the demo: camera on/off, detection on/off."""

    def __init__(
        self,
        capture_factory: Callable[[], FrameCapture] = default_capture_factory,
        estimator_factory: Callable[[], PoseEstimator] = PoseEstimator,
        classifier_factory: Optional[Callable[[], PoseClassifier]] = PoseClassifier,
        mirror: bool = config.MIRROR_INPUT
    ):
        self.capture_factory = capture_factory
        self.estimator_factory = estimator_factory
        self.classifier_factory = classifier_factory
        self.mirror = mirror

        self.show_video = False
        self.is_loading = False
        self.is_detecting = False
        self.classify_enabled = False
        self.error_message: Optional[str] = None

        self.capture: Optional[FrameCapture] = None
        self.model: Optional[PoseEstimator] = None
        self.classifier: Optional[PoseClassifier] = None

    # ------------------------------------------------------------------
    # Model loading
    # ------------------------------------------------------------------
    def load_model(self) -> bool:
        """Create the MoveNet estimator. Returns False on failure."""
        try:
            self.model = self.estimator_factory()
        except Exception:
            logger.exception("Error loading MoveNet model")
            self.model = None
            self.error_message = config.MODEL_LOAD_ERROR
            return False
        logger.info("MoveNet model loaded.")
        return True

    def load_classifier(self) -> bool:
        """Create the optional yoga pose classifier."""
        if self.classifier_factory is None:
            return False
        try:
            self.classifier = self.classifier_factory()
        except FileNotFoundError as e:
            logger.warning("Pose classification disabled: %s", e)
            self.classifier = None
        except Exception:
            logger.exception("Error loading pose classifier")
            self.classifier = None
        self.classify_enabled = self.classifier is not None
        return self.classify_enabled

    def toggle_classification(self) -> bool:
        """Switch classification on/off (only when a classifier is loaded)."""
        self.classify_enabled = self.classifier is not None and not self.classify_enabled
        return self.classify_enabled

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------
    def start_camera(self) -> None:
        self.is_loading = True
        self.init_cam()
        self.is_loading = False
        self.show_video = self.capture is not None

    def init_cam(self) -> None:
        """Open the frame source; errors end up in `error_message`."""
        if self.error_message in (config.WEBCAM_ACCESS_ERROR, config.WEBCAM_INIT_ERROR):
            self.error_message = None
        try:
            self.capture = self.capture_factory()
        except CameraError:
            logger.exception("Error accessing webcam")
            self.capture = None
            self.error_message = config.WEBCAM_ACCESS_ERROR
        except Exception:
            logger.exception("Error in init_cam")
            self.capture = None
            self.error_message = config.WEBCAM_INIT_ERROR

    def stop_camera(self) -> None:
        """Release the camera and stop any detection."""
        if self.capture is not None:
            self.capture.release()
            self.capture = None
        self.show_video = False
        self.stop_detection()

    def toggle_camera(self) -> None:
        if self.show_video:
            self.stop_camera()
        else:
            self.start_camera()

    # ------------------------------------------------------------------
    # Detection loop
    # ------------------------------------------------------------------
    def start_detection(self) -> bool:
        """Detection needs both a model and an open camera."""
        if self.model is None or self.capture is None:
            logger.warning("Cannot start detection (model loaded: %s, camera open: %s)",
                           self.model is not None, self.capture is not None)
            return False
        self.is_detecting = True
        return True

    def stop_detection(self) -> None:
        self.is_detecting = False

    def toggle_detection(self) -> bool:
        if self.is_detecting:
            self.stop_detection()
        else:
            self.start_detection()
        return self.is_detecting

    def step(self) -> Optional[FrameResult]:
        """
        Run one frame through the loop.

        Returns:
            FrameResult, or None when there is no camera or the stream ended
        """
        if self.capture is None:
            return None

        ret, frame = self.capture.read()
        if not ret or frame is None:
            logger.info("Frame source exhausted")
            self.stop_camera()
            return None

        if self.mirror:
            frame = cv2.flip(frame, 1)

        if not self.is_detecting or self.model is None:
            return FrameResult(frame=frame, annotated_frame=frame.copy())

        poses = self.model.estimate_poses(frame)
        classification = None
        if poses and self.classify_enabled and self.classifier is not None:
            classification = self.classifier.classify_pose(poses[0])

        return FrameResult(
            frame=frame,
            annotated_frame=render_poses(frame, poses),
            poses=poses,
            classification=classification
        )

    def close(self) -> None:
        self.stop_camera()
