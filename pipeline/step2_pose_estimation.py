"""
Step 2: Pose Estimation
Estimates body pose using MoveNet SinglePose (TF Hub).
"""

import logging

import cv2
import numpy as np
import tensorflow as tf
from dataclasses import dataclass
from typing import Callable, List, Optional

import config

logger = logging.getLogger(__name__)


# COCO keypoint names (17 keypoints, MoveNet output order)
KEYPOINT_NAMES = [
    'nose',           # 0
    'left_eye',       # 1
    'right_eye',      # 2
    'left_ear',       # 3
    'right_ear',      # 4
    'left_shoulder',  # 5
    'right_shoulder', # 6
    'left_elbow',     # 7
    'right_elbow',    # 8
    'left_wrist',     # 9
    'right_wrist',    # 10
    'left_hip',       # 11
    'right_hip',      # 12
    'left_knee',      # 13
    'right_knee',     # 14
    'left_ankle',     # 15
    'right_ankle'     # 16
]

NUM_KEYPOINTS = len(KEYPOINT_NAMES)

# Skeleton: anatomically adjacent keypoints
KEYPOINT_EDGES = [
    (0, 1), (0, 2),          # nose to eyes
    (1, 3), (2, 4),          # eyes to ears
    (0, 5), (0, 6),          # nose to shoulders
    (5, 7), (7, 9),          # left arm
    (6, 8), (8, 10),         # right arm
    (5, 6),                  # shoulders
    (5, 11), (6, 12),        # torso
    (11, 12),                # hips
    (11, 13), (13, 15),      # left leg
    (12, 14), (14, 16)       # right leg
]


class ModelLoadError(RuntimeError):
    """Raised when the MoveNet model cannot be loaded."""


@dataclass
class Keypoint:
    """Single body keypoint in image pixel coordinates."""
    x: float
    y: float
    score: float
    name: str = ''


@dataclass
class PoseResult:
    """Pose estimation result for one person."""
    keypoints: List[Keypoint]
    score: float = 0.0

    def __post_init__(self):
        if len(self.keypoints) != NUM_KEYPOINTS:
            raise ValueError(
                f"Expected {NUM_KEYPOINTS} keypoints, got {len(self.keypoints)}"
            )

    def to_numpy(self) -> np.ndarray:
        """Convert keypoints to numpy array (17, 3) of x, y, score."""
        return np.array(
            [[kp.x, kp.y, kp.score] for kp in self.keypoints],
            dtype=np.float32
        )

    def get_keypoint(self, name: str) -> Optional[Keypoint]:
        """Get keypoint by name."""
        for kp in self.keypoints:
            if kp.name == name:
                return kp
        return None


class PoseEstimator:
    """Estimate a single pose per frame with MoveNet."""

    def __init__(
        self,
        model_url: str = config.MOVENET_MODEL_URL,
        input_size: int = config.MOVENET_INPUT_SIZE,
        min_pose_score: float = config.MIN_POSE_SCORE,
        model: Optional[Callable] = None
    ):
        """
        Initialize MoveNet estimator.

        Args:
            model_url: TF Hub handle of the MoveNet SinglePose model
            input_size: Square input size expected by the model
            min_pose_score: Poses with a lower mean keypoint score are dropped
            model: Pre-loaded serving signature (skips the TF Hub download)
        """
        self.model_url = model_url
        self.input_size = input_size
        self.min_pose_score = min_pose_score
        self.model = model
        if self.model is None:
            self._load_model()

    def _load_model(self) -> None:
        """Load the MoveNet serving signature from TF Hub."""
        try:
            import tensorflow_hub as hub

            module = hub.load(self.model_url)
            self.model = module.signatures['serving_default']
        except Exception as e:
            raise ModelLoadError(f"Failed to load MoveNet from {self.model_url}: {e}") from e

        logger.info("MoveNet model loaded (%s, input %dx%d)",
                    self.model_url, self.input_size, self.input_size)

    def _preprocess(self, image: np.ndarray) -> tf.Tensor:
        """BGR frame -> int32 tensor (1, size, size, 3), aspect kept by padding."""
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        resized = tf.image.resize_with_pad(
            tf.convert_to_tensor(rgb), self.input_size, self.input_size
        )
        return tf.expand_dims(tf.cast(resized, dtype=tf.int32), axis=0)

    @staticmethod
    def decode_keypoints(
        raw: np.ndarray,
        width: int,
        height: int,
        flip_horizontal: bool = False
    ) -> List[Keypoint]:
        """
        Map MoveNet output (17, 3) of normalized (y, x, score) to frame pixels.

        The model sees the frame padded to a square, so coordinates are
        relative to a square of side max(width, height) centered on the frame.
        """
        side = max(width, height)
        pad_x = (side - width) / 2.0
        pad_y = (side - height) / 2.0

        keypoints = []
        for i, (y_norm, x_norm, score) in enumerate(raw[:NUM_KEYPOINTS]):
            x = float(x_norm) * side - pad_x
            y = float(y_norm) * side - pad_y
            if flip_horizontal:
                x = width - x
            keypoints.append(Keypoint(x=x, y=y, score=float(score),
                                      name=KEYPOINT_NAMES[i]))
        return keypoints

    def estimate_poses(
        self,
        image: np.ndarray,
        flip_horizontal: bool = False
    ) -> List[PoseResult]:
        """
        Estimate poses in a frame.

        Args:
            image: Input image (BGR format)
            flip_horizontal: Mirror keypoint x coordinates

        Returns:
            List with at most one PoseResult (empty if the pose is too weak)
        """
        h, w = image.shape[:2]
        outputs = self.model(self._preprocess(image))
        raw = np.asarray(outputs['output_0'])[0, 0]

        keypoints = self.decode_keypoints(raw, w, h, flip_horizontal)
        pose_score = float(np.mean([kp.score for kp in keypoints]))
        if pose_score < self.min_pose_score:
            return []
        return [PoseResult(keypoints=keypoints, score=pose_score)]

    def estimate(self, image: np.ndarray) -> Optional[PoseResult]:
        """Return the detected pose, or None."""
        poses = self.estimate_poses(image)
        return poses[0] if poses else None
