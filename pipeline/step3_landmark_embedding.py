"""
Step 3: Landmark Embedding
==========================
Converts raw keypoints into the 34D embedding the pose classifier expects.

Center on the shoulder midpoint, then scale by the largest absolute
coordinate so every value lies in [-1, 1].
"""

import numpy as np
from typing import Union

from .step2_pose_estimation import NUM_KEYPOINTS, PoseResult

LEFT_SHOULDER = 5
RIGHT_SHOULDER = 6
EMBEDDING_SIZE = NUM_KEYPOINTS * 2  # 34


def _to_landmark_array(landmarks: Union[PoseResult, np.ndarray, list]) -> np.ndarray:
    """Reshape any supported input to (17, 2) x, y (scores dropped)."""
    if isinstance(landmarks, PoseResult):
        return landmarks.to_numpy()[:, :2].astype(np.float32)

    arr = np.asarray(landmarks, dtype=np.float32)
    if arr.ndim == 1:
        if arr.size == NUM_KEYPOINTS * 2:
            return arr.reshape(NUM_KEYPOINTS, 2)
        if arr.size == NUM_KEYPOINTS * 3:
            return arr.reshape(NUM_KEYPOINTS, 3)[:, :2]
    elif arr.ndim == 2 and arr.shape[0] == NUM_KEYPOINTS and arr.shape[1] in (2, 3):
        return arr[:, :2]

    raise ValueError(
        f"Expected {NUM_KEYPOINTS * 2} or {NUM_KEYPOINTS * 3} values "
        f"(or shape ({NUM_KEYPOINTS}, 2|3)), got shape {arr.shape}"
    )


def get_center_point(
    landmarks: np.ndarray,
    left_index: int = LEFT_SHOULDER,
    right_index: int = RIGHT_SHOULDER
) -> np.ndarray:
    """Midpoint of two landmarks, shape (2,)."""
    return (landmarks[left_index] + landmarks[right_index]) / 2.0


def normalize_landmarks(landmarks: np.ndarray, center: np.ndarray) -> np.ndarray:
    """Move the pose so that `center` sits at the origin."""
    return landmarks - center


def normalize_scale(landmarks: np.ndarray) -> np.ndarray:
    """Divide by the max absolute value. A degenerate pose stays all-zero."""
    max_abs = float(np.max(np.abs(landmarks)))
    if max_abs == 0.0:
        return np.zeros_like(landmarks)
    return landmarks / max_abs


def landmarks_to_embedding(landmarks: Union[PoseResult, np.ndarray, list]) -> np.ndarray:
    """
    Convert keypoints to a classifier embedding.

    Args:
        landmarks: PoseResult, flat array of 34 (x, y) / 51 (x, y, score)
                   values, or array (17, 2) / (17, 3)

    Returns:
        numpy array shape (1, 34), float32
    """
    points = _to_landmark_array(landmarks)
    center = get_center_point(points)
    centered = normalize_landmarks(points, center)
    normalized = normalize_scale(centered)
    return normalized.reshape(1, EMBEDDING_SIZE).astype(np.float32)
