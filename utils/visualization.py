"""
Utils: Visualization
Drawing helpers for the skeleton overlay and status text.
"""

import cv2
import numpy as np
from typing import List, Optional

import config
from pipeline.step2_pose_estimation import KEYPOINT_EDGES, PoseResult


def _point(x: float, y: float) -> tuple:
    return int(round(x)), int(round(y))


def draw_keypoint(frame: np.ndarray, x: float, y: float) -> None:
    """Red square centered on (x, y) with a dark shadow around it (in place)."""
    half = config.KEYPOINT_SIZE // 2
    cx, cy = _point(x, y)
    spread = half + config.SHADOW_OFFSET
    cv2.rectangle(frame, (cx - spread, cy - spread), (cx + spread - 1, cy + spread - 1),
                  config.COLOR_BLACK, -1)
    cv2.rectangle(frame, (cx - half, cy - half), (cx + half - 1, cy + half - 1),
                  config.COLOR_RED, -1)


def draw_skeleton(
    frame: np.ndarray,
    pose: PoseResult,
    min_confidence: float = config.MIN_KEYPOINT_CONFIDENCE
) -> np.ndarray:
    """
    Draw one pose on the frame in place.

    Lines join connected keypoints when both are confident; confident
    keypoints are drawn on top as squares.
    """
    keypoints = pose.keypoints

    for start_idx, end_idx in KEYPOINT_EDGES:
        start, end = keypoints[start_idx], keypoints[end_idx]
        if start.score > min_confidence and end.score > min_confidence:
            cv2.line(frame, _point(start.x, start.y), _point(end.x, end.y),
                     config.COLOR_GREEN, config.LINE_WIDTH)

    for kp in keypoints:
        if kp.score > min_confidence:
            draw_keypoint(frame, kp.x, kp.y)

    return frame


def render_poses(
    frame: Optional[np.ndarray],
    poses: List[PoseResult],
    min_confidence: float = config.MIN_KEYPOINT_CONFIDENCE
) -> np.ndarray:
    """Copy of the frame (or a blank canvas) with every pose drawn."""
    if frame is None:
        canvas = np.zeros((config.CANVAS_HEIGHT, config.CANVAS_WIDTH, 3), dtype=np.uint8)
    else:
        canvas = frame.copy()

    for pose in poses:
        draw_skeleton(canvas, pose, min_confidence)
    return canvas


def draw_pose_label(
    frame: np.ndarray,
    label: Optional[str],
    confidence: float
) -> np.ndarray:
    """
    Draw the recognised yoga pose at the bottom of the frame.

    Args:
        frame: Frame image
        label: Pose name (nothing drawn when None)
        confidence: Classifier confidence (0-1)
    """
    if label is None:
        return frame

    frame_copy = frame.copy()
    h, w = frame_copy.shape[:2]

    cv2.rectangle(frame_copy, (5, h - 60), (w - 5, h - 5), config.COLOR_BLACK, -1)
    cv2.rectangle(frame_copy, (5, h - 60), (w - 5, h - 5), config.COLOR_GREEN, 2)
    cv2.putText(frame_copy, f"{label} ({confidence * 100:.1f}%)", (15, h - 25),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, config.COLOR_GREEN, 2)

    return frame_copy


def draw_status_overlay(
    frame: np.ndarray,
    is_detecting: bool,
    fps: float,
    progress: Optional[float] = None
) -> np.ndarray:
    """FPS counter, detection state and video progress (if any) in the top-left corner."""
    frame_copy = frame.copy()

    cv2.putText(frame_copy, f"FPS: {fps:.1f}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, config.FONT_SCALE, config.COLOR_GREEN, 2)

    state = "DETECTING" if is_detecting else "PAUSED (press D)"
    color = config.COLOR_GREEN if is_detecting else config.COLOR_ORANGE
    cv2.putText(frame_copy, f"State: {state}", (10, 60),
                cv2.FONT_HERSHEY_SIMPLEX, config.FONT_SCALE, color, 2)

    if progress is not None:
        cv2.putText(frame_copy, f"Video: {progress:.0f}%", (10, 90),
                    cv2.FONT_HERSHEY_SIMPLEX, config.FONT_SCALE, config.COLOR_WHITE, 2)

    return frame_copy


def draw_error_message(frame: Optional[np.ndarray], message: str) -> np.ndarray:
    """Show an error message in red across the top of the frame."""
    if frame is None:
        frame_copy = np.zeros((config.CANVAS_HEIGHT, config.CANVAS_WIDTH, 3), dtype=np.uint8)
    else:
        frame_copy = frame.copy()
    w = frame_copy.shape[1]

    cv2.rectangle(frame_copy, (0, 0), (w, 40), config.COLOR_BLACK, -1)
    cv2.putText(frame_copy, message, (10, 27),
                cv2.FONT_HERSHEY_SIMPLEX, 0.55, config.COLOR_RED, 1)
    return frame_copy
