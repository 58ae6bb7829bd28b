"""
Yoga Pose Demo Pipeline

4-Step Pipeline:
1. Frame Capture - Capture frames from webcam/video/image
2. Pose Estimation - Estimate 17 keypoints with MoveNet
3. Landmark Embedding - Center and scale keypoints into a 34D vector
4. Pose Classification - Classify the yoga pose from the embedding

The detection loop tying these together lives in pipeline.session.
"""

from .step1_frame_capture import CameraError, FrameCapture, ImageCapture, VideoCapture, WebcamCapture
from .step2_pose_estimation import Keypoint, ModelLoadError, PoseEstimator, PoseResult
from .step3_landmark_embedding import landmarks_to_embedding
from .step4_pose_classifier import ClassificationResult, PoseClassifier

__all__ = [
    'CameraError',
    'FrameCapture',
    'ImageCapture',
    'VideoCapture',
    'WebcamCapture',
    'Keypoint',
    'ModelLoadError',
    'PoseEstimator',
    'PoseResult',
    'landmarks_to_embedding',
    'ClassificationResult',
    'PoseClassifier'
]
