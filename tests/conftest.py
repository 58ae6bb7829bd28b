"""Shared fixtures: synthetic poses, a fake MoveNet signature, fake captures."""

import numpy as np
import pytest

from pipeline.step1_frame_capture import FrameCapture
from pipeline.step2_pose_estimation import KEYPOINT_NAMES, Keypoint, PoseResult


# A standing figure in a 640x480 frame, (x, y) pixels
STANDING_POSE = np.array([
    [320, 100],  # nose
    [310, 90], [330, 90],    # eyes
    [300, 95], [340, 95],    # ears
    [280, 150], [360, 150],  # shoulders
    [260, 210], [380, 210],  # elbows
    [250, 270], [390, 270],  # wrists
    [295, 280], [345, 280],  # hips
    [290, 360], [350, 360],  # knees
    [288, 440], [352, 440],  # ankles
], dtype=np.float32)


def make_pose(points=STANDING_POSE, score=0.9) -> PoseResult:
    keypoints = [
        Keypoint(x=float(x), y=float(y), score=score, name=KEYPOINT_NAMES[i])
        for i, (x, y) in enumerate(points)
    ]
    return PoseResult(keypoints=keypoints, score=score)


class FakeMoveNet:
    """Stands in for the TF Hub serving signature."""

    def __init__(self, raw=None):
        if raw is None:
            raw = np.zeros((17, 3), dtype=np.float32)
            raw[:, 0] = np.linspace(0.2, 0.8, 17)   # y
            raw[:, 1] = 0.5                          # x
            raw[:, 2] = 0.9                          # score
        self.raw = np.asarray(raw, dtype=np.float32)
        self.calls = []

    def __call__(self, input_tensor):
        self.calls.append(tuple(input_tensor.shape))
        return {'output_0': self.raw.reshape(1, 1, 17, 3)}


class FakeCapture(FrameCapture):
    """Yields a fixed number of solid frames."""

    def __init__(self, n_frames=3, width=640, height=480):
        self.remaining = n_frames
        self.width = width
        self.height = height
        self.opened = True
        self.released = False

    def read(self):
        if not self.opened or self.remaining == 0:
            return False, None
        self.remaining -= 1
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:, : self.width // 2] = 50  # left half brighter to detect mirroring
        return True, frame

    def release(self):
        self.opened = False
        self.released = True

    def is_opened(self):
        return self.opened


@pytest.fixture
def standing_pose():
    return make_pose()


@pytest.fixture
def fake_movenet():
    return FakeMoveNet()


class FakeVideoDevice:
    """Stands in for cv2.VideoCapture opened on a video file."""

    def __init__(self, n_frames=4, width=32, height=24, fps=25.0):
        import cv2

        self.remaining = n_frames
        self.opened = True
        self.props = {
            cv2.CAP_PROP_FRAME_COUNT: n_frames,
            cv2.CAP_PROP_FPS: fps,
            cv2.CAP_PROP_FRAME_WIDTH: width,
            cv2.CAP_PROP_FRAME_HEIGHT: height,
        }
        self.shape = (height, width, 3)

    def isOpened(self):
        return self.opened

    def get(self, prop):
        return self.props.get(prop, 0)

    def read(self):
        if self.remaining == 0:
            return False, None
        self.remaining -= 1
        return True, np.zeros(self.shape, dtype=np.uint8)

    def release(self):
        self.opened = False


def fake_video_device(n_frames=4, **kwargs):
    """Factory to patch in place of cv2.VideoCapture."""
    return lambda path: FakeVideoDevice(n_frames, **kwargs)
