import logging
from functools import partial

import cv2
import numpy as np

import config
import main
from conftest import FakeCapture, FakeMoveNet, fake_video_device
from pipeline.session import DetectionSession
from pipeline.step1_frame_capture import CameraError, ImageCapture, VideoCapture
from pipeline.step2_pose_estimation import PoseEstimator
from pipeline.step4_pose_classifier import ClassificationResult


def _session(capture):
    return DetectionSession(
        capture_factory=lambda: capture,
        estimator_factory=lambda: PoseEstimator(model=FakeMoveNet()),
        classifier_factory=None,
    )


def test_parse_args_defaults():
    args = main.parse_args([])
    assert args.video is None and args.image is None
    assert not args.detect
    assert not args.no_classify


def test_build_session_for_image_disables_mirror(tmp_path):
    args = main.parse_args(["--image", str(tmp_path / "x.jpg"), "--no-classify"])
    session = main.build_session(args)
    assert session.mirror is False
    assert session.classifier_factory is None
    assert session.capture_factory.func is ImageCapture


def test_handle_key_toggles_session(tmp_path):
    demo = main.YogaPoseDemo(_session(FakeCapture()), screenshot_dir=str(tmp_path))
    demo.initialize(classify=False)
    demo.session.start_camera()

    assert demo.handle_key(ord('d'))
    assert demo.session.is_detecting
    assert demo.handle_key(ord('c'))
    assert not demo.session.show_video
    assert not demo.session.is_detecting
    assert not demo.handle_key(ord('q'))
    assert not demo.handle_key(27)


def test_screenshot_written(tmp_path):
    demo = main.YogaPoseDemo(_session(FakeCapture()), screenshot_dir=str(tmp_path / "shots"))
    frame = np.zeros((20, 20, 3), dtype=np.uint8)
    demo.handle_key(ord('s'), frame)
    demo.handle_key(ord('s'), frame)
    assert sorted(p.name for p in (tmp_path / "shots").iterdir()) == [
        "yoga_0000.jpg", "yoga_0001.jpg"
    ]


def test_run_image_saves_annotated_output(tmp_path):
    demo = main.YogaPoseDemo(_session(FakeCapture(n_frames=1)))
    demo.initialize(classify=False)
    output = tmp_path / "out.jpg"

    result = demo.run_image(str(output))
    assert result is not None
    assert len(result.poses) == 1
    assert cv2.imread(str(output)) is not None


def test_run_image_without_model_returns_none(tmp_path):
    def broken():
        raise RuntimeError("offline")

    session = DetectionSession(capture_factory=lambda: FakeCapture(n_frames=1),
                               estimator_factory=broken, classifier_factory=None)
    demo = main.YogaPoseDemo(session)
    demo.initialize(classify=False)
    assert demo.run_image(str(tmp_path / "out.jpg")) is None
    assert session.error_message is not None


class _Window:
    """Records what the loop shows and replays key presses."""

    def __init__(self, monkeypatch, keys=()):
        self.shown = []
        self.keys = list(keys)
        self.destroyed = False
        monkeypatch.setattr(main.cv2, "imshow", self.imshow)
        monkeypatch.setattr(main.cv2, "waitKey", self.wait_key)
        monkeypatch.setattr(main.cv2, "destroyAllWindows", self.destroy)

    def imshow(self, name, frame):
        self.shown.append(frame)

    def wait_key(self, delay):
        return self.keys.pop(0) if self.keys else -1

    def destroy(self):
        self.destroyed = True


def test_run_until_stream_ends(monkeypatch):
    window = _Window(monkeypatch)
    capture = FakeCapture(n_frames=2)
    demo = main.YogaPoseDemo(_session(capture))
    demo.initialize(classify=False)

    demo.run(detect=True)

    assert len(window.shown) == 2
    assert capture.released
    assert window.destroyed
    assert not demo.session.show_video


def test_run_shows_banner_when_camera_fails(monkeypatch):
    window = _Window(monkeypatch, keys=[ord('q')])

    def denied():
        raise CameraError("permission denied")

    session = DetectionSession(capture_factory=denied,
                               estimator_factory=lambda: PoseEstimator(model=FakeMoveNet()),
                               classifier_factory=None)
    demo = main.YogaPoseDemo(session)
    demo.initialize(classify=False)

    demo.run()

    assert len(window.shown) == 1
    banner = window.shown[0]
    assert banner.shape == (config.CANVAS_HEIGHT, config.CANVAS_WIDTH, 3)
    assert (banner[:40] == config.COLOR_RED).all(axis=-1).any()
    assert session.error_message == config.WEBCAM_ACCESS_ERROR
    assert window.destroyed


def test_run_with_camera_off_then_quit(monkeypatch):
    window = _Window(monkeypatch, keys=[ord('c'), 27])
    capture = FakeCapture(n_frames=10)
    demo = main.YogaPoseDemo(_session(capture))
    demo.initialize(classify=False)

    demo.run()

    assert len(window.shown) == 2
    assert capture.released
    # second frame is the "camera off" banner drawn over the last frame
    assert window.shown[1].shape == window.shown[0].shape


def test_run_logs_video_progress(monkeypatch, caplog):
    from pipeline import step1_frame_capture

    _Window(monkeypatch)
    monkeypatch.setattr(step1_frame_capture.cv2, "VideoCapture", fake_video_device(30))
    session = DetectionSession(capture_factory=partial(VideoCapture, "clip.mp4"),
                               estimator_factory=lambda: PoseEstimator(model=FakeMoveNet()),
                               classifier_factory=None, mirror=False)
    demo = main.YogaPoseDemo(session)

    with caplog.at_level(logging.INFO, logger="main"):
        demo.run()

    assert "Video progress: 100.0%" in caplog.text


def test_progress_only_for_video(monkeypatch):
    from pipeline import step1_frame_capture

    monkeypatch.setattr(step1_frame_capture.cv2, "VideoCapture",
                        fake_video_device(4, width=320, height=240))
    video_demo = main.YogaPoseDemo(DetectionSession(
        capture_factory=partial(VideoCapture, "clip.mp4"),
        estimator_factory=lambda: None, classifier_factory=None))
    video_demo.session.start_camera()
    result = video_demo.session.step()
    assert video_demo.progress() == 25.0
    assert video_demo.compose(result, 0.0)[72:100].any()

    webcam_demo = main.YogaPoseDemo(_session(FakeCapture()))
    webcam_demo.session.start_camera()
    assert webcam_demo.progress() is None


def test_k_key_toggles_classification(standing_pose):
    class StubClassifier:
        def classify_pose(self, pose):
            return ClassificationResult("tree", 0, 0.9, {"tree": 0.9})

    session = DetectionSession(capture_factory=lambda: FakeCapture(),
                               estimator_factory=lambda: PoseEstimator(model=FakeMoveNet()),
                               classifier_factory=StubClassifier)
    demo = main.YogaPoseDemo(session)
    demo.initialize(classify=True)
    assert session.classify_enabled

    assert demo.handle_key(ord('k'))
    assert not session.classify_enabled
    assert demo.handle_key(ord('k'))
    assert session.classify_enabled


def test_build_session_for_video(tmp_path):
    args = main.parse_args(["--video", str(tmp_path / "clip.mp4")])
    session = main.build_session(args)
    assert session.capture_factory.func is VideoCapture
    assert session.mirror is True
    assert session.classifier_factory is not None


def test_run_image_releases_capture_when_model_missing(tmp_path):
    capture = FakeCapture(n_frames=1)

    def broken():
        raise RuntimeError("offline")

    session = DetectionSession(capture_factory=lambda: capture,
                               estimator_factory=broken, classifier_factory=None)
    demo = main.YogaPoseDemo(session)
    demo.initialize(classify=False)

    assert demo.run_image(str(tmp_path / "out.jpg")) is None
    assert capture.released
    assert session.capture is None
