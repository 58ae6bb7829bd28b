"""
Yoga Pose Demo Configuration
============================

Central configuration file for all pipeline parameters.
"""

import logging

# =============================================================================
# Camera Settings
# =============================================================================
CAMERA_ID = 0
CAMERA_WIDTH = 640
CAMERA_HEIGHT = 480
MIRROR_INPUT = True  # Mirror frames so the user sees themselves like in a mirror

# =============================================================================
# MoveNet Settings
# =============================================================================
MOVENET_MODEL_URL = "https://tfhub.dev/google/movenet/singlepose/lightning/4"
MOVENET_INPUT_SIZE = 192    # Lightning expects 192x192, Thunder 256x256
MIN_POSE_SCORE = 0.25       # Poses scoring lower are dropped

# =============================================================================
# Skeleton Drawing Settings
# =============================================================================
MIN_KEYPOINT_CONFIDENCE = 0.5
KEYPOINT_SIZE = 8           # Side of the keypoint square (px)
LINE_WIDTH = 4
SHADOW_OFFSET = 2           # Shadow spread around keypoint squares (px)
CANVAS_WIDTH = 640          # Used when no frame is available
CANVAS_HEIGHT = 480

# =============================================================================
# Pose Classifier Settings
# =============================================================================
CLASSIFIER_MODEL_PATH = "models/pose_classifier.pth"
CLASSIFIER_LABELS_PATH = "models/label_encoder.pkl"
CLASSIFY_CONFIDENCE = 0.5   # Labels below this confidence are not shown
YOGA_POSE_CLASSES = ["chair", "cobra", "dog", "tree", "warrior"]

# =============================================================================
# Display Settings
# =============================================================================
WINDOW_NAME = "Yoga Pose Demo"
FONT_SCALE = 0.7
SCREENSHOT_DIR = "screenshots"

# Colors (BGR format)
COLOR_RED = (0, 0, 255)
COLOR_GREEN = (0, 255, 0)
COLOR_ORANGE = (0, 165, 255)
COLOR_WHITE = (255, 255, 255)
COLOR_BLACK = (0, 0, 0)

# =============================================================================
# User-facing Messages
# =============================================================================
MODEL_LOAD_ERROR = "Failed to load pose detection model. Please restart the application."
WEBCAM_ACCESS_ERROR = "Webcam access error. Check connection and permissions."
WEBCAM_INIT_ERROR = "Something went wrong while initializing the webcam."

# =============================================================================
# Logging
# =============================================================================
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
