"""
Step 4: Pose Classifier
========================
Classifies a yoga pose from its 34D landmark embedding with an MLP.

Input:  Embedding (1, 34) - 17 keypoints x (x, y), centered and scaled
Output: Pose label + Confidence score
"""

import logging
import pickle

import numpy as np
import torch
import torch.nn as nn
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

import config
from .step2_pose_estimation import PoseResult
from .step3_landmark_embedding import EMBEDDING_SIZE, landmarks_to_embedding

logger = logging.getLogger(__name__)


class ClassificationResult(NamedTuple):
    """Pose classification result."""
    label: str
    class_id: int
    confidence: float
    all_probs: Dict[str, float]


class MLPModel(nn.Module):
    """MLP model for pose classification."""

    def __init__(self, input_size: int = EMBEDDING_SIZE, num_classes: int = 5):
        super().__init__()
        self.model = nn.Sequential(
            nn.Linear(input_size, 128),
            nn.ReLU(),
            nn.BatchNorm1d(128),
            nn.Dropout(0.3),
            nn.Linear(128, 64),
            nn.ReLU(),
            nn.BatchNorm1d(64),
            nn.Dropout(0.3),
            nn.Linear(64, num_classes)
        )

    def forward(self, x):
        return self.model(x)


def load_classes(labels_path: Optional[str]) -> List[str]:
    """Class names from a pickled LabelEncoder, or the default yoga poses."""
    if labels_path and Path(labels_path).exists():
        with open(labels_path, 'rb') as f:
            label_encoder = pickle.load(f)
        return [str(c) for c in label_encoder.classes_]
    return list(config.YOGA_POSE_CLASSES)


class PoseClassifier:
    """
    Yoga pose classifier over landmark embeddings.

    Loads a trained MLP state dict plus the label encoder saved next to it
    by training/train_classifier.py.
    """

    def __init__(
        self,
        model_path: str = config.CLASSIFIER_MODEL_PATH,
        labels_path: Optional[str] = config.CLASSIFIER_LABELS_PATH,
        device: Optional[str] = None
    ):
        """
        Args:
            model_path: Path to the weights file (.pth)
            labels_path: Path to the pickled LabelEncoder (optional)
            device: 'cuda' or 'cpu' (auto-detect if None)
        """
        if not Path(model_path).exists():
            raise FileNotFoundError(f"Classifier weights not found: {model_path}")

        if device is None:
            device = 'cuda' if torch.cuda.is_available() else 'cpu'
        self.device = torch.device(device)

        self.classes = load_classes(labels_path)
        self.model = MLPModel(num_classes=len(self.classes)).to(self.device)
        self.model.load_state_dict(torch.load(model_path, map_location=self.device))
        self.model.eval()
        logger.info("Loaded pose classifier from %s (classes: %s)",
                    model_path, ", ".join(self.classes))

    def classify(self, embedding: np.ndarray) -> ClassificationResult:
        """
        Classify a landmark embedding.

        Args:
            embedding: array with 34 values, shape (34,) or (1, 34)
        """
        x = torch.as_tensor(
            np.asarray(embedding, dtype=np.float32).reshape(1, EMBEDDING_SIZE),
            device=self.device
        )
        with torch.no_grad():
            logits = self.model(x)
            probs = torch.softmax(logits, dim=1).squeeze(0).cpu().numpy()

        class_id = int(np.argmax(probs))
        all_probs = {self.classes[i]: float(probs[i]) for i in range(len(self.classes))}

        return ClassificationResult(
            label=self.classes[class_id],
            class_id=class_id,
            confidence=float(probs[class_id]),
            all_probs=all_probs
        )

    def classify_pose(self, pose: PoseResult) -> ClassificationResult:
        """Embed the pose keypoints, then classify."""
        return self.classify(landmarks_to_embedding(pose))
