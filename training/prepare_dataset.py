"""
Dataset Preparation Script
===========================
Extract MoveNet keypoints from labelled images and save them as CSV
for training the pose classifier.

Usage:
    python -m training.prepare_dataset --input data/raw --output data/processed/pose_dataset.csv
"""

import argparse
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
import pandas as pd
from tqdm import tqdm

from pipeline.step2_pose_estimation import NUM_KEYPOINTS, PoseEstimator

IMAGE_PATTERNS = ("*.jpg", "*.jpeg", "*.png")
FEATURE_COLUMNS = [f"kp_{i}" for i in range(NUM_KEYPOINTS * 3)]


class DatasetPreparer:
    """Extract keypoints from images and build a dataset."""

    def __init__(self, estimator: Optional[PoseEstimator] = None):
        self.estimator = estimator or PoseEstimator()

    def extract_keypoints(self, image_path: str) -> Optional[np.ndarray]:
        """
        Extract 17 keypoints from an image.

        Returns:
            numpy array (51,) of x, y, score, or None if nothing was detected
        """
        image = cv2.imread(image_path)
        if image is None:
            return None

        pose = self.estimator.estimate(image)
        if pose is None:
            return None
        return pose.to_numpy().flatten()

    def prepare_from_folders(self, input_dir: str, output_file: str) -> Optional[pd.DataFrame]:
        """
        Build the dataset from a folder tree:

        input_dir/
        ├── chair/
        │   ├── img1.jpg
        │   └── img2.jpg
        ├── tree/
        │   └── ...
        └── ...

        Output: CSV file with 51 features + label
        """
        input_path = Path(input_dir)

        if not input_path.exists():
            print(f"Input directory not found: {input_dir}")
            return None

        data = []
        labels = []

        for class_dir in sorted(input_path.iterdir()):
            if not class_dir.is_dir():
                continue

            class_name = class_dir.name.lower()
            image_files = sorted(
                f for pattern in IMAGE_PATTERNS for f in class_dir.glob(pattern)
            )

            success_count = 0
            for img_file in tqdm(image_files, desc=class_name, unit="img"):
                keypoints = self.extract_keypoints(str(img_file))

                if keypoints is not None:
                    data.append(keypoints)
                    labels.append(class_name)
                    success_count += 1

            print(f"  {class_name}: extracted {success_count}/{len(image_files)} images")

        if not data:
            print("No data extracted!")
            return None

        df = pd.DataFrame(data, columns=FEATURE_COLUMNS)
        df['label'] = labels

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_path, index=False)

        print(f"\nDataset saved to: {output_file}")
        print(f"Total samples: {len(df)}")
        print(f"Classes: {df['label'].value_counts().to_dict()}")
        return df


def main():
    parser = argparse.ArgumentParser(description="Prepare pose dataset")
    parser.add_argument("--input", "-i", required=True,
                        help="Input directory with class folders")
    parser.add_argument("--output", "-o", required=True,
                        help="Output CSV file path")

    args = parser.parse_args()

    preparer = DatasetPreparer()
    preparer.prepare_from_folders(args.input, args.output)


if __name__ == "__main__":
    main()
