"""
Train Pose Classifier
======================
Train the MLP that classifies yoga poses from landmark embeddings.

Usage:
    python -m training.train_classifier --data data/processed/pose_dataset.csv
    python -m training.train_classifier --data data/processed/pose_dataset.csv --epochs 100
"""

import argparse
import pickle
from pathlib import Path
from typing import Tuple

import numpy as np
import pandas as pd
import torch
import torch.nn as nn
import torch.optim as optim
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import LabelEncoder
from torch.utils.data import DataLoader, TensorDataset
from tqdm import tqdm

from pipeline.step3_landmark_embedding import landmarks_to_embedding
from pipeline.step4_pose_classifier import MLPModel


def load_dataset(csv_path: str) -> Tuple[np.ndarray, np.ndarray, LabelEncoder]:
    """Load keypoint CSV and turn every row into its 34D embedding."""
    df = pd.read_csv(csv_path)

    feature_cols = [col for col in df.columns if col.startswith('kp_')]
    raw = df[feature_cols].values.astype(np.float32)
    X = np.concatenate([landmarks_to_embedding(row) for row in raw], axis=0)

    label_encoder = LabelEncoder()
    y = label_encoder.fit_transform(df['label'].values)

    print(f"Loaded {len(X)} samples")
    print(f"Classes: {list(label_encoder.classes_)}")

    return X, y, label_encoder


def _make_loader(X: np.ndarray, y: np.ndarray, batch_size: int, train: bool) -> DataLoader:
    dataset = TensorDataset(torch.FloatTensor(X), torch.LongTensor(y))
    if not train:
        return DataLoader(dataset, batch_size=batch_size)
    # BatchNorm cannot train on a single-sample batch
    return DataLoader(dataset, batch_size=batch_size, shuffle=True,
                      drop_last=len(dataset) > batch_size)


def train_epoch(model: MLPModel, loader: DataLoader, criterion, optimizer) -> float:
    """One pass over the training set. Returns the mean batch loss."""
    model.train()
    total_loss = 0.0
    for X_batch, y_batch in loader:
        optimizer.zero_grad()
        loss = criterion(model(X_batch), y_batch)
        loss.backward()
        optimizer.step()
        total_loss += loss.item()
    return total_loss / len(loader)


def evaluate(model: MLPModel, loader: DataLoader, criterion) -> Tuple[float, float]:
    """Mean loss and accuracy (%) on a held-out set."""
    model.eval()
    total_loss = 0.0
    correct = 0
    total = 0
    with torch.no_grad():
        for X_batch, y_batch in loader:
            logits = model(X_batch)
            total_loss += criterion(logits, y_batch).item()
            correct += (logits.argmax(dim=1) == y_batch).sum().item()
            total += y_batch.size(0)
    return total_loss / len(loader), 100 * correct / total


def train_model(X: np.ndarray, y: np.ndarray,
                epochs: int = 50,
                batch_size: int = 32,
                learning_rate: float = 0.001,
                seed: int = 42) -> Tuple[MLPModel, dict]:
    """Train the MLP on embeddings, keeping the weights of the best validation epoch."""
    torch.manual_seed(seed)

    X_train, X_val, y_train, y_val = train_test_split(
        X, y, test_size=0.2, random_state=seed, stratify=y
    )
    print(f"Train: {len(X_train)}, Val: {len(X_val)}")

    train_loader = _make_loader(X_train, y_train, batch_size, train=True)
    val_loader = _make_loader(X_val, y_val, batch_size, train=False)

    model = MLPModel(input_size=X.shape[1], num_classes=len(np.unique(y)))
    criterion = nn.CrossEntropyLoss()
    optimizer = optim.Adam(model.parameters(), lr=learning_rate)
    scheduler = optim.lr_scheduler.StepLR(optimizer, step_size=20, gamma=0.5)

    history = {'train_loss': [], 'val_loss': [], 'val_acc': []}
    best_acc = -1.0
    best_state = None

    progress = tqdm(range(epochs), desc="Training", unit="epoch")
    for _ in progress:
        train_loss = train_epoch(model, train_loader, criterion, optimizer)
        val_loss, val_acc = evaluate(model, val_loader, criterion)
        scheduler.step()

        history['train_loss'].append(train_loss)
        history['val_loss'].append(val_loss)
        history['val_acc'].append(val_acc)
        progress.set_postfix(loss=f"{train_loss:.3f}", val_acc=f"{val_acc:.1f}%")

        if val_acc > best_acc:
            best_acc = val_acc
            best_state = {k: v.clone() for k, v in model.state_dict().items()}

    if best_state:
        model.load_state_dict(best_state)
    model.eval()

    print(f"Best Validation Accuracy: {best_acc:.2f}%")
    return model, history


def save_model(model: MLPModel, label_encoder: LabelEncoder, output_dir: str) -> Path:
    """Save model weights and label encoder."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    model_path = output_path / "pose_classifier.pth"
    torch.save(model.state_dict(), model_path)
    print(f"Model saved to: {model_path}")

    encoder_path = output_path / "label_encoder.pkl"
    with open(encoder_path, 'wb') as f:
        pickle.dump(label_encoder, f)
    print(f"Label encoder saved to: {encoder_path}")

    return model_path


def main():
    parser = argparse.ArgumentParser(description="Train pose classifier")
    parser.add_argument("--data", "-d", required=True,
                        help="Path to pose_dataset.csv")
    parser.add_argument("--epochs", "-e", type=int, default=50,
                        help="Number of training epochs")
    parser.add_argument("--batch-size", "-b", type=int, default=32,
                        help="Batch size")
    parser.add_argument("--lr", type=float, default=0.001,
                        help="Learning rate")
    parser.add_argument("--output", "-o", default="models",
                        help="Output directory for model")

    args = parser.parse_args()

    print("Loading dataset...")
    X, y, label_encoder = load_dataset(args.data)

    print("\nTraining model...")
    model, history = train_model(
        X, y,
        epochs=args.epochs,
        batch_size=args.batch_size,
        learning_rate=args.lr
    )

    print("\nSaving model...")
    save_model(model, label_encoder, args.output)

    print("\nTraining completed!")


if __name__ == "__main__":
    main()
