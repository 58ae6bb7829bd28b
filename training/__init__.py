"""Dataset preparation and classifier training scripts."""
