"""Drawing helpers for the demo window."""
