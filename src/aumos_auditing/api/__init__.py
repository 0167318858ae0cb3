"""HTTP read surface for audit history."""
