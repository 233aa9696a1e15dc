"""Feature-preserving mesh smoothing package root."""
