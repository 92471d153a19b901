"""HTTP boundary for the cleaning pipeline."""
