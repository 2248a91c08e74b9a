"""PennyWise identity backend."""
