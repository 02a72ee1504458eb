"""Batch denoising of 16kHz mono 16-bit WAV trees through pluggable backends."""
