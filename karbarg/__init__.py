"""Karbarg Q&A quality, reputation and career-path backend."""
