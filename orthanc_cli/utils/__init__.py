"""Local file and console helpers."""
