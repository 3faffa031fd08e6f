"""User interfaces built on the highlighting pipeline."""
