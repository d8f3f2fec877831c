"""gitdirt — find every git repo under a directory and report clean or dirty."""

__version__ = "0.3.0"
