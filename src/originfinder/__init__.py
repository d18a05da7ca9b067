"""OriginFinder package.

This package finds, for each image in a small target set (e.g. edited
exports), its original among a large pool of candidates (e.g. a camera-roll
backup), trying candidates closest in capture date first and accepting the
first one that looks the same.
"""

__all__ = ["cli", "comparison", "config", "dates", "engine", "errors", "fingerprint", "io_utils", "prioritize", "records"]
__version__ = "0.1.0"
