"""
Face detection backends and their editor integration.
"""

from .adapter import DetectionStatus, FaceDetectionAdapter, FaceDetector, create_detector

__all__ = ["DetectionStatus", "FaceDetectionAdapter", "FaceDetector", "create_detector"]
