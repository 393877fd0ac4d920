"""
Preview compositing for the mask editor.
"""

from .anonymizer import Anonymizer, pixelate_regions, region_mask
from .worker import CompositingWorker
from .pipeline import PreviewHandle, PreviewPipeline

__all__ = [
    "Anonymizer",
    "CompositingWorker",
    "PreviewHandle",
    "PreviewPipeline",
    "pixelate_regions",
    "region_mask",
]
