"""Schema package exports."""

from .section_images import SectionImage

__all__ = ["SectionImage"]
