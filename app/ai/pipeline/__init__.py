"""Pipeline contracts shared by providers, storage, and the orchestrator."""

from app.ai.pipeline.contracts import GeneratedImage, ImageProvider, IllustrationPipelineError, ObjectStore, ProviderError, Section, SectionSource, StorageError, TransportError

__all__ = ["GeneratedImage", "IllustrationPipelineError", "ImageProvider", "ObjectStore", "ProviderError", "Section", "SectionSource", "StorageError", "TransportError"]
