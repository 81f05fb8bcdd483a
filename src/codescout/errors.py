"""codescout exception hierarchy."""


class CodeScoutError(Exception):
    """Base exception for all codescout errors."""


class ConfigError(CodeScoutError):
    """Invalid or missing configuration."""


class ScanError(CodeScoutError):
    """File-system access failed while enumerating the source tree."""


class ParseError(CodeScoutError):
    """Source could not be parsed into declarations; callers fall back to naive chunks."""


class UnsupportedLanguageError(CodeScoutError):
    """No extractor and no fallback mapping exists for a file."""


class ProviderError(CodeScoutError):
    """Failed to generate embeddings via the embedding provider."""


EmbeddingError = ProviderError


class StoreError(CodeScoutError):
    """Vector store operation failed."""
