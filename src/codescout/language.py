"""Language routing from file extension (plus content for .c/.h) to language identifier."""

from dataclasses import dataclass
from pathlib import PurePath

from .models import EmbeddingType

UNKNOWN = "unknown"

CODE_LANGUAGES: frozenset[str] = frozenset({
    "go", "python", "javascript", "typescript", "java", "rust",
    "c", "cpp", "ruby", "php", "scala",
})

DOC_LANGUAGES: frozenset[str] = frozenset({"markdown", "text", "rst"})

EXTENSION_MAP: dict[str, str] = {
    ".go": "go",
    ".py": "python",
    ".js": "javascript", ".jsx": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".java": "java",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".scala": "scala",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hxx": "cpp",
    ".md": "markdown", ".markdown": "markdown",
    ".txt": "text",
    ".rst": "rst",
}

AMBIGUOUS_EXTENSIONS: frozenset[str] = frozenset({".c", ".h"})

_CPP_MARKERS: tuple[bytes, ...] = (
    b"class ",
    b"namespace ",
    b"template<",
    b"::",
    b"std::",
    b"public:",
    b"private:",
    b"protected:",
    b"typename ",
    b"constexpr ",
    b"nullptr",
    b"virtual ",
    b"override",
    b"final",
    b"delete",
    b" new ",
)

_C_PATTERNS: tuple[bytes, ...] = (
    b"struct ",
    b"typedef ",
    b"void ",
    b"int ",
    b"char ",
    b"#include <",
)


@dataclass(frozen=True)
class LanguageMatch:
    language: str
    supported: bool

    @property
    def is_code(self) -> bool:
        return self.language in CODE_LANGUAGES

    @property
    def is_docs(self) -> bool:
        return self.language in DOC_LANGUAGES


def has_cpp_markers(content: bytes) -> bool:
    return any(marker in content for marker in _CPP_MARKERS)


def looks_like_c_only(content: bytes) -> bool:
    """True when content has C patterns and none of the C++ markers."""
    if not any(pattern in content for pattern in _C_PATTERNS):
        return False
    return not has_cpp_markers(content)


def needs_content(path: str) -> bool:
    """Whether routing ``path`` depends on its content."""
    return PurePath(path).suffix.lower() in AMBIGUOUS_EXTENSIONS


def detect_language(path: str, content: bytes = b"") -> LanguageMatch:
    """Map a file to its language.

    ``.c`` is C unless C++ markers appear. ``.h`` is C++ unless it is clearly
    C-only; empty or ambiguous headers default to C++.
    """
    ext = PurePath(path).suffix.lower()

    language = EXTENSION_MAP.get(ext)
    if language is None and ext == ".c":
        language = "cpp" if has_cpp_markers(content) else "c"
    elif language is None and ext == ".h":
        if has_cpp_markers(content):
            language = "cpp"
        elif looks_like_c_only(content):
            language = "c"
        else:
            language = "cpp"

    if language is None:
        return LanguageMatch(UNKNOWN, False)
    return LanguageMatch(language, True)


def is_supported(language: str) -> bool:
    return language in CODE_LANGUAGES or language in DOC_LANGUAGES


def embedding_type_for(language: str) -> EmbeddingType:
    return EmbeddingType.DOCS if language in DOC_LANGUAGES else EmbeddingType.CODE
