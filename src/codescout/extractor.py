"""Declaration-level chunk extraction from tree-sitter syntax trees."""

import functools
import logging
from typing import Optional

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_parser

from .errors import ConfigError, ParseError, UnsupportedLanguageError
from .grammars import LanguageSpec, declared_name, get_spec, node_text
from .models import Chunk, ChunkType, EmbeddingType

log = logging.getLogger("codescout.extractor")

_CALLABLE_TYPES = (ChunkType.FUNCTION, ChunkType.METHOD)
_MEMBER_TYPES = (ChunkType.STRUCT, ChunkType.INTERFACE, ChunkType.ENUM, ChunkType.TRAIT)
_COMMENT_PREFIXES = ("///", "//!", "//", "/**", "/*", "#")


@functools.lru_cache(maxsize=None)
def _parser(grammar: str) -> Parser:
    return get_parser(grammar)


def parse_source(spec: LanguageSpec, source: bytes, file_path: str = "") -> Node:
    """Parse ``source`` with the grammar for ``spec`` and return the root node."""
    grammar = spec.grammar_for(file_path)
    try:
        parser = _parser(grammar)
    except Exception as e:
        raise ConfigError(f"Grammar {grammar!r} is not available: {e}") from e
    try:
        return parser.parse(source).root_node
    except Exception as e:
        raise ParseError(f"Failed to parse {file_path or grammar}: {e}") from e


def clean_comment(text: str) -> str:
    """Strip comment markers from a comment node's text."""
    text = text.strip()
    for prefix in _COMMENT_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if text.endswith("*/"):
        text = text[:-2]
    lines = [line.strip().lstrip("*").strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


class ChunkExtractor:
    """Walks one file's syntax tree and emits a chunk per recognised declaration."""

    def __init__(self, spec: LanguageSpec, source: bytes, file_path: str, language: str):
        self.spec = spec
        self.source = source
        self.file_path = file_path
        self.language = language
        self.package = ""
        self.imports: list[str] = []

    def extract(self, root: Node) -> list[Chunk]:
        self._read_file_metadata(root)

        chunks: list[Chunk] = []
        seen: set[tuple[int, int]] = set()
        stack = [root]
        while stack:
            node = stack.pop()
            chunk = self._chunk_for(node, seen)
            if chunk is not None:
                chunks.append(chunk)
            # Children of a match are still visited: nested methods become their own chunks
            stack.extend(reversed(node.children))

        if not chunks and root.has_error:
            raise ParseError(f"Syntax errors and no declarations in {self.file_path}")

        file_meta = {"language": self.language}
        if self.package:
            file_meta["package"] = self.package
        if self.imports:
            file_meta["imports"] = ", ".join(self.imports)
        for chunk in chunks:
            chunk.metadata.update(file_meta)
        return chunks

    def _read_file_metadata(self, root: Node) -> None:
        for child in root.named_children:
            if child.type in self.spec.package_kinds and not self.package:
                self.package = declared_name(child, self.source)
            elif child.type in self.spec.import_kinds:
                self.imports.extend(i for i in self.spec.read_imports(child, self.source) if i)

    def _chunk_for(self, node: Node, seen: set[tuple[int, int]]) -> Optional[Chunk]:
        spec = self.spec
        chunk_type = spec.resolve(node, self.source)
        if chunk_type is None:
            return None
        if node.type in spec.body_required and node.child_by_field_name("body") is None:
            return None

        anchor = self._anchor(node)
        name = declared_name(node, self.source, spec.name_fields.get(node.type, "name"))
        if not name and anchor is not node:
            name = declared_name(anchor, self.source)
        if not name:
            return None

        span = (anchor.start_byte, anchor.end_byte)
        if span in seen:
            return None
        content = node_text(anchor, self.source)
        if not content.strip():
            return None
        seen.add(span)

        metadata: dict[str, str] = {}
        if chunk_type in _CALLABLE_TYPES:
            receiver = self._receiver(node)
            if receiver is not None:
                chunk_type = ChunkType.METHOD
                if receiver:
                    metadata["receiver"] = receiver
            signature = self._signature(node)
            if signature:
                metadata["signature"] = signature
        elif chunk_type in _MEMBER_TYPES:
            fields = self._members(node)
            if fields:
                metadata["fields"] = ", ".join(fields)

        doc = self._doc_comment(anchor)
        if doc:
            metadata["doc_comment"] = doc

        return Chunk(
            file_path=self.file_path,
            line_start=anchor.start_point[0] + 1,
            line_end=anchor.end_point[0] + 1,
            language=self.language,
            content=content,
            chunk_type=chunk_type.value,
            name=name,
            embedding_type=EmbeddingType.CODE,
            metadata=metadata,
        )

    def _anchor(self, node: Node) -> Node:
        """Outermost wrapper (decorators, export, type keyword) that holds only this declaration."""
        spec = self.spec
        anchor = node
        parent = node.parent
        while parent is not None and parent.type in spec.wrappers:
            others = [c for c in parent.named_children if c != anchor]
            # A wrapper listing several declarations is a group, not part of this one
            if any(c.type in spec.declarations or c.type in spec.grouped_kinds for c in others):
                break
            anchor = parent
            parent = parent.parent
        return anchor

    def _receiver(self, node: Node) -> Optional[str]:
        """Receiver for method-like nodes; None when the node is a plain function."""
        spec = self.spec
        if spec.receiver_field:
            target = node.child_by_field_name(spec.receiver_field)
            if target is not None:
                return spec.read_receiver(target, self.source)

        parent = node.parent
        while parent is not None:
            if parent.type in spec.scopes:
                scope = parent.child_by_field_name(spec.scopes[parent.type])
                return node_text(scope, self.source).strip() if scope is not None else ""
            if spec.is_callable_kind(parent.type):
                break
            parent = parent.parent

        if spec.declarations.get(node.type) == ChunkType.METHOD:
            return ""
        return None

    def _signature(self, node: Node) -> str:
        parts = []
        for field_name, prefix in self.spec.signature:
            target = _find_field(node, field_name)
            if target is not None:
                parts.append(prefix + node_text(target, self.source).strip())
        return "".join(parts).strip()

    def _members(self, node: Node) -> list[str]:
        body = node.child_by_field_name("body") or node.child_by_field_name("type")
        if body is None:
            return []
        names: list[str] = []
        self._collect_members(body, names, 0)
        return names

    def _collect_members(self, node: Node, names: list[str], depth: int) -> None:
        for child in node.named_children:
            if child.type in self.spec.member_kinds:
                name = declared_name(child, self.source)
                if name:
                    names.append(name)
            elif depth < 2 and child.named_child_count:
                self._collect_members(child, names, depth + 1)

    def _doc_comment(self, anchor: Node) -> str:
        kinds = self.spec.comment_kinds
        prev = anchor.prev_sibling
        if prev is None or prev.type not in kinds:
            return ""

        lines = [clean_comment(node_text(prev, self.source))]
        row = prev.start_point[0]
        prev = prev.prev_sibling
        # Pull in the rest of a contiguous run of line comments
        while prev is not None and prev.type in kinds and prev.end_point[0] >= row - 1:
            lines.append(clean_comment(node_text(prev, self.source)))
            row = prev.start_point[0]
            prev = prev.prev_sibling
        return "\n".join(line for line in reversed(lines) if line).strip()


def _find_field(node: Node, field_name: str) -> Optional[Node]:
    """Field on the node itself, on a bound value, or down a declarator chain."""
    target = node.child_by_field_name(field_name)
    if target is not None:
        return target
    value = node.child_by_field_name("value")
    if value is not None:
        target = value.child_by_field_name(field_name)
        if target is not None:
            return target
    declarator = node.child_by_field_name("declarator")
    depth = 0
    while declarator is not None and depth < 4:
        target = declarator.child_by_field_name(field_name)
        if target is not None:
            return target
        declarator = declarator.child_by_field_name("declarator")
        depth += 1
    return None


def extract_chunks(language: str, source: bytes, file_path: str, root: Optional[Node] = None) -> list[Chunk]:
    """Extract declaration chunks from one source file.

    Raises UnsupportedLanguageError when no declaration table exists for the
    language, and ParseError when the source cannot be parsed into any
    declarations. Callers fall back to ``naive_split`` on either.
    """
    spec = get_spec(language)
    if spec is None:
        raise UnsupportedLanguageError(f"No extractor for language {language!r}")
    if root is None:
        root = parse_source(spec, source, file_path)
    chunks = ChunkExtractor(spec, source, file_path, language).extract(root)
    log.debug("Extracted %d chunks from %s", len(chunks), file_path)
    return chunks
