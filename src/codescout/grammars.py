"""Per-language declaration tables for the tree-sitter extractor.

Each supported language is described by a ``LanguageSpec``: which syntax-node
kinds are declarations and what chunk type they become, which nodes open a
class-like scope (turning nested functions into methods), where file-level
package and import information lives, and which member nodes make up a
struct or interface field list. Adding a language means adding a table entry
here; the extractor itself has no per-language branches.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from tree_sitter import Node

from .models import ChunkType

Resolver = Callable[[Node, bytes], Optional[ChunkType]]
ImportReader = Callable[[Node, bytes], list[str]]

NAME_LOOKAHEAD = 5

_IDENTIFIER_KINDS = frozenset({
    "constant", "name", "dotted_name", "namespace_name", "scope_resolution",
})


def is_identifier(kind: str) -> bool:
    return kind.endswith("identifier") or kind in _IDENTIFIER_KINDS


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def unquote(text: str) -> str:
    return text.strip().strip("\"'`<>")


def declared_name(node: Node, source: bytes, name_field: str = "name", depth: int = 0) -> str:
    """Name declared by ``node``.

    Uses the grammar's name field when present, follows C-style declarator
    chains, and otherwise takes the first identifier-like child within a short
    lookahead window.
    """
    target = node.child_by_field_name(name_field)
    if target is not None:
        return node_text(target, source).strip()

    declarator = node.child_by_field_name("declarator")
    if declarator is not None and depth < 4:
        if is_identifier(declarator.type):
            return node_text(declarator, source).strip()
        return declared_name(declarator, source, "name", depth + 1)

    for child in node.children[:NAME_LOOKAHEAD]:
        if child.is_named and is_identifier(child.type):
            return node_text(child, source).strip()
    return ""


def generic_imports(fields: tuple[str, ...]) -> ImportReader:
    """Read an import node through its path-like field, else strip the keyword."""

    def read(node: Node, source: bytes) -> list[str]:
        for name in fields:
            target = node.child_by_field_name(name)
            if target is not None:
                return [unquote(node_text(target, source))]
        text = node_text(node, source).strip().rstrip(";").strip()
        _, _, rest = text.partition(" ")
        rest = rest.strip()
        return [rest] if rest else []

    return read


def _python_imports(node: Node, source: bytes) -> list[str]:
    if node.type == "import_from_statement":
        module = node.child_by_field_name("module_name")
        return [node_text(module, source)] if module is not None else []
    return [
        node_text(target, source).split(" as ")[0].strip()
        for target in node.children_by_field_name("name")
    ]


def _go_imports(node: Node, source: bytes) -> list[str]:
    paths: list[str] = []
    pending = list(node.named_children)
    while pending:
        child = pending.pop(0)
        if child.type == "import_spec":
            path = child.child_by_field_name("path")
            if path is not None:
                paths.append(unquote(node_text(path, source)))
        elif child.type == "import_spec_list":
            pending[:0] = child.named_children
    return paths


def _go_type_spec(node: Node, source: bytes) -> Optional[ChunkType]:
    type_node = node.child_by_field_name("type")
    if type_node is None:
        return None
    if type_node.type == "struct_type":
        return ChunkType.STRUCT
    if type_node.type == "interface_type":
        return ChunkType.INTERFACE
    return None


def _go_receiver(node: Node, source: bytes) -> str:
    text = node_text(node, source).strip().removeprefix("(").removesuffix(")").strip()
    parts = text.split()
    if len(parts) >= 2:
        return parts[1]
    return parts[0] if parts else ""


_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function", "generator_function"})


def _js_bound_function(node: Node, source: bytes) -> Optional[ChunkType]:
    value = node.child_by_field_name("value")
    if value is not None and value.type in _FUNCTION_VALUES:
        return ChunkType.FUNCTION
    return None


@dataclass(frozen=True)
class LanguageSpec:
    grammar: str
    declarations: dict[str, Union[ChunkType, Resolver]]
    scopes: dict[str, str] = field(default_factory=dict)
    wrappers: frozenset[str] = frozenset()
    grouped_kinds: frozenset[str] = frozenset()
    name_fields: dict[str, str] = field(default_factory=dict)
    package_kinds: frozenset[str] = frozenset()
    import_kinds: frozenset[str] = frozenset()
    read_imports: ImportReader = generic_imports(("path", "source", "module_name", "argument"))
    comment_kinds: frozenset[str] = frozenset({"comment"})
    member_kinds: frozenset[str] = frozenset()
    body_required: frozenset[str] = frozenset()
    signature: tuple[tuple[str, str], ...] = (("parameters", ""),)
    receiver_field: str = ""
    read_receiver: Callable[[Node, bytes], str] = lambda node, source: node_text(node, source).strip()
    extension_grammars: dict[str, str] = field(default_factory=dict)

    def resolve(self, node: Node, source: bytes) -> Optional[ChunkType]:
        """Chunk type for ``node``, or None when it is not a declaration."""
        entry = self.declarations.get(node.type)
        if entry is None:
            return None
        if isinstance(entry, ChunkType):
            return entry
        return entry(node, source)

    def is_callable_kind(self, kind: str) -> bool:
        return self.declarations.get(kind) in (ChunkType.FUNCTION, ChunkType.METHOD)

    def grammar_for(self, file_path: str) -> str:
        for suffix, grammar in self.extension_grammars.items():
            if file_path.lower().endswith(suffix):
                return grammar
        return self.grammar


_C_STYLE_COMMENTS = frozenset({"comment", "line_comment", "block_comment"})

_JS_DECLARATIONS: dict[str, Union[ChunkType, Resolver]] = {
    "function_declaration": ChunkType.FUNCTION,
    "generator_function_declaration": ChunkType.FUNCTION,
    "method_definition": ChunkType.METHOD,
    "class_declaration": ChunkType.CLASS,
    "variable_declarator": _js_bound_function,
}

_C_DECLARATIONS: dict[str, Union[ChunkType, Resolver]] = {
    "function_definition": ChunkType.FUNCTION,
    "struct_specifier": ChunkType.STRUCT,
    "union_specifier": ChunkType.STRUCT,
    "enum_specifier": ChunkType.ENUM,
}

REGISTRY: dict[str, LanguageSpec] = {
    "python": LanguageSpec(
        grammar="python",
        declarations={
            "function_definition": ChunkType.FUNCTION,
            "class_definition": ChunkType.CLASS,
        },
        scopes={"class_definition": "name"},
        wrappers=frozenset({"decorated_definition"}),
        import_kinds=frozenset({"import_statement", "import_from_statement"}),
        read_imports=_python_imports,
        signature=(("parameters", ""), ("return_type", " -> ")),
    ),
    "go": LanguageSpec(
        grammar="go",
        declarations={
            "function_declaration": ChunkType.FUNCTION,
            "method_declaration": ChunkType.METHOD,
            "type_spec": _go_type_spec,
        },
        wrappers=frozenset({"type_declaration"}),
        grouped_kinds=frozenset({"type_spec", "type_alias"}),
        package_kinds=frozenset({"package_clause"}),
        import_kinds=frozenset({"import_declaration"}),
        read_imports=_go_imports,
        member_kinds=frozenset({"field_declaration", "method_elem", "method_spec"}),
        signature=(("parameters", ""), ("result", " ")),
        receiver_field="receiver",
        read_receiver=_go_receiver,
    ),
    "javascript": LanguageSpec(
        grammar="javascript",
        declarations=_JS_DECLARATIONS,
        scopes={"class_declaration": "name", "class": "name"},
        wrappers=frozenset({"export_statement", "lexical_declaration", "variable_declaration"}),
        import_kinds=frozenset({"import_statement"}),
    ),
    "typescript": LanguageSpec(
        grammar="typescript",
        declarations={
            **_JS_DECLARATIONS,
            "abstract_class_declaration": ChunkType.CLASS,
            "interface_declaration": ChunkType.INTERFACE,
            "enum_declaration": ChunkType.ENUM,
            "internal_module": ChunkType.MODULE,
            "module": ChunkType.MODULE,
        },
        scopes={"class_declaration": "name", "abstract_class_declaration": "name", "class": "name"},
        wrappers=frozenset({
            "export_statement", "lexical_declaration", "variable_declaration", "ambient_declaration",
        }),
        import_kinds=frozenset({"import_statement"}),
        member_kinds=frozenset({"property_signature", "method_signature"}),
        signature=(("parameters", ""), ("return_type", "")),
        extension_grammars={".tsx": "tsx"},
    ),
    "java": LanguageSpec(
        grammar="java",
        declarations={
            "method_declaration": ChunkType.METHOD,
            "constructor_declaration": ChunkType.METHOD,
            "class_declaration": ChunkType.CLASS,
            "record_declaration": ChunkType.CLASS,
            "interface_declaration": ChunkType.INTERFACE,
            "enum_declaration": ChunkType.ENUM,
        },
        scopes={
            "class_declaration": "name",
            "record_declaration": "name",
            "interface_declaration": "name",
            "enum_declaration": "name",
        },
        package_kinds=frozenset({"package_declaration"}),
        import_kinds=frozenset({"import_declaration"}),
        read_imports=generic_imports(()),
        comment_kinds=_C_STYLE_COMMENTS,
        member_kinds=frozenset({"field_declaration", "constant_declaration", "method_declaration", "enum_constant"}),
        signature=(("parameters", ""), ("type", ": ")),
    ),
    "rust": LanguageSpec(
        grammar="rust",
        declarations={
            "function_item": ChunkType.FUNCTION,
            "struct_item": ChunkType.STRUCT,
            "union_item": ChunkType.STRUCT,
            "enum_item": ChunkType.ENUM,
            "trait_item": ChunkType.TRAIT,
            "impl_item": ChunkType.IMPL,
            "mod_item": ChunkType.MODULE,
        },
        scopes={"impl_item": "type", "trait_item": "name"},
        name_fields={"impl_item": "type"},
        import_kinds=frozenset({"use_declaration"}),
        comment_kinds=_C_STYLE_COMMENTS,
        member_kinds=frozenset({"field_declaration", "enum_variant", "function_signature_item"}),
        signature=(("parameters", ""), ("return_type", " -> ")),
    ),
    "c": LanguageSpec(
        grammar="c",
        declarations=_C_DECLARATIONS,
        wrappers=frozenset({"type_definition"}),
        import_kinds=frozenset({"preproc_include"}),
        comment_kinds=_C_STYLE_COMMENTS,
        member_kinds=frozenset({"field_declaration", "enumerator"}),
        body_required=frozenset({"struct_specifier", "union_specifier", "enum_specifier"}),
    ),
    "cpp": LanguageSpec(
        grammar="cpp",
        declarations={
            **_C_DECLARATIONS,
            "class_specifier": ChunkType.CLASS,
            "namespace_definition": ChunkType.MODULE,
        },
        scopes={"class_specifier": "name", "struct_specifier": "name"},
        wrappers=frozenset({"type_definition", "template_declaration"}),
        import_kinds=frozenset({"preproc_include"}),
        comment_kinds=_C_STYLE_COMMENTS,
        member_kinds=frozenset({"field_declaration", "enumerator"}),
        body_required=frozenset({"struct_specifier", "union_specifier", "enum_specifier", "class_specifier"}),
    ),
    "ruby": LanguageSpec(
        grammar="ruby",
        declarations={
            "method": ChunkType.FUNCTION,
            "singleton_method": ChunkType.FUNCTION,
            "class": ChunkType.CLASS,
            "module": ChunkType.MODULE,
        },
        scopes={"class": "name", "module": "name"},
    ),
    "php": LanguageSpec(
        grammar="php",
        declarations={
            "function_definition": ChunkType.FUNCTION,
            "method_declaration": ChunkType.METHOD,
            "class_declaration": ChunkType.CLASS,
            "interface_declaration": ChunkType.INTERFACE,
            "trait_declaration": ChunkType.TRAIT,
            "enum_declaration": ChunkType.ENUM,
        },
        scopes={
            "class_declaration": "name",
            "interface_declaration": "name",
            "trait_declaration": "name",
            "enum_declaration": "name",
        },
        package_kinds=frozenset({"namespace_definition"}),
        import_kinds=frozenset({"namespace_use_declaration"}),
        read_imports=generic_imports(()),
        signature=(("parameters", ""), ("return_type", ": ")),
    ),
    "scala": LanguageSpec(
        grammar="scala",
        declarations={
            "function_definition": ChunkType.FUNCTION,
            "class_definition": ChunkType.CLASS,
            "object_definition": ChunkType.MODULE,
            "trait_definition": ChunkType.TRAIT,
            "enum_definition": ChunkType.ENUM,
        },
        scopes={"class_definition": "name", "object_definition": "name", "trait_definition": "name"},
        package_kinds=frozenset({"package_clause"}),
        import_kinds=frozenset({"import_declaration"}),
        read_imports=generic_imports(()),
        comment_kinds=frozenset({"comment", "block_comment"}),
        signature=(("parameters", ""), ("return_type", ": ")),
    ),
}


def get_spec(language: str) -> Optional[LanguageSpec]:
    return REGISTRY.get(language)
