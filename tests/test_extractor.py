"""Tests for declaration extraction over real tree-sitter grammars."""

import pytest

from codescout import extractor
from codescout.errors import ConfigError, ParseError, UnsupportedLanguageError
from codescout.extractor import clean_comment, extract_chunks
from codescout.models import EmbeddingType

PYTHON_SRC = b'''import os
from pathlib import Path


# Adds two numbers.
def add(a: int, b: int) -> int:
    return a + b


class Greeter:
    """Says hello."""

    def greet(self, name):
        return f"hi {name}"

    @staticmethod
    def shout(text):
        return text.upper()


@decorator
def wrapped():
    pass
'''

GO_SRC = b'''package server

import (
	"fmt"
	"net/http"
)

// Server handles requests.
type Server struct {
	Addr    string
	Handler http.Handler
}

// Store persists things.
type Store interface {
	Get(key string) (string, error)
	Put(key, value string) error
}

// Start runs the server.
func (s *Server) Start(port int) error {
	return fmt.Errorf("not implemented: %d", port)
}

func NewServer(addr string) *Server {
	return &Server{Addr: addr}
}
'''

JS_SRC = b'''import { readFile } from "fs";

// Formats a name.
export function format(name) {
  return name.trim();
}

const double = (x) => x * 2;

class Counter {
  increment() {
    this.count += 1;
  }
}
'''

TS_SRC = b'''export interface Shape {
  area(): number;
  name: string;
}

enum Color {
  Red,
  Green,
}

function describe(s: Shape): string {
  return s.name;
}
'''

RUST_SRC = b'''use std::collections::HashMap;

/// A point in space.
pub struct Point {
    x: f64,
    y: f64,
}

pub trait Shape {
    fn area(&self) -> f64;
}

impl Point {
    pub fn new(x: f64, y: f64) -> Self {
        Point { x, y }
    }
}
'''

C_SRC = b'''#include <stdio.h>

struct point {
    int x;
    int y;
};

struct point origin;

int add(int a, int b) {
    return a + b;
}
'''

JAVA_SRC = b'''package com.example;

import java.util.List;

public class Greeter {
    private String name;

    public Greeter(String name) {
        this.name = name;
    }

    public String greet(List<String> others) {
        return "hi";
    }
}
'''

RUBY_SRC = b'''class Dog
  def bark
    "woof"
  end
end
'''

SAMPLES = [
    ("python", PYTHON_SRC, "app.py"),
    ("go", GO_SRC, "server.go"),
    ("javascript", JS_SRC, "format.js"),
    ("typescript", TS_SRC, "shape.ts"),
    ("rust", RUST_SRC, "point.rs"),
    ("c", C_SRC, "point.c"),
    ("java", JAVA_SRC, "Greeter.java"),
    ("ruby", RUBY_SRC, "dog.rb"),
]


def _by_name(chunks):
    return {c.name: c for c in chunks}


class TestPython:
    def test_declarations_in_order(self):
        chunks = extract_chunks("python", PYTHON_SRC, "app.py")
        assert [(c.name, c.chunk_type) for c in chunks] == [
            ("add", "function"),
            ("Greeter", "class"),
            ("greet", "method"),
            ("shout", "method"),
            ("wrapped", "function"),
        ]

    def test_function_span_and_content(self):
        add = _by_name(extract_chunks("python", PYTHON_SRC, "app.py"))["add"]
        assert (add.line_start, add.line_end) == (6, 7)
        assert add.content == "def add(a: int, b: int) -> int:\n    return a + b"

    def test_signature_and_doc_comment(self):
        add = _by_name(extract_chunks("python", PYTHON_SRC, "app.py"))["add"]
        assert add.metadata["signature"] == "(a: int, b: int) -> int"
        assert add.metadata["doc_comment"] == "Adds two numbers."

    def test_method_receiver(self):
        chunks = _by_name(extract_chunks("python", PYTHON_SRC, "app.py"))
        assert chunks["greet"].metadata["receiver"] == "Greeter"
        assert chunks["shout"].metadata["receiver"] == "Greeter"
        assert "receiver" not in chunks["add"].metadata

    def test_decorated_definition_includes_decorator(self):
        chunks = _by_name(extract_chunks("python", PYTHON_SRC, "app.py"))
        assert chunks["wrapped"].content.startswith("@decorator")
        assert chunks["wrapped"].line_start == 21
        assert chunks["shout"].content.lstrip().startswith("@staticmethod")

    def test_imports_attached_to_every_chunk(self):
        chunks = extract_chunks("python", PYTHON_SRC, "app.py")
        assert all(c.metadata["imports"] == "os, pathlib" for c in chunks)
        assert all(c.metadata["language"] == "python" for c in chunks)

    def test_code_embedding_type(self):
        chunks = extract_chunks("python", PYTHON_SRC, "app.py")
        assert all(c.embedding_type == EmbeddingType.CODE for c in chunks)


class TestGo:
    def test_declarations(self):
        chunks = extract_chunks("go", GO_SRC, "server.go")
        assert [(c.name, c.chunk_type) for c in chunks] == [
            ("Server", "struct"),
            ("Store", "interface"),
            ("Start", "method"),
            ("NewServer", "function"),
        ]

    def test_package_and_imports(self):
        chunks = extract_chunks("go", GO_SRC, "server.go")
        for chunk in chunks:
            assert chunk.metadata["package"] == "server"
            assert chunk.metadata["imports"] == "fmt, net/http"

    def test_method_receiver_and_signature(self):
        start = _by_name(extract_chunks("go", GO_SRC, "server.go"))["Start"]
        assert start.metadata["receiver"] == "*Server"
        assert start.metadata["signature"] == "(port int) error"
        assert start.metadata["doc_comment"] == "Start runs the server."

    def test_struct_spans_type_declaration(self):
        server = _by_name(extract_chunks("go", GO_SRC, "server.go"))["Server"]
        assert server.content.startswith("type Server struct")
        assert server.metadata["fields"] == "Addr, Handler"
        assert server.metadata["doc_comment"] == "Server handles requests."

    def test_interface_methods_as_fields(self):
        store = _by_name(extract_chunks("go", GO_SRC, "server.go"))["Store"]
        assert store.metadata["fields"] == "Get, Put"

    def test_function_without_receiver(self):
        fn = _by_name(extract_chunks("go", GO_SRC, "server.go"))["NewServer"]
        assert "receiver" not in fn.metadata
        assert fn.metadata["signature"] == "(addr string) *Server"

    def test_grouped_type_block_spans_only_the_spec(self):
        src = b"package p\n\ntype (\n\tA struct {\n\t\tX int\n\t}\n\tB int\n\tC = string\n)\n"
        [a] = extract_chunks("go", src, "types.go")
        assert a.name == "A"
        assert a.chunk_type == "struct"
        assert a.content == "A struct {\n\t\tX int\n\t}"
        assert (a.line_start, a.line_end) == (4, 6)
        assert a.metadata["fields"] == "X"


class TestJavaScriptAndTypeScript:
    def test_js_declarations(self):
        chunks = extract_chunks("javascript", JS_SRC, "format.js")
        assert [(c.name, c.chunk_type) for c in chunks] == [
            ("format", "function"),
            ("double", "function"),
            ("Counter", "class"),
            ("increment", "method"),
        ]

    def test_exported_function_includes_export(self):
        fmt = _by_name(extract_chunks("javascript", JS_SRC, "format.js"))["format"]
        assert fmt.content.startswith("export function format")
        assert fmt.metadata["doc_comment"] == "Formats a name."
        assert fmt.metadata["imports"] == "fs"

    def test_arrow_function_binding(self):
        double = _by_name(extract_chunks("javascript", JS_SRC, "format.js"))["double"]
        assert double.content == "const double = (x) => x * 2;"
        assert double.metadata["signature"] == "(x)"

    def test_class_method_receiver(self):
        inc = _by_name(extract_chunks("javascript", JS_SRC, "format.js"))["increment"]
        assert inc.metadata["receiver"] == "Counter"

    def test_ts_interface_enum_function(self):
        chunks = _by_name(extract_chunks("typescript", TS_SRC, "shape.ts"))
        assert chunks["Shape"].chunk_type == "interface"
        assert chunks["Shape"].metadata["fields"] == "area, name"
        assert chunks["Color"].chunk_type == "enum"
        assert chunks["describe"].metadata["signature"] == "(s: Shape): string"

    def test_tsx_parses_jsx(self):
        src = b"export function App() {\n  return <div className=\"app\">hi</div>;\n}\n"
        [app] = extract_chunks("typescript", src, "App.tsx")
        assert app.name == "App"
        assert app.chunk_type == "function"


class TestRust:
    def test_declarations(self):
        chunks = extract_chunks("rust", RUST_SRC, "point.rs")
        assert [(c.name, c.chunk_type) for c in chunks] == [
            ("Point", "struct"),
            ("Shape", "trait"),
            ("Point", "impl"),
            ("new", "method"),
        ]

    def test_struct_fields_and_doc(self):
        point = extract_chunks("rust", RUST_SRC, "point.rs")[0]
        assert point.metadata["fields"] == "x, y"
        assert point.metadata["doc_comment"] == "A point in space."

    def test_impl_method(self):
        new = extract_chunks("rust", RUST_SRC, "point.rs")[-1]
        assert new.metadata["receiver"] == "Point"
        assert new.metadata["signature"] == "(x: f64, y: f64) -> Self"
        assert new.metadata["imports"] == "std::collections::HashMap"


class TestCFamily:
    def test_struct_requires_body(self):
        chunks = extract_chunks("c", C_SRC, "point.c")
        assert [(c.name, c.chunk_type) for c in chunks] == [("point", "struct"), ("add", "function")]

    def test_c_function_signature(self):
        add = _by_name(extract_chunks("c", C_SRC, "point.c"))["add"]
        assert add.metadata["signature"] == "(int a, int b)"
        assert add.metadata["imports"] == "stdio.h"

    def test_struct_fields(self):
        point = _by_name(extract_chunks("c", C_SRC, "point.c"))["point"]
        assert point.metadata["fields"] == "x, y"

    def test_cpp_class_methods(self):
        src = b"class Shape {\npublic:\n  double area() { return 0.0; }\n};\n"
        chunks = extract_chunks("cpp", src, "shape.cpp")
        assert [(c.name, c.chunk_type) for c in chunks] == [("Shape", "class"), ("area", "method")]
        assert chunks[1].metadata["receiver"] == "Shape"


class TestJavaAndRuby:
    def test_java(self):
        chunks = extract_chunks("java", JAVA_SRC, "Greeter.java")
        assert [(c.name, c.chunk_type) for c in chunks] == [
            ("Greeter", "class"),
            ("Greeter", "method"),
            ("greet", "method"),
        ]
        greet = chunks[-1]
        assert greet.metadata["receiver"] == "Greeter"
        assert greet.metadata["package"] == "com.example"
        assert greet.metadata["imports"] == "java.util.List"

    def test_ruby(self):
        chunks = extract_chunks("ruby", RUBY_SRC, "dog.rb")
        assert [(c.name, c.chunk_type) for c in chunks] == [("Dog", "class"), ("bark", "method")]
        assert chunks[1].metadata["receiver"] == "Dog"


class TestInvariants:
    @pytest.mark.parametrize("language,source,path", SAMPLES)
    def test_line_ranges_and_content(self, language, source, path):
        chunks = extract_chunks(language, source, path)
        assert chunks
        for chunk in chunks:
            assert 1 <= chunk.line_start <= chunk.line_end
            assert chunk.content.strip()
            assert chunk.name
            assert chunk.file_path == path

    @pytest.mark.parametrize("language,source,path", SAMPLES)
    def test_file_level_metadata_identical(self, language, source, path):
        chunks = extract_chunks(language, source, path)
        file_level = {
            (c.metadata.get("package"), c.metadata.get("imports"), c.metadata.get("language"))
            for c in chunks
        }
        assert len(file_level) == 1

    @pytest.mark.parametrize("language,source,path", SAMPLES)
    def test_no_duplicate_spans(self, language, source, path):
        chunks = extract_chunks(language, source, path)
        spans = [(c.line_start, c.line_end, c.content) for c in chunks]
        assert len(spans) == len(set(spans))

    def test_unique_ids(self):
        chunks = extract_chunks("python", PYTHON_SRC, "app.py")
        assert len({c.id for c in chunks}) == len(chunks)


class TestFailures:
    def test_clean_file_without_declarations(self):
        assert extract_chunks("python", b"x = 1\nprint(x)\n", "script.py") == []

    def test_broken_file_without_declarations_raises(self):
        with pytest.raises(ParseError):
            extract_chunks("python", b"}}}} {{{{ ((((\n", "bad.py")

    def test_unsupported_language(self):
        with pytest.raises(UnsupportedLanguageError):
            extract_chunks("cobol", b"IDENTIFICATION DIVISION.", "a.cob")

    def test_missing_grammar_is_not_a_parse_error(self, monkeypatch):
        def unavailable(grammar):
            raise LookupError(f"no grammar {grammar}")

        monkeypatch.setattr(extractor, "_parser", unavailable)
        with pytest.raises(ConfigError, match="not available"):
            extract_chunks("go", GO_SRC, "server.go")


class TestCleanComment:
    @pytest.mark.parametrize("raw,expected", [
        ("// Line comment", "Line comment"),
        ("/// Doc comment", "Doc comment"),
        ("# hash comment", "hash comment"),
        ("/* block */", "block"),
        ("/**\n * Javadoc line one\n * line two\n */", "Javadoc line one\nline two"),
    ])
    def test_markers_stripped(self, raw, expected):
        assert clean_comment(raw) == expected
