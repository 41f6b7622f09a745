"""Tree-sitter parser wrapper for the TypeScript/JavaScript grammars.

The grammar is chosen by file extension: ``.ts`` uses TypeScript,
``.tsx`` uses TSX, and every JavaScript extension (JSX included) uses
the JavaScript grammar.

Usage:
    parser = TreeSitterParser()
    tree = parser.parse(code_bytes, grammar_for_path("src/app.tsx"))
"""

from __future__ import annotations

import posixpath
import threading
from typing import Any, Callable, Iterator

import tree_sitter
import tree_sitter_javascript
import tree_sitter_typescript

from ..exceptions import ParsingError
from ..logging_config import get_logger

logger = get_logger(__name__)

_GRAMMARS: dict[str, Callable[[], Any]] = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "javascript": tree_sitter_javascript.language,
}


def grammar_for_path(file_path: str) -> str:
    """Grammar name for a TS/JS file path."""
    ext = posixpath.splitext(file_path)[1].lower()
    if ext == ".ts":
        return "typescript"
    if ext == ".tsx":
        return "tsx"
    return "javascript"


class TreeSitterParser:
    """Parses source text with the bundled grammars.

    ``Language`` objects are shared; ``Parser`` objects are created per
    thread since a parser must not be used concurrently.
    """

    def __init__(self) -> None:
        # tree-sitter >= 0.23 grammar packages return a capsule; wrap in Language()
        self._languages: dict[str, tree_sitter.Language] = {
            name: tree_sitter.Language(lang_fn()) for name, lang_fn in _GRAMMARS.items()
        }
        self._local = threading.local()

    def _parser(self, grammar: str) -> tree_sitter.Parser:
        parsers: dict[str, tree_sitter.Parser] | None = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = self._local.parsers = {}
        parser = parsers.get(grammar)
        if parser is None:
            parser = parsers[grammar] = tree_sitter.Parser(self._languages[grammar])
        return parser

    def parse(self, code: bytes, grammar: str, filepath: str = "<memory>") -> tree_sitter.Tree:
        """Parse code and return the syntax tree.

        Syntax errors do not fail the parse; the tree carries ERROR nodes.

        Raises:
            ParsingError: Unknown grammar or a parser failure
        """
        if grammar not in self._languages:
            raise ParsingError(filepath, grammar, "no grammar available")
        try:
            tree = self._parser(grammar).parse(code)
        except Exception as e:
            raise ParsingError(filepath, grammar, str(e)) from e
        if tree.root_node.has_error:
            logger.debug(f"Syntax errors in {filepath}; extracting best-effort")
        return tree

def walk(node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Pre-order traversal without recursion."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(node: tree_sitter.Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text is not None else ""
