"""File extension to language mapping."""

import posixpath

EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".java": "java",
}

# Import resolution order for TS/JS specifiers
TSJS_RESOLVE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
TSJS_INDEX_FILES = ("index.ts", "index.tsx", "index.js", "index.jsx")


def infer_language(file_path: str) -> str:
    """Language id for a path; ``other`` for unsupported extensions."""
    _, ext = posixpath.splitext(file_path)
    return EXTENSION_LANGUAGES.get(ext.lower(), "other")
