"""File extension to editor language mapping."""
import posixpath

LANGUAGE_BY_EXTENSION = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "rb": "ruby",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "xml": "xml",
    "yaml": "yaml",
    "yml": "yaml",
    "md": "markdown",
    "sql": "sql",
}

DEFAULT_LANGUAGE = "plaintext"


def get_language_from_path(path: str) -> str:
    """Derive the language tag for a file from its extension."""
    basename = posixpath.basename(path or "")
    if "." not in basename:
        return DEFAULT_LANGUAGE
    ext = basename.rsplit(".", 1)[1].lower()
    return LANGUAGE_BY_EXTENSION.get(ext, DEFAULT_LANGUAGE)


def file_name_from_path(path: str) -> str:
    return posixpath.basename(path.rstrip("/")) or path


def content_size(content: str) -> int:
    """Byte length of file content as stored."""
    return len(content.encode("utf-8"))
