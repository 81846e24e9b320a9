"""File content classification — decide whether a file is safe to merge as text."""

from pathlib import PurePosixPath

TEXT_EXTENSIONS = {
    ".cjs", ".conf", ".css", ".cts", ".env", ".gitignore", ".html", ".ini",
    ".js", ".json", ".jsonc", ".jsx", ".md", ".mdx", ".mjs", ".mts", ".py",
    ".scss", ".sh", ".sql", ".svg", ".toml", ".ts", ".tsx", ".txt", ".xml",
    ".yaml", ".yml",
}

BINARY_EXTENSIONS = {
    ".avif", ".bmp", ".cur", ".gif", ".ico", ".jpeg", ".jpg", ".pdf", ".png",
    ".webp", ".woff", ".woff2", ".zip",
}

TEXT_FILE_NAMES = {
    ".dockerignore", ".editorconfig", ".env", ".env.example", ".gitattributes",
    ".gitignore", ".npmrc", "Dockerfile", "LICENSE", "Makefile", "README",
}

SAMPLE_BYTES = 8000

# Bytes that are control characters yet normal in text: tab, LF, FF, CR.
_ALLOWED_CONTROL = {9, 10, 12, 13}


def is_binary_content(relative_path: str, data: bytes) -> bool:
    """Classify file content with a path-first strategy and byte-level fallback.

    Anything that cannot be confidently classified as text is treated as
    binary, so it is copied verbatim instead of being merged.
    """
    normalized = relative_path.replace("\\", "/")
    name = PurePosixPath(normalized).name
    extension = PurePosixPath(name).suffix.lower()

    if name in TEXT_FILE_NAMES or normalized in TEXT_FILE_NAMES:
        return False
    if extension in TEXT_EXTENSIONS:
        return False
    if extension in BINARY_EXTENSIONS:
        return True

    return classify_bytes(data) != "text"


def classify_bytes(data: bytes) -> str:
    """Return ``"text"``, ``"binary"`` or ``"unknown"`` for a byte sample."""
    if not data:
        return "text"

    sample = data[:SAMPLE_BYTES]
    suspicious = 0
    for byte in sample:
        if byte == 0:
            return "binary"
        if (byte < 32 or byte == 127) and byte not in _ALLOWED_CONTROL:
            suspicious += 1

    ratio = suspicious / len(sample)
    if ratio > 0.1:
        return "binary"
    if ratio < 0.02:
        return "text"
    return "unknown"
