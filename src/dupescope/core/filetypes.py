"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/filetypes.py
Fixed lookup tables: extension → (MIME type, category) and MIME prefix → category.
"""

from typing import Dict, Tuple, Optional

from dupescope.core.models import FileCategory

_DOC = FileCategory.DOCUMENT
_IMG = FileCategory.IMAGE
_VID = FileCategory.VIDEO
_AUD = FileCategory.AUDIO
_ARC = FileCategory.ARCHIVE
_SRC = FileCategory.CODE

UNKNOWN_MIME = "application/octet-stream"

EXTENSION_TABLE: Dict[str, Tuple[str, FileCategory]] = {
    # Documents
    ".pdf": ("application/pdf", _DOC),
    ".doc": ("application/msword", _DOC),
    ".docx": ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", _DOC),
    ".odt": ("application/vnd.oasis.opendocument.text", _DOC),
    ".rtf": ("application/rtf", _DOC),
    ".txt": ("text/plain", _DOC),
    ".md": ("text/markdown", _DOC),
    ".rst": ("text/x-rst", _DOC),
    ".tex": ("application/x-tex", _DOC),
    ".xls": ("application/vnd.ms-excel", _DOC),
    ".xlsx": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", _DOC),
    ".ods": ("application/vnd.oasis.opendocument.spreadsheet", _DOC),
    ".csv": ("text/csv", _DOC),
    ".tsv": ("text/tab-separated-values", _DOC),
    ".ppt": ("application/vnd.ms-powerpoint", _DOC),
    ".pptx": ("application/vnd.openxmlformats-officedocument.presentationml.presentation", _DOC),
    ".odp": ("application/vnd.oasis.opendocument.presentation", _DOC),
    ".epub": ("application/epub+zip", _DOC),
    ".mobi": ("application/x-mobipocket-ebook", _DOC),
    ".pages": ("application/vnd.apple.pages", _DOC),
    ".numbers": ("application/vnd.apple.numbers", _DOC),
    ".key": ("application/vnd.apple.keynote", _DOC),
    ".log": ("text/plain", _DOC),
    # Images
    ".jpg": ("image/jpeg", _IMG),
    ".jpeg": ("image/jpeg", _IMG),
    ".jpe": ("image/jpeg", _IMG),
    ".png": ("image/png", _IMG),
    ".gif": ("image/gif", _IMG),
    ".bmp": ("image/bmp", _IMG),
    ".tif": ("image/tiff", _IMG),
    ".tiff": ("image/tiff", _IMG),
    ".webp": ("image/webp", _IMG),
    ".heic": ("image/heic", _IMG),
    ".heif": ("image/heif", _IMG),
    ".svg": ("image/svg+xml", _IMG),
    ".ico": ("image/vnd.microsoft.icon", _IMG),
    ".psd": ("image/vnd.adobe.photoshop", _IMG),
    ".raw": ("image/x-raw", _IMG),
    ".cr2": ("image/x-canon-cr2", _IMG),
    ".cr3": ("image/x-canon-cr3", _IMG),
    ".nef": ("image/x-nikon-nef", _IMG),
    ".arw": ("image/x-sony-arw", _IMG),
    ".orf": ("image/x-olympus-orf", _IMG),
    ".rw2": ("image/x-panasonic-rw2", _IMG),
    ".dng": ("image/x-adobe-dng", _IMG),
    ".avif": ("image/avif", _IMG),
    # Video
    ".mp4": ("video/mp4", _VID),
    ".m4v": ("video/x-m4v", _VID),
    ".mov": ("video/quicktime", _VID),
    ".avi": ("video/x-msvideo", _VID),
    ".mkv": ("video/x-matroska", _VID),
    ".webm": ("video/webm", _VID),
    ".wmv": ("video/x-ms-wmv", _VID),
    ".flv": ("video/x-flv", _VID),
    ".mpg": ("video/mpeg", _VID),
    ".mpeg": ("video/mpeg", _VID),
    ".mts": ("video/mp2t", _VID),
    ".m2ts": ("video/mp2t", _VID),
    ".3gp": ("video/3gpp", _VID),
    ".ogv": ("video/ogg", _VID),
    # Audio
    ".mp3": ("audio/mpeg", _AUD),
    ".wav": ("audio/wav", _AUD),
    ".flac": ("audio/flac", _AUD),
    ".aac": ("audio/aac", _AUD),
    ".m4a": ("audio/mp4", _AUD),
    ".ogg": ("audio/ogg", _AUD),
    ".oga": ("audio/ogg", _AUD),
    ".opus": ("audio/opus", _AUD),
    ".wma": ("audio/x-ms-wma", _AUD),
    ".aiff": ("audio/aiff", _AUD),
    ".aif": ("audio/aiff", _AUD),
    ".mid": ("audio/midi", _AUD),
    ".midi": ("audio/midi", _AUD),
    # Archives
    ".zip": ("application/zip", _ARC),
    ".tar": ("application/x-tar", _ARC),
    ".gz": ("application/gzip", _ARC),
    ".tgz": ("application/gzip", _ARC),
    ".bz2": ("application/x-bzip2", _ARC),
    ".xz": ("application/x-xz", _ARC),
    ".zst": ("application/zstd", _ARC),
    ".7z": ("application/x-7z-compressed", _ARC),
    ".rar": ("application/vnd.rar", _ARC),
    ".iso": ("application/x-iso9660-image", _ARC),
    ".dmg": ("application/x-apple-diskimage", _ARC),
    ".jar": ("application/java-archive", _ARC),
    ".deb": ("application/vnd.debian.binary-package", _ARC),
    ".rpm": ("application/x-rpm", _ARC),
    # Code
    ".py": ("text/x-python", _SRC),
    ".pyi": ("text/x-python", _SRC),
    ".ipynb": ("application/x-ipynb+json", _SRC),
    ".js": ("text/javascript", _SRC),
    ".mjs": ("text/javascript", _SRC),
    ".ts": ("text/x-typescript", _SRC),
    ".tsx": ("text/x-typescript", _SRC),
    ".jsx": ("text/javascript", _SRC),
    ".java": ("text/x-java", _SRC),
    ".kt": ("text/x-kotlin", _SRC),
    ".c": ("text/x-c", _SRC),
    ".h": ("text/x-c", _SRC),
    ".cpp": ("text/x-c++", _SRC),
    ".hpp": ("text/x-c++", _SRC),
    ".cs": ("text/x-csharp", _SRC),
    ".go": ("text/x-go", _SRC),
    ".rs": ("text/x-rust", _SRC),
    ".rb": ("text/x-ruby", _SRC),
    ".php": ("application/x-httpd-php", _SRC),
    ".swift": ("text/x-swift", _SRC),
    ".scala": ("text/x-scala", _SRC),
    ".sh": ("application/x-sh", _SRC),
    ".bash": ("application/x-sh", _SRC),
    ".ps1": ("text/x-powershell", _SRC),
    ".sql": ("application/sql", _SRC),
    ".html": ("text/html", _SRC),
    ".htm": ("text/html", _SRC),
    ".css": ("text/css", _SRC),
    ".json": ("application/json", _SRC),
    ".xml": ("application/xml", _SRC),
    ".yaml": ("application/yaml", _SRC),
    ".yml": ("application/yaml", _SRC),
    ".toml": ("application/toml", _SRC),
    ".ini": ("text/plain", _SRC),
}

MIME_PREFIX_TABLE: Tuple[Tuple[str, FileCategory], ...] = (
    ("image/", _IMG),
    ("video/", _VID),
    ("audio/", _AUD),
    ("text/x-", _SRC),
    ("text/", _DOC),
    ("application/pdf", _DOC),
    ("application/zip", _ARC),
    ("application/gzip", _ARC),
    ("application/x-tar", _ARC),
    ("application/x-7z", _ARC),
    ("application/x-bzip2", _ARC),
    ("application/x-xz", _ARC),
    ("application/vnd.rar", _ARC),
)

# Extensions treated as executable where permission bits carry no meaning
EXECUTABLE_EXTENSIONS = frozenset({".exe", ".bat", ".cmd", ".com", ".ps1", ".msi"})


def lookup_extension(extension: str) -> Optional[Tuple[str, FileCategory]]:
    return EXTENSION_TABLE.get(extension.lower())


def category_for(mime_type: Optional[str], extension: str) -> FileCategory:
    """Category from the extension table first, then from the MIME prefix table."""
    entry = lookup_extension(extension)
    if entry is not None:
        return entry[1]
    if mime_type:
        for prefix, category in MIME_PREFIX_TABLE:
            if mime_type.startswith(prefix):
                return category
    return FileCategory.OTHER
