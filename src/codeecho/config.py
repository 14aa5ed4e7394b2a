from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

PROCESSED_BY = "CodeEcho CLI"

DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (
    ".git",
    "node_modules",
    "vendor",
    ".vscode",
    ".idea",
    "target",
    "build",
    "dist",
)

DEFAULT_INCLUDE_EXTS: tuple[str, ...] = (
    ".go",
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".json",
    ".md",
    ".html",
    ".css",
    ".py",
    ".java",
    ".cpp",
    ".c",
    ".h",
    ".rs",
    ".rb",
    ".php",
    ".yml",
    ".yaml",
    ".toml",
    ".xml",
)

EXT2LANG: dict[str, str] = {
    ".bash": "Shell",
    ".bat": "Batch",
    ".c": "C",
    ".cc": "C++",
    ".cfg": "INI",
    ".clj": "Clojure",
    ".cmd": "Batch",
    ".conf": "INI",
    ".cpp": "C++",
    ".cs": "C#",
    ".css": "CSS",
    ".cxx": "C++",
    ".dart": "Dart",
    ".ex": "Elixir",
    ".exs": "Elixir",
    ".erl": "Erlang",
    ".go": "Go",
    ".gradle": "Groovy",
    ".graphql": "GraphQL",
    ".groovy": "Groovy",
    ".h": "C",
    ".hpp": "C++",
    ".hs": "Haskell",
    ".htm": "HTML",
    ".html": "HTML",
    ".ini": "INI",
    ".java": "Java",
    ".js": "JavaScript",
    ".json": "JSON",
    ".jsx": "JavaScript",
    ".kt": "Kotlin",
    ".kts": "Kotlin",
    ".less": "CSS",
    ".lua": "Lua",
    ".m": "Objective-C",
    ".markdown": "Markdown",
    ".md": "Markdown",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".php": "PHP",
    ".pl": "Perl",
    ".pm": "Perl",
    ".proto": "Protocol Buffers",
    ".ps1": "PowerShell",
    ".py": "Python",
    ".pyi": "Python",
    ".r": "R",
    ".rb": "Ruby",
    ".rs": "Rust",
    ".sass": "SCSS",
    ".scala": "Scala",
    ".scss": "SCSS",
    ".sh": "Shell",
    ".sql": "SQL",
    ".svelte": "Svelte",
    ".swift": "Swift",
    ".tf": "Terraform",
    ".toml": "TOML",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".txt": "Text",
    ".vue": "Vue",
    ".xml": "XML",
    ".yaml": "YAML",
    ".yml": "YAML",
    ".zsh": "Shell",
}

FILENAME2LANG: dict[str, str] = {
    "dockerfile": "Dockerfile",
    "containerfile": "Dockerfile",
    "makefile": "Makefile",
    "gnumakefile": "Makefile",
    "cmakelists.txt": "CMake",
    "jenkinsfile": "Groovy",
    "gemfile": "Ruby",
    "rakefile": "Ruby",
    "vagrantfile": "Ruby",
    "procfile": "YAML",
    "go.mod": "Go Module",
    "go.sum": "Go Module",
    ".bashrc": "Shell",
    ".zshrc": "Shell",
    ".profile": "Shell",
    ".gitignore": "Ignore List",
    ".dockerignore": "Ignore List",
    ".editorconfig": "INI",
    ".env": "Dotenv",
}

BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".7z", ".a", ".avi", ".bin", ".bmp", ".bz2", ".class", ".dat", ".db",
        ".dll", ".dylib", ".eot", ".exe", ".flac", ".gif", ".gz", ".ico", ".jar",
        ".jpeg", ".jpg", ".lib", ".mov", ".mp3", ".mp4", ".o", ".obj", ".ogg",
        ".otf", ".pdf", ".png", ".pyc", ".pyd", ".pyo", ".rar", ".so", ".sqlite",
        ".sqlite3", ".tar", ".tgz", ".ttf", ".wasm", ".wav", ".webm", ".webp",
        ".woff", ".woff2", ".xz", ".zip",
    },
)  # fmt: skip

SHEBANG2LANG: dict[str, str] = {
    "bash": "Shell",
    "dash": "Shell",
    "ksh": "Shell",
    "node": "JavaScript",
    "perl": "Perl",
    "php": "PHP",
    "python": "Python",
    "python2": "Python",
    "python3": "Python",
    "ruby": "Ruby",
    "sh": "Shell",
    "zsh": "Shell",
    "lua": "Lua",
    "pwsh": "PowerShell",
    "deno": "TypeScript",
}

_FENCE_LANGUAGE: dict[str, str] = {
    "C#": "csharp",
    "C++": "cpp",
    "Dockerfile": "dockerfile",
    "Go Module": "text",
    "Ignore List": "text",
    "Dotenv": "bash",
    "Objective-C": "objectivec",
    "Protocol Buffers": "protobuf",
    "Shell": "bash",
    "Terraform": "hcl",
    "Text": "text",
}


def fence_language(language: str) -> str:
    """Get the code fence info string for a display language (may be empty)."""
    if not language:
        return ""
    return _FENCE_LANGUAGE.get(language, language.lower())


@dataclass(frozen=True)
class CommentSyntax:
    """Comment and string delimiters of one language family.

    Attributes:
        line: Prefixes starting a comment that runs to the end of the line.
        block: (open, close) pairs of block comments.
        quotes: Characters opening a single-line string literal.
        needs_space: When True, a line comment prefix only counts at the start of a
            line or after whitespace (`$#` and `${#x}` in shell are not comments).
    """

    line: tuple[str, ...] = ()
    block: tuple[tuple[str, str], ...] = ()
    quotes: str = "\"'"
    needs_space: bool = False


_C_STYLE = CommentSyntax(line=("//",), block=(("/*", "*/"),), quotes="\"'`")
_HASH_STYLE = CommentSyntax(line=("#",), needs_space=True)
_MARKUP_STYLE = CommentSyntax(block=(("<!--", "-->"),), quotes="")

COMMENT_SYNTAX: dict[str, CommentSyntax] = {
    "C": _C_STYLE,
    "C#": _C_STYLE,
    "C++": _C_STYLE,
    "CSS": CommentSyntax(block=(("/*", "*/"),)),
    "Dart": _C_STYLE,
    "Go": _C_STYLE,
    "Groovy": _C_STYLE,
    "Java": _C_STYLE,
    "JavaScript": _C_STYLE,
    "Kotlin": _C_STYLE,
    "Objective-C": _C_STYLE,
    "Protocol Buffers": _C_STYLE,
    "Rust": CommentSyntax(line=("//",), block=(("/*", "*/"),), quotes='"'),
    "SCSS": _C_STYLE,
    "Scala": _C_STYLE,
    "Swift": _C_STYLE,
    "TypeScript": _C_STYLE,
    "Vue": CommentSyntax(line=("//",), block=(("<!--", "-->"), ("/*", "*/")), quotes="\"'`"),
    "Svelte": CommentSyntax(line=("//",), block=(("<!--", "-->"), ("/*", "*/")), quotes="\"'`"),
    "PHP": CommentSyntax(line=("//", "#"), block=(("/*", "*/"),)),
    "GraphQL": _HASH_STYLE,
    "Terraform": CommentSyntax(line=("#", "//"), block=(("/*", "*/"),), quotes='"'),
    "Python": _HASH_STYLE,
    "Ruby": _HASH_STYLE,
    "Perl": _HASH_STYLE,
    "R": _HASH_STYLE,
    "Shell": _HASH_STYLE,
    "Dotenv": _HASH_STYLE,
    "YAML": _HASH_STYLE,
    "TOML": _HASH_STYLE,
    "Makefile": _HASH_STYLE,
    "CMake": _HASH_STYLE,
    "Dockerfile": _HASH_STYLE,
    "Elixir": _HASH_STYLE,
    "Ignore List": CommentSyntax(line=("#",), quotes=""),
    "PowerShell": CommentSyntax(line=("#",), block=(("<#", "#>"),), needs_space=True),
    "INI": CommentSyntax(line=(";", "#"), quotes="", needs_space=True),
    "SQL": CommentSyntax(line=("--",), block=(("/*", "*/"),)),
    "Lua": CommentSyntax(line=("--",), block=(("--[[", "]]"),)),
    "Haskell": CommentSyntax(line=("--",), block=(("{-", "-}"),), quotes='"'),
    "Erlang": CommentSyntax(line=("%",), quotes='"'),
    "Clojure": CommentSyntax(line=(";",), quotes='"'),
    "Batch": CommentSyntax(line=("REM ", "::"), quotes="", needs_space=True),
    "HTML": _MARKUP_STYLE,
    "XML": _MARKUP_STYLE,
    "Markdown": _MARKUP_STYLE,
}


class FileRecord(BaseModel):
    """Metadata (and optionally processed content) of one included file.

    Attributes:
        path: Absolute path to the file on disk.
        relative_path: Path relative to the scan root, POSIX separators.
        size: File size in bytes.
        size_formatted: Human readable size, e.g. "1.5 KB".
        mod_time: Modification time, RFC 3339.
        mod_time_formatted: Modification time as "YYYY-MM-DD HH:MM:SS".
        language: Detected language tag (may be empty).
        extension: File extension including the dot (may be empty).
        is_text: Whether the file is text.
        content: Transformed content, None when content is not included.
        line_count: Number of lines of `content`, None when content is not included.
    """

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute file path")
    relative_path: str = Field(..., description="File path relative to the scan root")
    size: int = Field(..., ge=0, description="File size in bytes")
    size_formatted: str = Field("", description="Human readable size")
    mod_time: str = Field(..., description="Modification time (RFC 3339)")
    mod_time_formatted: str = Field("", description="Modification time for display")
    language: str = Field("", description="Language tag")
    extension: str = Field("", description="File extension")
    is_text: bool = Field(..., description="Text/binary classification")
    content: str | None = Field(default=None, description="Processed content")
    line_count: int | None = Field(default=None, ge=0, description="Lines in content")

    @computed_field
    @property
    def has_content(self) -> bool:
        """Whether content was captured for this record."""
        return self.content is not None
