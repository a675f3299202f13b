from __future__ import annotations

import dataclasses
import enum
from typing import Optional


class Language(enum.Enum):
    # Values are tokei's type names, which are also the published identifiers.
    RUST = "Rust"
    C = "C"
    CPP = "Cpp"
    JAVASCRIPT = "JavaScript"
    TYPESCRIPT = "TypeScript"
    CSS = "Css"
    HTML = "Html"
    PYTHON = "Python"
    JAVA = "Java"
    SH = "Sh"
    TSX = "Tsx"
    JSX = "Jsx"
    TOML = "Toml"
    MARKDOWN = "Markdown"
    SVELTE = "Svelte"
    VUE = "Vue"
    SASS = "Sass"
    CMAKE = "CMake"
    CPP_HEADER = "CppHeader"
    ZIG = "Zig"
    GO = "Go"
    DOCKERFILE = "Dockerfile"
    YAML = "Yaml"
    JSON = "Json"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES.get(self, self.value)


# Names accepted by `tokei --types` (matched case-insensitively by tokei).
_DISPLAY_NAMES: dict[Language, str] = {
    Language.CPP: "C++",
    Language.CSS: "CSS",
    Language.HTML: "HTML",
    Language.SH: "Shell",
    Language.TSX: "TSX",
    Language.JSX: "JSX",
    Language.TOML: "TOML",
    Language.CPP_HEADER: "C++ Header",
    Language.YAML: "YAML",
    Language.JSON: "JSON",
}

_BY_NAME: dict[str, Language] = {}
for _lang in Language:
    _BY_NAME[_lang.value.lower()] = _lang
    _BY_NAME[_lang.display_name.lower()] = _lang


def language_from_name(name: str) -> Optional[Language]:
    return _BY_NAME.get((name or "").strip().lower())


@dataclasses.dataclass
class LanguageStat:
    name: Language
    code: int = 0
    comments: int = 0
    blanks: int = 0

    def __post_init__(self) -> None:
        if self.code < 0 or self.comments < 0 or self.blanks < 0:
            raise ValueError(f"negative line count for {self.name.value}: {self!r}")

    @property
    def lines(self) -> int:
        return self.code + self.comments + self.blanks

    def add(self, other: LanguageStat) -> None:
        if other.name is not self.name:
            raise ValueError(f"cannot add {other.name.value} stats to {self.name.value}")
        self.code += other.code
        self.comments += other.comments
        self.blanks += other.blanks

    def copy(self) -> LanguageStat:
        return dataclasses.replace(self)

    def to_json(self) -> dict[str, object]:
        return {"name": self.name.value, "code": self.code, "blanks": self.blanks, "comments": self.comments}


LanguageStats = dict[Language, LanguageStat]


@dataclasses.dataclass(frozen=True)
class RepoDescriptor:
    name: str
    clone_url: str
    size_kb: int = 0
    private: bool = False
    fork: bool = False
    description: Optional[str] = None
    html_url: str = ""

    @property
    def is_public(self) -> bool:
        return not self.private


@dataclasses.dataclass
class RepoReport:
    name: str
    href: str
    description: Optional[str]
    languages: LanguageStats


@dataclasses.dataclass
class RepoResult:
    repo: RepoDescriptor
    languages: Optional[LanguageStats]
    errors: list[str]
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.languages is not None and not self.errors
