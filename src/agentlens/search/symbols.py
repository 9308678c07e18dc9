"""Symbol extraction used to align chunks with functions and classes."""

import ast
import logging
import re
from dataclasses import dataclass
from enum import Enum

from agentlens.search.walker import FileEntry

logger = logging.getLogger(__name__)


class SymbolKind(str, Enum):
    """Kinds of symbols the extractor reports."""

    FUNCTION = "function"
    METHOD = "method"
    CLASS = "class"
    STRUCT = "struct"
    INTERFACE = "interface"
    ENUM = "enum"
    MODULE = "module"


@dataclass
class Symbol:
    """A declaration with its inclusive, 1-based line range."""

    kind: SymbolKind
    name: str
    start_line: int
    end_line: int


# Declaration patterns per language family. Each entry is (kind, regex); the
# first capture group is the symbol name. Compiled once per SymbolExtractor.
_BRACE_LANGUAGE_PATTERNS: dict[str, list[tuple[SymbolKind, str]]] = {
    "rust": [
        (SymbolKind.FUNCTION, r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+([A-Za-z_]\w*)"),
        (SymbolKind.STRUCT, r"^\s*(?:pub(?:\([^)]*\))?\s+)?struct\s+([A-Za-z_]\w*)"),
        (SymbolKind.ENUM, r"^\s*(?:pub(?:\([^)]*\))?\s+)?enum\s+([A-Za-z_]\w*)"),
        (SymbolKind.INTERFACE, r"^\s*(?:pub(?:\([^)]*\))?\s+)?trait\s+([A-Za-z_]\w*)"),
    ],
    "go": [
        (SymbolKind.METHOD, r"^func\s*\([^)]*\)\s*([A-Za-z_]\w*)\s*\("),
        (SymbolKind.FUNCTION, r"^func\s+([A-Za-z_]\w*)\s*[\[(]"),
        (SymbolKind.STRUCT, r"^type\s+([A-Za-z_]\w*)\s+struct\b"),
        (SymbolKind.INTERFACE, r"^type\s+([A-Za-z_]\w*)\s+interface\b"),
    ],
    "javascript": [
        (SymbolKind.FUNCTION, r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)"),
        (SymbolKind.CLASS, r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)"),
        (SymbolKind.FUNCTION, r"^\s*(?:export\s+)?(?:const|let)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?(?:\([^)]*\)|[A-Za-z_$][\w$]*)\s*=>"),
        (SymbolKind.INTERFACE, r"^\s*(?:export\s+)?interface\s+([A-Za-z_$][\w$]*)"),
    ],
    "java": [
        (SymbolKind.CLASS, r"^\s*(?:(?:public|private|protected|static|final|abstract|sealed|internal|partial)\s+)*(?:class|record)\s+([A-Za-z_]\w*)"),
        (SymbolKind.INTERFACE, r"^\s*(?:(?:public|private|protected|internal)\s+)*interface\s+([A-Za-z_]\w*)"),
        (SymbolKind.ENUM, r"^\s*(?:(?:public|private|protected|internal)\s+)*enum\s+([A-Za-z_]\w*)"),
        (SymbolKind.METHOD, r"^\s*(?:(?:public|private|protected|static|final|abstract|synchronized|override|virtual|async|internal)\s+)+[\w<>\[\],.? ]+\s+([A-Za-z_]\w*)\s*\([^;]*$"),
    ],
    "swift": [
        (SymbolKind.FUNCTION, r"^\s*(?:(?:public|private|internal|fileprivate|open|static|override|mutating)\s+)*func\s+([A-Za-z_]\w*)"),
        (SymbolKind.CLASS, r"^\s*(?:(?:public|private|internal|final|open)\s+)*class\s+([A-Za-z_]\w*)"),
        (SymbolKind.STRUCT, r"^\s*(?:(?:public|private|internal)\s+)*struct\s+([A-Za-z_]\w*)"),
        (SymbolKind.INTERFACE, r"^\s*(?:(?:public|private|internal)\s+)*protocol\s+([A-Za-z_]\w*)"),
    ],
    "kotlin": [
        (SymbolKind.FUNCTION, r"^\s*(?:(?:public|private|internal|protected|override|suspend|inline)\s+)*fun\s+(?:<[^>]*>\s*)?([A-Za-z_]\w*)"),
        (SymbolKind.CLASS, r"^\s*(?:(?:public|private|internal|data|sealed|open|abstract)\s+)*class\s+([A-Za-z_]\w*)"),
    ],
    "c": [
        (SymbolKind.STRUCT, r"^\s*(?:typedef\s+)?struct\s+([A-Za-z_]\w*)\s*\{?\s*$"),
        (SymbolKind.CLASS, r"^\s*class\s+([A-Za-z_]\w*)[^;]*$"),
        (SymbolKind.FUNCTION, r"^[A-Za-z_][\w\s\*&:<>,]*?\b([A-Za-z_]\w*)\s*\([^;]*\)\s*(?:const\s*)?\{?\s*$"),
    ],
    "php": [
        (SymbolKind.FUNCTION, r"^\s*(?:(?:public|private|protected|static|abstract|final)\s+)*function\s+([A-Za-z_]\w*)"),
        (SymbolKind.CLASS, r"^\s*(?:(?:abstract|final)\s+)?class\s+([A-Za-z_]\w*)"),
    ],
}

_EXTENSION_LANGUAGE = {
    ".rs": "rust",
    ".go": "go",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "javascript",
    ".tsx": "javascript",
    ".java": "java",
    ".cs": "java",
    ".swift": "swift",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cc": "c",
    ".cpp": "c",
    ".hpp": "c",
    ".php": "php",
}

_C_KEYWORDS = {"if", "for", "while", "switch", "return", "sizeof", "else"}


class SymbolExtractor:
    """
    Locate functions, classes and similar declarations in source text.

    Python files are parsed with the ``ast`` module. Brace-delimited
    languages use per-language declaration patterns and brace balancing to
    find where each declaration ends. Other files yield no symbols, which
    makes the chunker fall back to window chunking.
    """

    def __init__(self) -> None:
        self._patterns: dict[str, list[tuple[SymbolKind, re.Pattern[str]]]] = {
            language: [(kind, re.compile(regex)) for kind, regex in entries]
            for language, entries in _BRACE_LANGUAGE_PATTERNS.items()
        }

    def extract(self, file: FileEntry, text: str) -> list[Symbol]:
        """Return the symbols of a file ordered by start line."""
        suffix = file.path.suffix.lower()
        if suffix in (".py", ".pyi"):
            symbols = self._extract_python(file.relative_path, text)
        elif suffix in _EXTENSION_LANGUAGE:
            symbols = self._extract_braced(_EXTENSION_LANGUAGE[suffix], text)
        else:
            return []
        symbols.sort(key=lambda s: (s.start_line, s.end_line, s.name))
        return symbols

    def _extract_python(self, relative_path: str, text: str) -> list[Symbol]:
        try:
            tree = ast.parse(text)
        except (SyntaxError, ValueError) as e:
            logger.debug("Cannot parse %s: %s", relative_path, e)
            return []

        symbols: list[Symbol] = []

        def visit(node: ast.AST, prefix: str, in_class: bool) -> None:
            for child in ast.iter_child_nodes(node):
                if isinstance(child, ast.ClassDef):
                    name = f"{prefix}{child.name}"
                    symbols.append(
                        Symbol(SymbolKind.CLASS, name, _py_start(child), child.end_lineno or child.lineno)
                    )
                    visit(child, f"{name}.", True)
                elif isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    name = f"{prefix}{child.name}"
                    kind = SymbolKind.METHOD if in_class else SymbolKind.FUNCTION
                    symbols.append(
                        Symbol(kind, name, _py_start(child), child.end_lineno or child.lineno)
                    )
                    # Nested functions stay inside their parent's chunk
                else:
                    visit(child, prefix, in_class)

        visit(tree, "", False)
        return symbols

    def _extract_braced(self, language: str, text: str) -> list[Symbol]:
        lines = text.splitlines()
        symbols: list[Symbol] = []

        for index, line in enumerate(lines):
            for kind, pattern in self._patterns[language]:
                match = pattern.match(line)
                if match is None:
                    continue
                name = match.group(1)
                if language == "c" and name in _C_KEYWORDS:
                    break
                end = _find_block_end(lines, index)
                if end is None:
                    break
                symbols.append(Symbol(kind, name, index + 1, end + 1))
                break

        return symbols


def _py_start(node: ast.AST) -> int:
    """First line of a definition, including its decorators."""
    decorators = getattr(node, "decorator_list", [])
    lines = [d.lineno for d in decorators] + [node.lineno]
    return min(lines)


def _find_block_end(lines: list[str], start: int, lookahead: int = 5) -> int | None:
    """
    Find the 0-based line where the brace block opened at or just after
    ``start`` closes.

    Returns None when no opening brace appears within ``lookahead`` lines
    (a forward declaration or an expression, not a block).
    """
    depth = 0
    opened = False
    for index in range(start, len(lines)):
        line = _strip_line_comment(lines[index])
        for ch in line:
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}" and opened:
                depth -= 1
                if depth == 0:
                    return index
        if not opened:
            if ";" in line or index - start >= lookahead:
                return None
    return len(lines) - 1 if opened else None


def _strip_line_comment(line: str) -> str:
    """Drop string literals and // comments so braces inside them are ignored."""
    line = re.sub(r'"(?:\\.|[^"\\])*"', '""', line)
    line = re.sub(r"'(?:\\.|[^'\\])'", "''", line)
    pos = line.find("//")
    return line if pos < 0 else line[:pos]
