"""
Presenters for exported candidate sets
Convert candidates of one session type to Markdown for export views
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..annotators import human_size, symbol_annotation, package_annotation
from ..session import FILE, PACKAGE, SYMBOL


class BasePresenter:
    """Base presenter with common formatting utilities"""

    title = "Candidates"

    def escape_markdown(self, text: str) -> str:
        """Escape markdown special characters"""
        if not text:
            return ""

        # Backslash first so later escapes are not doubled
        chars_to_escape = ['\\', '`', '*', '_', '[', ']', '|']
        for char in chars_to_escape:
            text = text.replace(char, f'\\{char}')

        return text

    def format_timestamp(self, timestamp: Optional[float] = None) -> str:
        """Format a POSIX timestamp for display"""
        if timestamp is None:
            timestamp = datetime.now().timestamp()
        return datetime.fromtimestamp(timestamp).strftime('%Y-%m-%d %H:%M')

    def header(self, count: int, source: str = "") -> str:
        header = f"## {self.title} ({count})"
        if source:
            header += f" - {self.escape_markdown(source)}"
        return header

    def to_markdown(self, candidates: Sequence[str], source: str = "",
                    annotations: Optional[Mapping[str, Optional[str]]] = None) -> str:
        """Generic table: one row per candidate plus its annotation"""
        if not candidates:
            return f"## {self.title}\n\n**No candidates.**"

        annotations = annotations or {}
        markdown = [self.header(len(candidates), source), ""]
        markdown.extend([
            "| # | Candidate | Annotation |",
            "|---|-----------|------------|"
        ])
        for i, candidate in enumerate(candidates, 1):
            note = annotations.get(candidate) or ""
            markdown.append(f"| {i} | {self.escape_markdown(candidate)} | {self.escape_markdown(note)} |")

        return "\n".join(markdown)


class FileListPresenter(BasePresenter):
    """Convert file candidates to a directory-style listing"""

    title = "Files"

    def to_markdown(self, candidates: Sequence[str], source: str = "",
                    annotations: Optional[Mapping[str, Optional[str]]] = None) -> str:
        if not candidates:
            return f"## {self.title}\n\n**No files.**"

        markdown = [self.header(len(candidates), source), ""]
        markdown.extend([
            "| # | Name | Size | Modified | Path |",
            "|---|------|------|----------|------|"
        ])

        for i, candidate in enumerate(candidates, 1):
            path = Path(candidate).expanduser()
            name = path.name or candidate
            try:
                stat = path.stat()
                size = "dir" if path.is_dir() else human_size(stat.st_size)
                modified = self.format_timestamp(stat.st_mtime)
            except (OSError, ValueError):
                size, modified = "-", "-"

            markdown.append(
                f"| {i} | **{self.escape_markdown(name)}** | {size} | {modified} | "
                f"`{candidate}` |"
            )

        return "\n".join(markdown)


class SymbolPresenter(BasePresenter):
    """Convert symbol candidates to a name/summary table"""

    title = "Symbols"

    def to_markdown(self, candidates: Sequence[str], source: str = "",
                    annotations: Optional[Mapping[str, Optional[str]]] = None) -> str:
        if not candidates:
            return f"## {self.title}\n\n**No symbols.**"

        markdown = [self.header(len(candidates), source), ""]
        markdown.extend([
            "| # | Symbol | Summary |",
            "|---|--------|---------|"
        ])
        for i, candidate in enumerate(candidates, 1):
            summary = symbol_annotation(candidate) or ""
            markdown.append(f"| {i} | `{candidate}` | {self.escape_markdown(summary)} |")

        return "\n".join(markdown)


class PackagePresenter(BasePresenter):
    """Convert package candidates to a name/version table"""

    title = "Packages"

    def to_markdown(self, candidates: Sequence[str], source: str = "",
                    annotations: Optional[Mapping[str, Optional[str]]] = None) -> str:
        if not candidates:
            return f"## {self.title}\n\n**No packages.**"

        markdown = [self.header(len(candidates), source), ""]
        markdown.extend([
            "| # | Package | Installed |",
            "|---|---------|-----------|"
        ])
        for i, candidate in enumerate(candidates, 1):
            installed = package_annotation(candidate) or "not installed"
            markdown.append(f"| {i} | **{self.escape_markdown(candidate)}** | {self.escape_markdown(installed)} |")

        return "\n".join(markdown)


# Factory function for easy access
def create_presenter(session_type: str) -> BasePresenter:
    """Create appropriate presenter for a session type"""
    presenters = {
        FILE: FileListPresenter,
        SYMBOL: SymbolPresenter,
        PACKAGE: PackagePresenter,
    }

    return presenters.get(session_type, BasePresenter)()
