"""
HTML Renderer for exported candidate views
Converts presenter Markdown to a standalone styled HTML document
"""

from __future__ import annotations

import html
from typing import Optional

import markdown

from ..config import settings


THEMES = {
    "light": {
        "bg-color": "#ffffff",
        "text-color": "#24292f",
        "accent-color": "#0969da",
        "border-color": "#d0d7de",
        "code-bg": "#f6f8fa",
    },
    "dark": {
        "bg-color": "#0d1117",
        "text-color": "#e6edf3",
        "accent-color": "#2f81f7",
        "border-color": "#30363d",
        "code-bg": "#161b22",
    },
    "minimal": {
        "bg-color": "#fdfdfd",
        "text-color": "#222222",
        "accent-color": "#222222",
        "border-color": "#e5e5e5",
        "code-bg": "#f5f5f5",
    },
}


class HtmlRenderer:
    """HTML renderer with configurable CSS themes"""

    def __init__(
        self,
        theme: Optional[str] = None,
        font_size: Optional[str] = None,
        max_width: Optional[str] = None
    ):
        # Use settings defaults or override with parameters
        self.theme = theme or settings.css_theme
        if self.theme not in THEMES:
            raise ValueError(f"Unknown theme '{self.theme}', expected one of {sorted(THEMES)}")
        self.font_size = font_size or settings.html_font_size
        self.max_width = max_width or settings.html_max_width

        self.md = markdown.Markdown(
            extensions=[
                'tables',           # Candidate tables
                'fenced_code',      # ```code blocks
            ]
        )

    def render(self, markdown_text: str, title: str = "Candidates", metadata: Optional[dict] = None) -> str:
        """Convert Markdown to a complete HTML document"""
        self.md.reset()
        html_content = self.md.convert(markdown_text)
        return self._build_html_document(html_content, self._get_complete_css(), title, metadata)

    def _build_html_document(self, content: str, css: str, title: str, metadata: Optional[dict] = None) -> str:
        meta_elements = ""
        if metadata:
            for key, value in metadata.items():
                meta_elements += (
                    f'    <meta name="actdispatch-{html.escape(str(key))}" '
                    f'content="{html.escape(str(value))}">\n'
                )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
{meta_elements}    <style>
{css}
    </style>
</head>
<body>
    <article class="markdown-body">
        {content}
    </article>
</body>
</html>"""

    def _get_complete_css(self) -> str:
        return "\n".join([self._get_css_variables(), self._get_base_css()])

    def _get_css_variables(self) -> str:
        """CSS variables from settings and the theme palette"""
        palette = "\n".join(f"    --{name}: {value};" for name, value in THEMES[self.theme].items())
        return f"""
/* {self.theme} theme */
:root {{
    --font-size: {self.font_size};
    --max-width: {self.max_width};
{palette}
}}
"""

    def _get_base_css(self) -> str:
        return """
body {
    background-color: var(--bg-color);
    color: var(--text-color);
}

.markdown-body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif;
    font-size: var(--font-size);
    line-height: 1.6;
    max-width: var(--max-width);
    margin: 0 auto;
    padding: 20px;
}

h2 {
    border-bottom: 1px solid var(--border-color);
    padding-bottom: 8px;
}

code {
    padding: 2px 4px;
    font-family: 'SF Mono', Monaco, Consolas, monospace;
    font-size: 85%;
    background-color: var(--code-bg);
    border-radius: 3px;
}

a {
    color: var(--accent-color);
}

table {
    border-collapse: collapse;
    width: 100%;
}

th, td {
    border: 1px solid var(--border-color);
    padding: 6px 12px;
    text-align: left;
}

th {
    background-color: var(--code-bg);
}
"""
