"""Shared page shell for every generated HTML file.

Deterministic: fixed structure, no timestamps unless the caller passes an
explicit ``footer_html``.
"""

from __future__ import annotations

import html

PYGMENTS_CSS_PATH = "_static/pygments.css"

_NAV_ITEMS: tuple[tuple[str, str, str], ...] = (
    ("home", "All documents", "index.html"),
    ("status", "By status", "index-by-status.html"),
    ("type", "By type", "index-by-type.html"),
    ("author", "By author", "index-by-author.html"),
)

_SITE_CSS: tuple[str, ...] = (
    ":root { --text:#1d1d1f; --page:#fdfdfd; --dim:#6b6b6b; --rule:#dcdcdc; --accent:#2a5db0; }",
    "body { margin: 0; color: var(--text); background: var(--page);",
    "       font: 16px/1.55 Georgia, 'Times New Roman', serif; }",
    ".site-nav, .content, .site-footer { max-width: 860px; margin: 0 auto; padding: 0 24px; }",
    ".site-nav { padding-top: 14px; padding-bottom: 14px; border-bottom: 1px solid var(--rule); }",
    ".site-nav a { margin-right: 16px; color: var(--accent); text-decoration: none;",
    "              font-family: system-ui, sans-serif; font-size: 14px; }",
    ".site-nav a.active { color: var(--text); font-weight: 700; }",
    ".content { padding-top: 20px; padding-bottom: 48px; }",
    ".content h1 { font-size: 26px; margin: 0 0 12px; }",
    ".content h2 { font-size: 20px; margin: 28px 0 8px; }",
    ".muted { color: var(--dim); }",
    "table.headers { border-collapse: collapse; margin-bottom: 20px; font-size: 14px; }",
    "table.headers th { text-align: right; padding: 2px 12px 2px 0; color: var(--dim); }",
    "table.listing td { padding: 2px 14px 2px 0; vertical-align: top; }",
    "code, pre { font-family: ui-monospace, Menlo, Consolas, monospace; font-size: 14px; }",
    ".highlight pre { padding: 10px 12px; border: 1px solid var(--rule); overflow-x: auto; }",
    ".site-footer { padding-bottom: 24px; color: var(--dim); font-size: 13px; }",
)


def nav(*, current: str, rel_prefix: str) -> str:
    # rel_prefix is the relative path from the current page to the site root.
    def item(key: str, label: str, href: str) -> str:
        class_attr = ' class="active"' if key == current else ""
        return f'<a href="{html.escape(rel_prefix + href)}"{class_attr}>{html.escape(label)}</a>'

    return "\n".join("      " + item(*entry) for entry in _NAV_ITEMS)


def html_page(
    *,
    title: str,
    nav_html: str,
    body_html: str,
    rel_prefix: str,
    footer_html: str = "",
) -> str:
    lines = [
        "<!doctype html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="utf-8" />',
        '  <meta name="viewport" content="width=device-width, initial-scale=1" />',
        f"  <title>{html.escape(title)}</title>",
        f'  <link rel="stylesheet" href="{rel_prefix}{PYGMENTS_CSS_PATH}" />',
        "  <style>",
        *("    " + rule for rule in _SITE_CSS),
        "  </style>",
        "</head>",
        "<body>",
        '  <nav class="site-nav">',
        nav_html,
        "  </nav>",
        '  <main class="content">',
        body_html,
        "  </main>",
    ]
    if footer_html:
        lines.append(f'  <footer class="site-footer">{footer_html}</footer>')
    lines.extend(["</body>", "</html>"])
    return "\n".join(lines)


def build_stamp_footer(build_timestamp: str | None) -> str:
    if not build_timestamp:
        return ""
    return f"Built {html.escape(build_timestamp)}"
