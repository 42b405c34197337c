"""Compile a corpus of proposal documents into a deterministic static site.

Stages live in their own modules and are driven by ``pepsite.build``.
"""

__version__ = "0.1.0"

__all__: list[str] = [
    "build",
    "check_links",
    "config",
    "errors",
    "headers",
    "indexes",
    "redirects",
    "render",
    "xref",
]
