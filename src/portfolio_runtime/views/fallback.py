"""
portfolio_runtime.views.fallback

Fallback markup shown when rendering or bootstrapping fails.

Responsibilities:
- Inline panel written into a single container after a render failure.
- Full-page error written over the document body after a critical bootstrap failure.
"""

from __future__ import annotations

import html

RELOAD_ACTION = "window.location.reload()"


def inline_error_panel(view: str, error: BaseException) -> str:
    return (
        f'<div class="content-error-state" role="alert" data-view="{html.escape(view)}">'
        "<h3>Content Loading Issue</h3>"
        "<p>Some content could not be loaded. Please refresh the page or try again later.</p>"
        f'<button class="btn btn--primary" onclick="{RELOAD_ACTION}">Reload Page</button>'
        '<details class="error-details"><summary>Technical Details</summary>'
        f"<pre>{html.escape(str(error))}</pre></details>"
        "</div>"
    )


def critical_error_page(error: BaseException, *, module: str | None = None, report_id: str | None = None) -> str:
    rows = []
    if module:
        rows.append(f"<dt>Module</dt><dd>{html.escape(module)}</dd>")
    if report_id:
        rows.append(f"<dt>Report</dt><dd>{html.escape(report_id)}</dd>")
    return (
        '<div class="critical-error-page" role="alert">'
        "<h1>Application Error</h1>"
        "<p>A critical error occurred during application startup. We apologize for the inconvenience.</p>"
        f'<button class="retry-button" onclick="{RELOAD_ACTION}">Reload Application</button>'
        '<details class="error-details"><summary>Technical Details</summary>'
        f"<dl>{''.join(rows)}</dl><pre>{html.escape(str(error))}</pre></details>"
        "</div>"
    )


def not_found_page(path: str) -> str:
    return (
        '<!DOCTYPE html><html lang="en"><head><meta charset="utf-8"><title>Page not found</title></head><body>'
        '<div class="not-found" role="alert">'
        "<h1>Page not found</h1>"
        f"<p>No page exists at <code>{html.escape(path)}</code>.</p>"
        '<a href="/">Back to home</a>'
        "</div></body></html>"
    )
