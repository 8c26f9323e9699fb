"""
Contract PDF worker, run as a child process by the HTML backend.

Reads base64 HTML from stdin and writes the base64 PDF to stdout. A Chromium
failure exits non-zero with the traceback on stderr. Playwright's sync API gets a process
of its own instead of sharing the server's event loop.
"""

import base64
import sys

from playwright.sync_api import sync_playwright


def generate_pdf(html: str) -> bytes:
    """Print HTML to PDF with Chromium, keeping the page's own CSS layout"""
    with sync_playwright() as p:
        browser = p.chromium.launch()
        try:
            page = browser.new_page()
            page.set_content(html, wait_until="networkidle")
            return page.pdf(
                format="A4",
                print_background=True,
                prefer_css_page_size=True,
            )
        finally:
            browser.close()


if __name__ == "__main__":
    # Read base64-encoded HTML from stdin
    html_b64 = sys.stdin.read()
    html = base64.b64decode(html_b64).decode("utf-8")

    pdf_bytes = generate_pdf(html)

    # Write base64-encoded PDF to stdout
    sys.stdout.write(base64.b64encode(pdf_bytes).decode("utf-8"))
