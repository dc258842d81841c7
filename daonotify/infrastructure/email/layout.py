"""Branded HTML layout wrapped around plain-text email bodies."""

from __future__ import annotations

import re
from html import escape, unescape

FOOTER_TEXT = "Cet email a été envoyé automatiquement par la plateforme DAO."

_PARAGRAPH_SEPARATOR = re.compile(r"\n{2,}")
_BLOCK_END = re.compile(r"<\s*(?:br\s*/?|/p|/div|/li|/h[1-6]|/tr)\s*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_SPACES = re.compile(r"[ \t]+")
_EXTRA_BLANK_LINES = re.compile(r"\n\s*\n+")


def is_html(body: str) -> bool:
    return body.lstrip().startswith("<")


def html_to_text(body: str) -> str:
    """Return a readable plain-text alternative for an HTML ``body``."""

    text = _BLOCK_END.sub("\n", body)
    text = unescape(_TAG.sub("", text))
    lines = [_SPACES.sub(" ", line).strip() for line in text.splitlines()]
    return _EXTRA_BLANK_LINES.sub("\n\n", "\n".join(lines)).strip()


def _paragraphs(body: str) -> str:
    blocks = [block.strip() for block in _PARAGRAPH_SEPARATOR.split(body.replace("\r\n", "\n"))]
    return "".join(
        '<p style="margin:0 0 12px;line-height:1.5;">'
        + escape(block).replace("\n", "<br>")
        + "</p>"
        for block in blocks
        if block
    )


def build_email_html(body: str, *, title: str, logo_url: str) -> str:
    """Return ``body`` as HTML; plain text is escaped and wrapped in the layout."""

    if is_html(body):
        return body
    return (
        '<div style="font-family:Arial,Helvetica,sans-serif;color:#1f2937;'
        'max-width:640px;margin:0 auto;padding:24px;">'
        '<div style="text-align:center;margin-bottom:16px;">'
        f'<img src="{escape(logo_url)}" alt="Logo" style="max-height:64px;"></div>'
        f'<h1 style="font-size:20px;margin:0 0 16px;">{escape(title)}</h1>'
        f"{_paragraphs(body)}"
        '<hr style="border:none;border-top:1px solid #e5e7eb;margin:24px 0 12px;">'
        f'<p style="font-size:12px;color:#6b7280;margin:0;">{escape(FOOTER_TEXT)}</p>'
        "</div>"
    )


__all__ = ["FOOTER_TEXT", "build_email_html", "html_to_text", "is_html"]
