"""
Link-page renderer.

Turns an ordered list of links into a self-contained SVG document. Rendering is
pure: the same links always produce byte-identical output.

Layout policy: only *regular* links count towards the layout choice, social
links always render in the fixed-size footer band.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from linkpage.errors import ValidationError

MAX_LINKS = 20
MIN_HEIGHT = 400
SOCIAL_BAND_HEIGHT = 100
CANVAS_WIDTH = 700

PALETTE = (
    ("#10b981", "#059669"),  # emerald
    ("#3b82f6", "#2563eb"),  # sapphire
    ("#8b5cf6", "#7c3aed"),  # amethyst
    ("#ec4899", "#db2777"),  # ruby
    ("#fbbf24", "#f59e0b"),  # topaz
    ("#06b6d4", "#0891b2"),  # aquamarine
)

GENERIC_ICON = (
    "M12 2C6.48 2 2 6.48 2 12s4.48 10 10 10 10-4.48 10-10S17.52 2 12 2zm0 18c-4.41 0-8-3.59-8-8s3.59-8 "
    "8-8 8 3.59 8 8-3.59 8-8 8zm-1-13h2v6h-2zm0 8h2v2h-2z"
)

SOCIAL_ICONS = {
    "instagram": (
        "M12 2.163c3.204 0 3.584.012 4.85.07 3.252.148 4.771 1.691 4.919 4.919.058 1.265.069 1.645.069 4.849 "
        "0 3.205-.012 3.584-.069 4.849-.149 3.225-1.664 4.771-4.919 4.919-1.266.058-1.644.07-4.85.07-3.204 "
        "0-3.584-.012-4.849-.07-3.26-.149-4.771-1.699-4.919-4.92-.058-1.265-.07-1.644-.07-4.849 0-3.204.013-"
        "3.583.07-4.849.149-3.227 1.664-4.771 4.919-4.919 1.266-.057 1.645-.069 4.849-.069zm0 5.838c-3.403 "
        "0-6.162 2.759-6.162 6.162s2.759 6.163 6.162 6.163 6.162-2.759 6.162-6.163c0-3.403-2.759-6.162-6.162-"
        "6.162zm0 10.162c-2.209 0-4-1.79-4-4 0-2.209 1.791-4 4-4s4 1.791 4 4c0 2.21-1.791 4-4 4z"
    ),
    "tiktok": (
        "M19.59 6.69a4.83 4.83 0 01-3.77-4.25V2h-3.45v13.67a2.89 2.89 0 01-5.2 1.74 2.89 2.89 0 012.31-4.64 "
        "2.93 2.93 0 01.88.13V9.4a6.84 6.84 0 00-1-.05A6.33 6.33 0 005 20.1a6.34 6.34 0 0010.86-4.43v-7a8.16 "
        "8.16 0 004.77 1.52v-3.4a4.85 4.85 0 01-1-.1z"
    ),
    "youtube": (
        "M23.498 6.186a3.016 3.016 0 00-2.122-2.136C19.505 3.545 12 3.545 12 3.545s-7.505 0-9.377.505A3.017 "
        "3.017 0 00.502 6.186C0 8.07 0 12 0 12s0 3.93.502 5.814a3.016 3.016 0 002.122 2.136c1.871.505 9.376"
        ".505 9.376.505s7.505 0 9.377-.505a3.015 3.015 0 002.122-2.136C24 15.93 24 12 24 12s0-3.93-.502-5.814z"
        "M9.545 15.568V8.432L15.818 12l-6.273 3.568z"
    ),
    "twitter": (
        "M23.953 4.57a10 10 0 01-2.825.775 4.958 4.958 0 002.163-2.723c-.951.555-2.005.959-3.127 1.184a4.92 "
        "4.92 0 00-8.384 4.482C7.69 8.095 4.067 6.13 1.64 3.162a4.822 4.822 0 00-.666 2.475c0 1.71.87 3.213 "
        "2.188 4.096a4.904 4.904 0 01-2.228-.616v.06a4.923 4.923 0 003.946 4.827 4.996 4.996 0 01-2.212.085 "
        "4.936 4.936 0 004.604 3.417 9.867 9.867 0 01-6.102 2.105c-.39 0-.779-.023-1.17-.067a13.995 13.995 0 "
        "007.557 2.209c9.053 0 13.998-7.496 13.998-13.985 0-.21 0-.42-.015-.63A9.935 9.935 0 0024 4.59z"
    ),
    "facebook": (
        "M24 12.073c0-6.627-5.373-12-12-12s-12 5.373-12 12c0 5.99 4.388 10.954 10.125 11.854v-8.385H7.078v-"
        "3.47h3.047V9.43c0-3.007 1.792-4.669 4.533-4.669 1.312 0 2.686.235 2.686.235v2.953H15.83c-1.491 0-"
        "1.956.925-1.956 1.874v2.25h3.328l-.532 3.47h-2.796v8.385C19.612 23.027 24 18.062 24 12.073z"
    ),
    "linkedin": (
        "M20.447 20.452h-3.554v-5.569c0-1.328-.027-3.037-1.852-3.037-1.853 0-2.136 1.445-2.136 2.939v5.667H9."
        "351V9h3.414v1.561h.046c.477-.9 1.637-1.85 3.37-1.85 3.601 0 4.267 2.37 4.267 5.455v6.286zM5.337 "
        "7.433c-1.144 0-2.063-.926-2.063-2.065 0-1.138.92-2.063 2.063-2.063 1.14 0 2.064.925 2.064 2.063 0 "
        "1.139-.925 2.065-2.064 2.065zm1.782 13.019H3.555V9h3.564v11.452z"
    ),
    "github": (
        "M12 .297c-6.63 0-12 5.373-12 12 0 5.303 3.438 9.8 8.205 11.385.6.113.82-.258.82-.577 0-.285-.01-"
        "1.04-.015-2.04-3.338.724-4.042-1.61-4.042-1.61C4.422 18.07 3.633 17.7 3.633 17.7c-1.087-.744.084-"
        ".729.084-.729 1.205.084 1.838 1.236 1.838 1.236 1.07 1.835 2.809 1.305 3.495.998.108-.776.417-1.305"
        ".76-1.605-2.665-.3-5.466-1.332-5.466-5.93 0-1.31.465-2.38 1.235-3.22-.135-.303-.54-1.523.105-3.176 "
        "0 0 1.005-.322 3.3 1.23.96-.267 1.98-.399 3-.405 1.02.006 2.04.138 3 .405 2.28-1.552 3.285-1.23 "
        "3.285-1.23.645 1.653.24 2.873.12 3.176.765.84 1.23 1.91 1.23 3.22 0 4.61-2.805 5.625-5.475 5.92.42"
        ".36.81 1.096.81 2.22 0 1.606-.015 2.896-.015 3.286 0 .315.21.69.825.57C20.565 22.092 24 17.592 24 "
        "12.297c0-6.627-5.373-12-12-12"
    ),
}
SOCIAL_ICONS["x"] = SOCIAL_ICONS["twitter"]

DEMO_LINKS = (
    ("GitHub", "https://github.com/planet-nine-app"),
    ("Planet Nine", "https://planetnine.app"),
    ("Documentation", "https://docs.planetnine.app"),
    ("Twitter", "https://twitter.com/planetnine"),
    ("Discord", "https://discord.gg/planetnine"),
    ("Blog", "https://blog.planetnine.app"),
)


@dataclass(frozen=True)
class LinkRecord:
    title: Optional[str]
    url: Optional[str]
    is_social: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkRecord":
        title, url = data.get("title"), data.get("url")
        return cls(
            title=str(title) if title is not None else None,
            url=str(url) if url is not None else None,
            is_social=bool(data.get("isSocial", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title, "url": self.url}
        if self.is_social:
            data["isSocial"] = True
        return data


@dataclass(frozen=True)
class Layout:
    name: str
    columns: int
    row_height: int
    top: int
    base_padding: int
    social_offset: int
    title_limit: int
    card_width: int
    card_height: int
    radius: int
    title_size: int
    glow: int
    header_size: int


STACKED = Layout("stacked", 1, 110, 60, 60, 50, 30, 600, 90, 15, 20, 8, 24)
GRID = Layout("grid", 2, 100, 80, 100, 20, 15, 290, 80, 12, 16, 6, 24)
DENSE = Layout("dense", 3, 80, 80, 100, 10, 12, 190, 65, 10, 14, 5, 22)


def choose_layout(regular_count: int) -> Layout:
    """Pick the layout for ``regular_count`` regular (non-social) links."""
    if regular_count <= 6:
        return STACKED
    if regular_count <= 13:
        return GRID
    return DENSE


def escape_xml(value: Any) -> str:
    """Escape the five reserved markup characters."""
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def social_icon(title: Optional[str]) -> str:
    return SOCIAL_ICONS.get((title or "").strip().lower(), GENERIC_ICON)


def parse_links(raw: Any) -> List[LinkRecord]:
    """Coerce a request payload into link records."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Missing or invalid links array")
    links = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each link must be an object with title and url")
        links.append(LinkRecord.from_dict(item))
    return links


def truncate_links(links: Sequence[LinkRecord]) -> List[LinkRecord]:
    return list(links[:MAX_LINKS])


def demo_links() -> List[LinkRecord]:
    return [LinkRecord(title, url) for title, url in DEMO_LINKS]


def partition(links: Iterable[LinkRecord]):
    regular = [link for link in links if not link.is_social]
    social = [link for link in links if link.is_social]
    return regular, social


def page_height(layout: Layout, regular_count: int, has_social: bool) -> int:
    rows = math.ceil(regular_count / layout.columns)
    base = rows * layout.row_height + layout.base_padding
    return max(MIN_HEIGHT, base + (SOCIAL_BAND_HEIGHT if has_social else 0))


def _card_position(layout: Layout, index: int):
    col = index % layout.columns
    row = index // layout.columns
    if layout is STACKED:
        x = 50
    elif layout is GRID:
        x = 40 if col == 0 else 370
    else:
        x = 30 + col * 220
    return x, layout.top + row * layout.row_height


def _render_card(layout: Layout, link: LinkRecord, index: int) -> str:
    start, end = PALETTE[index % len(PALETTE)]
    x, y = _card_position(layout, index)
    title = escape_xml(truncate(link.title or "Untitled", layout.title_limit))
    url = escape_xml(link.url or "#")
    grad_id = f"grad{index}"
    glow_id = f"glow{index}"

    if layout is STACKED:
        text_x, title_y, hint_y, hint = x + 40, y + 40, y + 65, "✨ Tap to open"
        hint_size = 14
    elif layout is GRID:
        text_x, title_y, hint_y, hint = x + 20, y + 35, y + 55, "✨ Click"
        hint_size = 12
    else:
        text_x, title_y, hint_y, hint = x + 15, y + 30, y + 48, "✨"
        hint_size = 11

    arrow = ""
    if layout is STACKED:
        arrow = (
            f'\n            <text x="600" y="{y + 50}" fill="{start}" font-size="30" '
            f'style="filter: drop-shadow(0 0 6px {start});">→</text>'
        )

    return f"""
        <defs>
            <linearGradient id="{grad_id}" x1="0%" y1="0%" x2="100%" y2="100%">
                <stop offset="0%" style="stop-color:{start};stop-opacity:1" />
                <stop offset="100%" style="stop-color:{end};stop-opacity:1" />
            </linearGradient>
            <filter id="{glow_id}" x="-50%" y="-50%" width="200%" height="200%">
                <feGaussianBlur stdDeviation="{layout.glow}" result="coloredBlur"/>
                <feMerge>
                    <feMergeNode in="coloredBlur"/>
                    <feMergeNode in="SourceGraphic"/>
                </feMerge>
            </filter>
        </defs>

        <a href="{url}" target="_blank">
            <g filter="url(#{glow_id})">
                <rect x="{x}" y="{y}" width="{layout.card_width}" height="{layout.card_height}" rx="{layout.radius}"
                      fill="url(#{grad_id})" opacity="0.15"/>
                <rect x="{x}" y="{y}" width="{layout.card_width}" height="{layout.card_height}" rx="{layout.radius}"
                      fill="none" stroke="url(#{grad_id})" stroke-width="2" opacity="0.8"/>
            </g>
            <text x="{text_x}" y="{title_y}" fill="{start}" font-size="{layout.title_size}" font-weight="bold"
                  style="filter: drop-shadow(0 0 {layout.glow}px {start});">{title}</text>
            <text x="{text_x}" y="{hint_y}" fill="rgba(167, 139, 250, 0.7)" font-size="{hint_size}">{hint}</text>{arrow}
        </a>"""


def _render_social_band(social: Sequence[LinkRecord], y: int) -> str:
    spacing = 50
    start_x = CANVAS_WIDTH // 2 - (len(social) * spacing) // 2
    badges = []
    for index, link in enumerate(social):
        x = start_x + index * spacing
        badges.append(
            f"""
        <a href="{escape_xml(link.url or '#')}" target="_blank">
            <g transform="translate({x}, {y})">
                <title>{escape_xml(link.title or 'Untitled')}</title>
                <circle cx="16" cy="16" r="18" fill="rgba(167, 139, 250, 0.1)"
                        stroke="#a78bfa" stroke-width="1" opacity="0.6"/>
                <path d="{social_icon(link.title)}" fill="#a78bfa" opacity="0.8"
                      transform="scale(0.65) translate(4, 4)"/>
            </g>
        </a>"""
        )

    return f"""
    <text x="{CANVAS_WIDTH // 2}" y="{y - 15}" fill="#a78bfa" font-size="16" font-weight="bold"
          text-anchor="middle" opacity="0.7">SoMa:</text>
    {''.join(badges)}"""


def render(links: Sequence[LinkRecord]) -> str:
    """Render ``links`` (at most ``MAX_LINKS``, in display order) as an SVG document."""
    regular, social = partition(links)
    layout = choose_layout(len(regular))
    height = page_height(layout, len(regular), bool(social))
    rows = math.ceil(len(regular) / layout.columns)
    social_y = rows * layout.row_height + layout.base_padding + layout.social_offset

    cards = "\n".join(_render_card(layout, link, index) for index, link in enumerate(regular))
    band = _render_social_band(social, social_y) if social else ""

    return f"""
<svg width="{CANVAS_WIDTH}" height="{height}" viewBox="0 0 {CANVAS_WIDTH} {height}" xmlns="http://www.w3.org/2000/svg" data-layout="{layout.name}">
    <defs>
        <radialGradient id="bgGrad" cx="50%" cy="50%">
            <stop offset="0%" style="stop-color:#1a0033;stop-opacity:1" />
            <stop offset="100%" style="stop-color:#0a001a;stop-opacity:1" />
        </radialGradient>
    </defs>

    <rect width="{CANVAS_WIDTH}" height="{height}" fill="url(#bgGrad)"/>

    <text x="{CANVAS_WIDTH // 2}" y="40" fill="#fbbf24" font-size="{layout.header_size}" font-weight="bold" text-anchor="middle"
          style="filter: drop-shadow(0 0 10px #fbbf24);">✨ My Links ✨</text>
{cards}
{band}
</svg>"""
