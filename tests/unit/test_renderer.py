"""
Unit tests for the link-page renderer.
"""

import re

import pytest

from linkpage.errors import ValidationError
from linkpage.renderer import (
    DENSE,
    GENERIC_ICON,
    GRID,
    MIN_HEIGHT,
    SOCIAL_BAND_HEIGHT,
    SOCIAL_ICONS,
    STACKED,
    LinkRecord,
    choose_layout,
    demo_links,
    escape_xml,
    page_height,
    parse_links,
    render,
    social_icon,
    truncate,
    truncate_links,
)


def records(count, social=0):
    links = [LinkRecord(f"Link {i}", f"https://example.com/{i}") for i in range(count)]
    links += [LinkRecord("instagram", f"https://instagram.com/{i}", is_social=True) for i in range(social)]
    return links


def layout_of(svg):
    return re.search(r'data-layout="(\w+)"', svg).group(1)


class TestLayoutSelection:
    """Layout boundaries on the number of regular links."""

    @pytest.mark.parametrize(
        "count,expected",
        [(0, STACKED), (1, STACKED), (6, STACKED), (7, GRID), (13, GRID), (14, DENSE), (20, DENSE)],
    )
    def test_choose_layout_boundaries(self, count, expected):
        assert choose_layout(count) is expected

    @pytest.mark.parametrize("count,name", [(6, "stacked"), (7, "grid"), (13, "grid"), (14, "dense")])
    def test_render_uses_boundary_layouts(self, count, name):
        assert layout_of(render(records(count))) == name

    def test_social_links_do_not_count_towards_layout(self):
        """Six regular links stay stacked no matter how many social badges follow."""
        assert layout_of(render(records(6, social=8))) == "stacked"


class TestRender:
    """Test SVG document output."""

    def test_render_is_deterministic(self):
        links = records(9, social=2)

        assert render(links) == render(links)

    def test_render_escapes_reserved_characters(self):
        svg = render([LinkRecord("&<>\"'", "https://example.com/?a=1&b=2")])

        assert "&amp;&lt;&gt;&quot;&apos;" in svg
        assert "&<>\"'" not in svg
        assert 'href="https://example.com/?a=1&amp;b=2"' in svg

    def test_missing_fields_use_placeholders(self):
        svg = render([LinkRecord(None, None)])

        assert ">Untitled<" in svg
        assert 'href="#"' in svg

    def test_titles_truncated_per_layout(self):
        long_title = "A" * 40
        stacked = render([LinkRecord(long_title, "https://example.com")])
        dense = render([LinkRecord(long_title, "https://example.com")] + records(13))

        assert ">" + "A" * 30 + "...<" in stacked
        assert ">" + "A" * 12 + "...<" in dense

    def test_palette_cycles_by_index(self):
        svg = render(records(7))
        gradients = re.findall(r'id="grad(\d+)"[^>]*>\s*<stop offset="0%" style="stop-color:(#\w+)', svg)
        colors = dict(gradients)

        assert colors["0"] == colors["6"]
        assert colors["0"] != colors["1"]

    def test_social_band_rendered_with_links(self):
        links = [
            LinkRecord("Site", "https://example.com"),
            LinkRecord("GitHub", "https://github.com/me", is_social=True),
            LinkRecord("Mastodon", "https://mastodon.social/@me", is_social=True),
        ]
        svg = render(links)

        assert "SoMa:" in svg
        assert 'href="https://github.com/me"' in svg
        assert SOCIAL_ICONS["github"] in svg
        assert GENERIC_ICON in svg

    def test_no_social_band_without_social_links(self):
        assert "SoMa:" not in render(records(3))

    def test_height_grows_with_social_links(self):
        without = page_height(STACKED, 6, False)
        with_social = page_height(STACKED, 6, True)

        assert with_social == without + SOCIAL_BAND_HEIGHT

    def test_height_has_floor(self):
        assert page_height(STACKED, 1, False) == MIN_HEIGHT

    def test_social_band_counts_toward_floor(self):
        assert page_height(STACKED, 1, True) == MIN_HEIGHT
        assert page_height(STACKED, 3, True) == 3 * STACKED.row_height + STACKED.base_padding + SOCIAL_BAND_HEIGHT


class TestHelpers:
    """Test renderer helper functions."""

    def test_escape_xml_escapes_ampersand_first(self):
        assert escape_xml("&lt;") == "&amp;lt;"

    def test_truncate_only_when_over_limit(self):
        assert truncate("short", 15) == "short"
        assert truncate("x" * 16, 15) == "x" * 15 + "..."

    def test_social_icon_lookup_is_case_insensitive(self):
        assert social_icon("  YouTube ") == SOCIAL_ICONS["youtube"]
        assert social_icon("x") == SOCIAL_ICONS["twitter"]
        assert social_icon(None) == GENERIC_ICON

    def test_parse_links(self):
        links = parse_links([{"title": "A", "url": "https://a.example", "isSocial": True}])

        assert links == [LinkRecord("A", "https://a.example", is_social=True)]

    @pytest.mark.parametrize("raw", [None, [], "links", {"title": "A"}])
    def test_parse_links_rejects_invalid_payload(self, raw):
        with pytest.raises(ValidationError, match="links array"):
            parse_links(raw)

    def test_parse_links_rejects_non_object_items(self):
        with pytest.raises(ValidationError):
            parse_links(["https://example.com"])

    def test_truncate_links_caps_at_twenty(self):
        assert len(truncate_links(records(25))) == 20

    def test_demo_links_not_empty(self):
        assert demo_links()
        assert all(link.url for link in demo_links())

    def test_link_record_round_trip(self):
        link = LinkRecord("GitHub", "https://github.com", is_social=True)

        assert LinkRecord.from_dict(link.to_dict()) == link
        assert "isSocial" not in LinkRecord("a", "b").to_dict()
