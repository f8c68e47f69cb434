"""Tests for blog site HTML and JSONP parsing."""

import pytest

from scraper.errors import ParseError
from scraper.html_parser import (
    get_image_url,
    parse_blog_detail,
    parse_blog_list_page,
    parse_member_jsonp,
)


class TestGetImageUrl:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/images/a.jpg", "https://www.nogizaka46.com/images/a.jpg"),
            ("images/a.jpg", "https://www.nogizaka46.com/images/a.jpg"),
            ("https://cdn.example/a.jpg", "https://cdn.example/a.jpg"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_get_image_url(self, base_url, path, expected):
        assert get_image_url(path, base_url) == expected


class TestParseBlogListPage:
    """Test parse_blog_list_page."""

    def test_parses_cards(self, base_url, html_factory):
        html = html_factory.list_page(
            [html_factory.card("102938", "春の日"), html_factory.card("102777", "ありがとう")]
        )

        page = parse_blog_list_page(html, base_url, author="井上 和")

        assert [blog.id for blog in page.blogs] == ["102938", "102777"]
        first = page.blogs[0]
        assert first.title == "春の日"
        assert first.date == "2024.05.01 12:00"
        assert first.link.startswith(f"{base_url}/s/n46/diary/detail/102938")
        assert first.thumbnail == f"{base_url}/images/102938.jpg"
        assert first.author == "井上 和"
        assert page.has_next_page is False

    def test_detects_next_page(self, base_url, html_factory):
        html = html_factory.list_page([html_factory.card("1", "a")], has_next=True)

        assert parse_blog_list_page(html, base_url).has_next_page is True

    def test_skips_cards_without_post_id(self, base_url, html_factory):
        broken = '<a class="bl--card" href="/s/n46/diary/MEMBER"><p class="bl--card__ttl">x</p></a>'
        html = html_factory.list_page([broken, html_factory.card("5", "ok")])

        page = parse_blog_list_page(html, base_url)

        assert [blog.id for blog in page.blogs] == ["5"]

    def test_card_without_thumbnail(self, base_url):
        html = '<a class="bl--card" href="/s/n46/diary/detail/7"><p class="bl--card__ttl">t</p></a>'

        page = parse_blog_list_page(html, base_url)

        assert page.blogs[0].thumbnail == ""
        assert page.blogs[0].date == ""

    def test_empty_page(self, base_url):
        page = parse_blog_list_page("<html><body></body></html>", base_url)

        assert page.blogs == []
        assert page.has_next_page is False


class TestParseBlogDetail:
    """Test parse_blog_detail."""

    def test_parses_post(self, base_url, html_factory):
        detail = parse_blog_detail(html_factory.detail_page(), base_url)

        assert detail.title == "春の日"
        assert detail.date == "2024.05.01 12:00"
        assert detail.member_code == "55401"
        assert detail.author == "井上 和"
        assert "<p>こんにちは</p>" in detail.content

    def test_root_relative_images_become_absolute(self, base_url, html_factory):
        content = '<img src="/images/photo.jpg"><img src="https://cdn.example/b.jpg">'

        detail = parse_blog_detail(html_factory.detail_page(content=content), base_url)

        assert f'src="{base_url}/images/photo.jpg"' in detail.content
        assert 'src="https://cdn.example/b.jpg"' in detail.content

    def test_content_is_inner_html(self, base_url, html_factory):
        detail = parse_blog_detail(html_factory.detail_page(content="<p>a</p>"), base_url)

        assert detail.content == "<p>a</p>"

    def test_missing_profile_link(self, base_url):
        html = '<h1 class="bd--title">t</h1><div class="bd--edit"><p>x</p></div>'

        detail = parse_blog_detail(html, base_url)

        assert detail.member_code is None
        assert detail.author == ""

    def test_missing_body_raises(self, base_url):
        with pytest.raises(ParseError):
            parse_blog_detail("<html><body><p>Not found</p></body></html>", base_url)


class TestParseMemberJsonp:
    """Test parse_member_jsonp."""

    def test_parses_members(self, member_jsonp):
        members = parse_member_jsonp(member_jsonp)

        assert [member.code for member in members] == ["55401", "48006", "36749"]
        assert members[0].name == "井上 和"
        assert members[0].generation == "5期生"

    @pytest.mark.parametrize(
        "payload",
        [
            'res({"data": []});',
            'res({"data": []})',
            '  res({"data": []});\n',
            '{"data": []}',
        ],
    )
    def test_wrapper_variants(self, payload):
        assert parse_member_jsonp(payload) == []

    def test_skips_invalid_entries(self):
        payload = 'res({"data": [{"name": "no code"}, {"code": "1", "name": "ok"}]});'

        members = parse_member_jsonp(payload)

        assert [member.code for member in members] == ["1"]

    @pytest.mark.parametrize(
        "payload",
        ["res(not json);", "<html>error</html>", 'res({"count": 3});', "res([1, 2]);"],
    )
    def test_invalid_payload_raises(self, payload):
        with pytest.raises(ParseError):
            parse_member_jsonp(payload)
