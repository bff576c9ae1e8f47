"""parser モジュールのテスト"""

from bs4 import BeautifulSoup

from image_auditor.parser import (
    ImageReferenceExtractor,
    extract_site_links,
    extract_title,
    parse_srcset,
    parse_style_urls,
)


class TestImageReferenceExtractor:
    """HTML からの画像参照の抽出"""

    def test_img_src_and_srcset(self):
        html = '<img src="main.jpg" srcset="a.jpg 1x, b.jpg 2x">'
        assert ImageReferenceExtractor().extract(html) == {"main.jpg", "a.jpg", "b.jpg"}

    def test_srcset_only_yields_first_token_of_each_candidate(self):
        html = '<img srcset="a.jpg 1x, b.jpg 2x">'
        assert ImageReferenceExtractor().extract(html) == {"a.jpg", "b.jpg"}

    def test_picture_sources(self):
        html = """
        <picture>
          <source srcset="hero.avif 480w, hero-large.avif 1024w" type="image/avif">
          <source src="legacy.webp">
          <img src="hero.jpg">
        </picture>
        """
        assert ImageReferenceExtractor().extract(html) == {
            "hero.avif",
            "hero-large.avif",
            "legacy.webp",
            "hero.jpg",
        }

    def test_source_outside_picture_is_ignored(self):
        html = '<video><source src="movie.mp4"></video>'
        assert ImageReferenceExtractor().extract(html) == set()

    def test_inline_style_urls(self):
        html = """
        <div style="background-image: url('bg.png')"></div>
        <section style='background: url("/img/a.jpg") no-repeat, URL(b.gif)'></section>
        """
        assert ImageReferenceExtractor().extract(html) == {"bg.png", "/img/a.jpg", "b.gif"}

    def test_social_meta_images(self):
        html = """
        <head>
          <meta property="og:image" content="https://example.com/og.png">
          <meta name="twitter:image" content="/tw.png">
          <meta name="description" content="not an image">
        </head>
        """
        assert ImageReferenceExtractor().extract(html) == {"https://example.com/og.png", "/tw.png"}

    def test_duplicates_collapse_and_raw_values_are_preserved(self):
        html = """
        <img src="my image.jpg">
        <img src="my image.jpg">
        <div style="background: url(my image.jpg)"></div>
        """
        assert ImageReferenceExtractor().extract(html) == {"my image.jpg"}

    def test_page_without_images(self):
        assert ImageReferenceExtractor().extract("<p>hello</p>") == set()


def test_parse_srcset_skips_empty_candidates():
    assert parse_srcset("a.jpg 1x, , b.jpg") == ["a.jpg", "b.jpg"]


def test_parse_style_urls():
    assert parse_style_urls("background: url( 'x.png' )") == ["x.png"]
    assert parse_style_urls("color: red") == []


def test_extract_title():
    soup = BeautifulSoup("<title>  Hello  </title><title>Other</title>", "lxml")
    assert extract_title(soup) == "Hello"
    assert extract_title(BeautifulSoup("<p>no title</p>", "lxml")) == ""


def test_extract_site_links_keeps_only_site_pages():
    html = """
    <a href="/about#team">About</a>
    <a href="https://example.com/blog/">Blog</a>
    <a href="https://other.example.org/">Other</a>
    <a href="mailto:info@example.com">Mail</a>
    <a>No href</a>
    """
    assert extract_site_links(html, "https://example.com") == [
        "https://example.com/about",
        "https://example.com/blog/",
    ]
