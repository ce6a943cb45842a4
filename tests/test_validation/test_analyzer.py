"""Tests for content analysis: soft 404s, parked domains, content hashing."""

from conftest import GUIDE_HTML, PARKED_HTML, SOFT_404_HTML

from ecosort.validation.analyzer import (
    ad_link_ratio,
    analyze,
    boilerplate_ratio,
    compute_content_hash,
    detect_parked_domain,
    detect_soft_404,
    extract_title,
    normalize_html,
)


class TestExtractTitle:
    def test_title_text(self) -> None:
        assert extract_title(GUIDE_HTML) == "Residential Recycling Guide | StopWaste"

    def test_multiline_title_with_attributes(self) -> None:
        html = '<html><head><title lang="en">\n  City Recycling\n</title></head></html>'
        assert extract_title(html) == "City Recycling"

    def test_missing_title(self) -> None:
        assert extract_title("<html><body>hi</body></html>") == ""


class TestSoft404:
    def test_ordinary_guide_is_not_soft_404(self) -> None:
        assert analyze(GUIDE_HTML).is_soft_404 is False

    def test_not_found_title_with_chrome_body(self) -> None:
        """A 200 page titled '404 Page Not Found' made of nav/footer is a soft 404."""
        result = analyze(SOFT_404_HTML, "404 Page Not Found")
        assert result.is_soft_404 is True

    def test_title_alone_is_enough(self) -> None:
        html = "<html><body><main>" + "Real looking content. " * 20 + "</main></body></html>"
        assert detect_soft_404(html, "Page Not Found") is True

    def test_body_phrase_alone_is_enough(self) -> None:
        html = (
            "<html><body><main><p>The page you requested is under maintenance.</p>"
            + "<p>Filler text about the city.</p>" * 10
            + "</main></body></html>"
        )
        assert detect_soft_404(html, "City of Springfield") is True

    def test_chrome_only_body_with_innocent_title(self) -> None:
        nav = "<nav>" + "".join(f'<a href="/s{i}">Section {i}</a>' for i in range(30)) + "</nav>"
        footer = "<footer>" + "Copyright City of Springfield. " * 10 + "</footer>"
        html = f"<html><body>{nav}<p>Hi</p>{footer}</body></html>"

        assert boilerplate_ratio(html) > 0.7
        assert detect_soft_404(html, "City Services") is True

    def test_phrases_inside_scripts_are_ignored(self) -> None:
        html = (
            "<html><head><title>Guide</title>"
            "<script>var msg = 'page not found';</script></head>"
            "<body><main>" + "<p>Rinse cans and bottles before recycling.</p>" * 5
            + "</main></body></html>"
        )
        assert detect_soft_404(html, "Guide") is False

    def test_boilerplate_ratio_without_body(self) -> None:
        assert boilerplate_ratio("<html><head></head></html>") is None


class TestParkedDomain:
    def test_for_sale_phrase_in_body(self) -> None:
        assert analyze(PARKED_HTML).is_parked_domain is True

    def test_for_sale_phrase_in_title(self) -> None:
        assert detect_parked_domain("<html><body></body></html>", "Buy this domain") is True

    def test_ad_heavy_links(self) -> None:
        ads = "".join(f'<a href="/sponsored/offer{i}">Offer {i}</a>' for i in range(6))
        real = '<a href="/recycling">Recycling</a><a href="/compost">Compost</a>'
        html = f"<html><body>{ads}{real}</body></html>"

        assert ad_link_ratio(html) == 6 / 8
        assert detect_parked_domain(html, "Welcome") is True

    def test_few_links_are_not_judged(self) -> None:
        html = '<html><body><a href="/ads/1">x</a><a href="/ads/2">y</a></body></html>'
        assert ad_link_ratio(html) is None
        assert detect_parked_domain(html, "Welcome") is False

    def test_ad_keyword_must_be_a_word(self) -> None:
        links = "".join(f'<a href="/address/{i}">Office {i}</a>' for i in range(8))
        assert ad_link_ratio(f"<html><body>{links}</body></html>") == 0.0

    def test_ordinary_guide_is_not_parked(self) -> None:
        assert analyze(GUIDE_HTML).is_parked_domain is False


class TestContentHash:
    def test_same_page_hashes_identically(self) -> None:
        assert analyze(GUIDE_HTML).content_hash == analyze(GUIDE_HTML).content_hash

    def test_dynamic_noise_does_not_change_hash(self) -> None:
        noisy = (
            GUIDE_HTML.replace('class="page-guide"', 'class="page-guide theme-b"')
            .replace("2026-02-01T10:00:00", "2026-02-14T08:30:59")
            .replace("9f86d081884c7d659a2feaa0c55ad015", "0123456789abcdef0123456789abcdef")
            .replace('id="content"', 'id="content-7" aria-live="polite" data-ab-test="b"')
            .replace("</h1>\n", "</h1>\n\n   \n")
        )
        assert compute_content_hash(noisy) == compute_content_hash(GUIDE_HTML)

    def test_visible_timestamps_and_tokens_do_not_change_hash(self) -> None:
        first = "<p>Updated 2026-02-01T10:00:00Z, ref 9f86d081884c7d659a2feaa0c55ad015</p>"
        second = "<p>Updated 2026-02-14T08:30:59Z, ref 0123456789abcdef0123456789abcdef</p>"
        assert compute_content_hash(first) == compute_content_hash(second)

    def test_substantive_change_changes_hash(self) -> None:
        changed = GUIDE_HTML.replace("clean pizza boxes", "pizza boxes (no liners)")
        assert compute_content_hash(changed) != compute_content_hash(GUIDE_HTML)

    def test_normalize_strips_scripts_and_styles(self) -> None:
        html = "<p>a</p><script>track()</script><style>p{color:red}</style>  <p>b</p>"
        assert normalize_html(html) == "<p>a</p> <p>b</p>"

    def test_hash_is_sha256_hex(self) -> None:
        digest = compute_content_hash("<p>x</p>")
        assert len(digest) == 64
        int(digest, 16)
