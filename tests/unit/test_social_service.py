"""Tests for social timeline and post retrieval."""
import httpx
import pytest

from webreach.services.errors import (
    InvalidInputError,
    ParseFailedError,
    SocialUnavailableError,
)
from webreach.services.mirror_client import MirrorClient
from webreach.services.social_service import (
    SocialService,
    format_post_summary,
    is_social_url,
    normalize_handle,
    parse_status_url,
)
from webreach.services.tweet_parser import parse_detail

from tests.helpers import (
    DETAIL_PAGE,
    MIRROR_A,
    MIRROR_B,
    TS_JAN_5,
    TS_JAN_6,
    timeline_item,
    timeline_page,
)


def _service(mirror_config, transport, max_posts=10):
    return SocialService(MirrorClient(mirror_config, transport=transport), max_posts=max_posts)


class TestUrlHelpers:
    """Tests for URL recognition and handle normalization."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://twitter.com/jack/status/20",
            "https://x.com/jack",
            "http://mobile.twitter.com/jack/status/20",
            "https://nitter.example.org/jack",
        ],
    )
    def test_social_urls(self, url):
        assert is_social_url(url)

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/jack/status/20", "ftp://x.com/jack", "not a url", "", None],
    )
    def test_non_social_urls(self, url):
        assert not is_social_url(url)

    def test_configured_mirror_is_social(self):
        assert is_social_url(f"{MIRROR_A}/jack/status/1", mirrors=[MIRROR_A])

    def test_parse_status_url(self):
        assert parse_status_url("https://x.com/jack/status/20?s=46") == ("jack", "20")
        assert parse_status_url("https://twitter.com/jack/status/20/photo/1") == ("jack", "20")

    def test_parse_status_url_share_link(self):
        assert parse_status_url("https://x.com/i/web/status/20") == ("i", "20")
        assert parse_status_url("https://twitter.com/i/status/20") == ("i", "20")

    def test_parse_status_url_rejects_profile(self):
        with pytest.raises(InvalidInputError, match="single post"):
            parse_status_url("https://x.com/jack")

    def test_parse_status_url_rejects_other_hosts(self):
        with pytest.raises(InvalidInputError):
            parse_status_url("https://example.com/jack/status/20")

    @pytest.mark.parametrize("raw,expected", [("jack", "jack"), ("@jack", "jack"), ("  @Jack_1 ", "Jack_1")])
    def test_normalize_handle(self, raw, expected):
        assert normalize_handle(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "@", "bad handle", "a/b", None])
    def test_normalize_handle_rejects(self, raw):
        with pytest.raises(InvalidInputError):
            normalize_handle(raw)


class TestFetchTimeline:
    """Tests for SocialService.fetch_timeline."""

    @pytest.mark.asyncio
    async def test_timeline_newest_first(self, mirror_config, make_transport):
        html = timeline_page(
            timeline_item("1", "older", date_title="Jan 5, 2024 · 3:04 PM UTC"),
            timeline_item("2", "newer", date_title="Jan 6, 2024 · 9:30 AM UTC"),
        )
        transport = make_transport(lambda r: httpx.Response(200, html=html))
        service = _service(mirror_config, transport)

        result = await service.fetch_timeline("@jack")

        assert result.handle == "jack"
        assert result.source == MIRROR_A
        assert result.include_replies is False
        assert [(p.id, p.timestamp) for p in result.posts] == [("2", TS_JAN_6), ("1", TS_JAN_5)]
        assert len(transport.calls) == 1

    @pytest.mark.asyncio
    async def test_with_replies_merges_and_dedupes(self, mirror_config, make_transport):
        main = timeline_page(
            timeline_item("1", "from main", date_title="Jan 5, 2024 · 3:04 PM UTC"),
            timeline_item("2", "shared", date_title="Jan 6, 2024 · 9:30 AM UTC"),
        )
        replies = timeline_page(
            timeline_item("2", "shared again", date_title="Jan 6, 2024 · 9:30 AM UTC"),
            timeline_item("3", "a reply", date_title="Jan 7, 2024 · 8:00 AM UTC"),
        )

        def handler(request):
            if "with_replies" in str(request.url):
                return httpx.Response(200, html=replies)
            return httpx.Response(200, html=main)

        service = _service(mirror_config, make_transport(handler))

        result = await service.fetch_timeline("jack", include_replies=True)

        assert result.include_replies is True
        assert [p.id for p in result.posts] == ["3", "2", "1"]
        assert result.posts[1].text == "shared"

    @pytest.mark.asyncio
    async def test_timeline_capped(self, mirror_config, make_transport):
        items = [
            timeline_item(str(i), f"post {i}", date_title=f"Jan {i}, 2024 · 3:04 PM UTC")
            for i in range(1, 16)
        ]
        html = timeline_page(*items)
        service = _service(mirror_config, make_transport(lambda r: httpx.Response(200, html=html)), max_posts=10)

        result = await service.fetch_timeline("jack")

        assert result.count == 10
        assert result.posts[0].id == "15"
        timestamps = [p.timestamp for p in result.posts]
        assert timestamps == sorted(timestamps, reverse=True)

    @pytest.mark.asyncio
    async def test_invalid_handle_makes_no_requests(self, mirror_config, make_transport):
        transport = make_transport(lambda r: httpx.Response(200, html="x"))
        service = _service(mirror_config, transport)

        with pytest.raises(InvalidInputError):
            await service.fetch_timeline("not a handle!")

        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unavailable_when_all_mirrors_fail(self, mirror_config, make_transport):
        service = _service(mirror_config, make_transport(lambda r: httpx.Response(503)))

        with pytest.raises(SocialUnavailableError) as exc_info:
            await service.fetch_timeline("jack")

        assert exc_info.value.code == "NOT_FOUND_OR_UNAVAILABLE"
        assert exc_info.value.context["username"] == "jack"


class TestFetchByUrl:
    """Tests for SocialService.fetch_by_url."""

    @pytest.mark.asyncio
    async def test_fetches_post_through_mirror(self, mirror_config, make_transport):
        def handler(request):
            if request.url.host == "mirror-b.example":
                return httpx.Response(200, html=DETAIL_PAGE)
            return httpx.Response(503)

        transport = make_transport(handler)
        service = _service(mirror_config, transport)

        result = await service.fetch_by_url("https://x.com/jack/status/100")

        assert result.source == MIRROR_B
        assert result.url == f"{MIRROR_B}/jack/status/100"
        assert result.post.id == "100"
        assert result.post.text == "just setting up my mirror"
        assert transport.calls[-1] == f"{MIRROR_B}/jack/status/100"

    @pytest.mark.asyncio
    async def test_share_link_uses_mirror_status_path(self, mirror_config, make_transport):
        transport = make_transport(lambda r: httpx.Response(200, html=DETAIL_PAGE))
        service = _service(mirror_config.model_copy(update={"proxies": ()}), transport)

        result = await service.fetch_by_url("https://x.com/i/web/status/100")

        assert transport.calls == [f"{MIRROR_A}/i/status/100"]
        assert result.post.id == "100"

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_requests(self, mirror_config, make_transport):
        transport = make_transport(lambda r: httpx.Response(200, html=DETAIL_PAGE))
        service = _service(mirror_config, transport)

        with pytest.raises(InvalidInputError):
            await service.fetch_by_url("https://example.com/not/a/post")
        with pytest.raises(InvalidInputError):
            await service.fetch_by_url("")

        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_unrecognized_page_is_parse_failure(self, mirror_config, make_transport):
        page = "<html><body><div class='error-panel'>Tweet not found</div></body></html>"
        service = _service(mirror_config, make_transport(lambda r: httpx.Response(200, html=page)))

        with pytest.raises(ParseFailedError):
            await service.fetch_by_url("https://twitter.com/jack/status/100")

    @pytest.mark.asyncio
    async def test_unavailable_when_all_mirrors_fail(self, mirror_config, make_transport):
        service = _service(mirror_config, make_transport(lambda r: httpx.Response(404)))

        with pytest.raises(SocialUnavailableError):
            await service.fetch_by_url("https://twitter.com/jack/status/100")


class TestFormatPostSummary:
    """Tests for the page-style post rendering."""

    def test_summary_contains_post_and_thread(self):
        post = parse_detail(DETAIL_PAGE, MIRROR_A)

        summary = format_post_summary(post)

        assert summary.startswith("Post by Jack (@jack)")
        assert "Posted: 2024-01-05 15:04 UTC" in summary
        assert "Replying to @alice" in summary
        assert "just setting up my mirror" in summary
        assert "Likes: 1204" in summary
        assert "- @bob: Nice one" in summary
