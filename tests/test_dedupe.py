from normalize.items import ContentItem
from rank.dedupe import canonicalize_url, dedupe, dedupe_key, merge, rank, title_key


def _item(title: str, url: str, score: float) -> ContentItem:
    return ContentItem(
        title=title,
        url=url,
        snippet="",
        source_name="test",
        publish_date="2024-08-01T00:00:00Z",
        content_type="news",
        relevance_score=score,
        data_source="test",
    )


def test_canonicalize_url_strips_tracking_and_case() -> None:
    url = "https://News.Example.com/Path?id=7&utm_source=x&UTM_medium=y&fbclid=z#top"
    assert canonicalize_url(url) == "https://news.example.com/path?id=7"


def test_title_key_ignores_whitespace_and_truncates() -> None:
    assert title_key("台南 安南區  淹水") == "台南安南區淹水"
    assert len(title_key("x" * 50)) == 20


def test_dedupe_keeps_highest_scoring_copy() -> None:
    low = _item("台南淹水", "https://a.example/1?utm_source=rss", 3.0)
    high = _item("台南 淹水", "https://A.example/1", 9.0)
    other = _item("高雄積水", "https://a.example/2", 5.0)

    result = dedupe([low, other, high])

    assert result == [high, other]
    assert len({dedupe_key(i) for i in result}) == len(result)


def test_same_url_different_title_is_kept() -> None:
    a = _item("雨量觀測 A站", "https://cwa.example/obs", 8.0)
    b = _item("雨量觀測 B站", "https://cwa.example/obs", 8.0)
    assert dedupe([a, b]) == [a, b]


def test_rank_is_stable_and_truncates() -> None:
    items = [_item(f"t{i}", f"https://x.example/{i}", 5.0) for i in range(30)]
    ranked = rank(items)
    assert len(ranked) == 25
    assert [i.title for i in ranked] == [f"t{i}" for i in range(25)]
    assert rank(items, limit=None) == items


def test_merge_flattens_dedupes_and_ranks() -> None:
    a = _item("a", "https://x.example/a", 2.0)
    b = _item("b", "https://x.example/b", 7.0)
    dup = _item("a", "https://x.example/a#frag", 4.0)

    merged = merge([[a], [b, dup]], limit=10)

    assert [i.title for i in merged] == ["b", "a"]
    assert merged[1].relevance_score == 4.0
