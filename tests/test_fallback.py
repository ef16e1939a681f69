from search.fallback import generate_fallback_items, profile_for


def test_fallback_returns_exactly_n_location_items() -> None:
    for location, n in (("台南市", 3), ("花蓮縣", 3), ("高雄市", 5), ("臺北市", 1)):
        items = generate_fallback_items(location, n)
        assert len(items) == n
        for item in items:
            assert item.title and item.snippet
            assert location in item.title
            assert item.synthetic
            assert item.data_source == "fallback"
            assert item.content_type == "fallback_info"
        assert len({i.url for i in items}) == n


def test_fallback_content_varies_by_city() -> None:
    tainan = generate_fallback_items("台南市", 3)
    kaohsiung = generate_fallback_items("高雄市", 3)
    assert [i.snippet.replace("台南市", "") for i in tainan] != [
        i.snippet.replace("高雄市", "") for i in kaohsiung
    ]
    assert profile_for("臺中市").city == "台中"
    assert profile_for("花蓮縣").city == ""


def test_fallback_blank_location_still_named() -> None:
    items = generate_fallback_items("  ", 3)
    assert len(items) == 3
    assert all(i.title.strip() for i in items)
