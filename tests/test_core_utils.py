from ig_endpoints import render_template
from ig_models import (
    Media,
    Thread,
    deep_get,
    extract_shortcode,
    media_id_to_shortcode,
    parse_timestamp,
    pick_first_path,
    shortcode_to_media_id,
)


def test_extract_shortcode_supports_post_reel_tv():
    assert extract_shortcode("https://www.instagram.com/p/ABC123xyz/") == "ABC123xyz"
    assert extract_shortcode("https://www.instagram.com/reel/REEL9_-/") == "REEL9_-"
    assert extract_shortcode("https://www.instagram.com/tv/TVcode99/?utm_source=test") == "TVcode99"


def test_extract_shortcode_invalid_url_returns_none():
    assert extract_shortcode("https://www.instagram.com/explore/") is None
    assert extract_shortcode("https://example.com/p/ABC123/") is None


def test_shortcode_to_media_id_known_value():
    assert shortcode_to_media_id("ABC123xyz") == "4593314372787"


def test_shortcode_to_media_id_invalid_character_returns_none():
    assert shortcode_to_media_id("BAD:CODE") is None


def test_media_id_to_shortcode_reverses_shortcode_decoding():
    media_id = shortcode_to_media_id("BC123xyz")
    assert media_id_to_shortcode(media_id) == "BC123xyz"


def test_media_id_to_shortcode_strips_owner_suffix():
    media_id = shortcode_to_media_id("Bq9_-z")
    assert media_id_to_shortcode(f"{media_id}_12345") == "Bq9_-z"


def test_media_id_to_shortcode_rejects_non_numeric_ids():
    assert media_id_to_shortcode("not-a-number") is None


def test_render_template_replaces_simple_string():
    value = render_template("{shortcode}", {"shortcode": "POST_SHORTCODE"})
    assert value == "POST_SHORTCODE"


def test_render_template_drops_unresolved_values_in_dict_and_list():
    template = {
        "shortcode": "{shortcode}",
        "after": "{cursor}",
        "drop_missing": "{missing_key}",
        "items": ["ok", "{account_id}", "{unknown}"],
        "nested": {"first": "{count}", "keep": "x"},
        "include_reel": True,
    }
    rendered = render_template(
        template,
        {
            "shortcode": "abc",
            "cursor": "c1",
            "account_id": 42,
            "count": 20,
        },
    )

    assert rendered == {
        "shortcode": "abc",
        "after": "c1",
        "items": ["ok", "42"],
        "nested": {"first": "20", "keep": "x"},
        "include_reel": True,
    }


def test_render_template_none_replacement_returns_none():
    assert render_template("{cursor}", {"cursor": None}) is None


def test_parse_timestamp_from_unix_seconds():
    assert parse_timestamp(1700000000) == "2023-11-14T22:13:20Z"


def test_deep_get_and_pick_first_path():
    data = {"data": {"user": {"edges": [{"node": {"id": "7"}}]}}}
    assert deep_get(data, ["data", "user", "edges", 0, "node", "id"]) == "7"
    assert deep_get(data, ["data", "missing"]) is None
    assert pick_first_path(data, [["data", "nope"], ["data", "user", "edges", 0, "node", "id"]]) == "7"


def test_media_created_at_iso_uses_taken_at_timestamp():
    media = Media.from_node({"id": "1", "shortcode": "abc", "taken_at_timestamp": 1700000000})
    assert media.created_at == 1700000000
    assert media.created_at_iso == "2023-11-14T22:13:20Z"
    assert Media.from_node({"id": "2"}).created_at_iso is None


def test_thread_activity_accepts_micro_milli_and_plain_seconds():
    micro = Thread.from_node({"thread_id": "t", "last_activity_at": 1700000000123456})
    milli = Thread.from_node({"thread_id": "t", "last_activity_at": 1700000000123})
    seconds = Thread.from_node({"thread_id": "t", "last_activity_at": 1700000000})

    assert micro.created_at == 1700000000
    assert milli.created_at == 1700000000
    assert seconds.created_at == 1700000000
