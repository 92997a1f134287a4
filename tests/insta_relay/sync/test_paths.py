from insta_relay.sync.paths import AdminPath, MessagePath, ThreadPath, UnknownPath, is_id, parse_path


def test_parse_thread_path():
    assert parse_path("/direct_v2/inbox/threads/340282366841710300949128114477310087639") == ThreadPath(
        "340282366841710300949128114477310087639"
    )


def test_parse_message_path():
    assert parse_path("/direct_v2/threads/123/items/29914812737") == MessagePath("123", "29914812737")


def test_parse_admin_path():
    assert parse_path("/direct_v2/threads/123/admin_user_ids/42") == AdminPath("123", "42")


def test_unrecognised_paths_are_unknown():
    assert parse_path("/direct_v2/threads/123/activity_indicator_id/1") == UnknownPath(
        "/direct_v2/threads/123/activity_indicator_id/1"
    )
    assert parse_path("") == UnknownPath("")
    assert parse_path(None) == UnknownPath("")


def test_is_id():
    assert is_id("12345")
    assert is_id(12345)
    assert not is_id("pronote_bot")
