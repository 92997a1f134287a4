from insta_relay.clients.session import SessionManager


def test_missing_file_loads_nothing(tmp_path):
    assert SessionManager(tmp_path / "session.json").load() is None


def test_save_then_load(tmp_path):
    sessions = SessionManager(tmp_path / "nested" / "session.json")

    sessions.save({"authorization_data": {"ds_user_id": "1"}})

    assert sessions.load() == {"authorization_data": {"ds_user_id": "1"}}
    assert not (tmp_path / "nested" / "session.tmp").exists()


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert SessionManager(path).load() is None


def test_clear(tmp_path):
    sessions = SessionManager(tmp_path / "session.json")
    sessions.save({"a": 1})

    sessions.clear()
    sessions.clear()

    assert sessions.load() is None
