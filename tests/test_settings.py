import pytest

from jisweb.settings import (
    DEFAULT_LOG_OPTIONS,
    MAX_THREADS,
    SIGNATURE,
    LogField,
    SavedState,
    ScriptSpec,
    default_site,
    load_settings,
    save_settings,
)


def _state():
    site = default_site()
    site.name = "www.example.com"
    site.description = "Test Site"
    site.open_port = 8080
    site.worker_threads = 4
    site.sessions_max = 100
    site.session_timeout = 5
    site.logging = 1
    site.log_options = 0xFFFFFFFF
    scripts = [
        ScriptSpec("/", "error", "asp", "Error_init", "Error_exit", "Error_run"),
        ScriptSpec("/app/", "home", "asp", "Home_init", "Home_exit", "Home_run"),
    ]
    return SavedState(site=site, cookie_index=5, server_index=7, scripts=scripts)


def test_default_site_values():
    site = default_site()
    assert site.user_sources == "//DDN:ASPSRCS"
    assert site.user_headers == "//DDN:JCCINCS"
    assert site.jccl_headers == "//DDN:JCCINCL"
    assert site.name == "127.0.0.1"
    assert site.description == "Default Web Site"
    assert site.open_card == "any"
    assert site.open_port == 80
    assert site.session_timeout == 20
    assert site.log_dir == "//DDN:LOGDIR"
    assert site.log_options == 0x60D00000
    assert site.save_disable is False


def test_round_trip(tmp_path):
    path = tmp_path / "site.ini"
    state = _state()
    save_settings(path, state)
    loaded = load_settings(path)
    assert loaded.site == state.site
    assert loaded.cookie_index == state.cookie_index
    assert loaded.server_index == state.server_index
    assert loaded.scripts == state.scripts


def test_round_trip_without_scripts(tmp_path):
    path = tmp_path / "site.ini"
    state = SavedState(site=default_site())
    save_settings(path, state)
    loaded = load_settings(path)
    assert loaded.scripts == []
    assert loaded.site == default_site()


def test_file_layout_starts_with_signature_and_indexes(tmp_path):
    path = tmp_path / "site.ini"
    save_settings(path, _state())
    data = path.read_bytes()
    assert data.startswith(SIGNATURE)
    assert data[10:18] == (5).to_bytes(8, "big")
    assert data[18:22] == (7).to_bytes(4, "big")


def test_missing_file_gives_defaults(tmp_path):
    loaded = load_settings(tmp_path / "absent.ini")
    assert loaded.site == default_site()
    assert loaded.site.save_disable is False
    assert loaded.scripts == []


def test_foreign_file_disables_saving(tmp_path):
    path = tmp_path / "other.ini"
    path.write_bytes(b"[section]\nkey=value\n")
    loaded = load_settings(path)
    assert loaded.site.save_disable is True
    assert loaded.site.description == "Default Web Site"


def test_empty_file_keeps_saving_enabled(tmp_path):
    path = tmp_path / "empty.ini"
    path.write_bytes(b"")
    loaded = load_settings(path)
    assert loaded.site.save_disable is False


def test_truncated_file_raises(tmp_path):
    path = tmp_path / "site.ini"
    save_settings(path, _state())
    data = path.read_bytes()
    path.write_bytes(data[:30])
    with pytest.raises(ValueError):
        load_settings(path)


def test_load_clamps_threads(tmp_path):
    path = tmp_path / "site.ini"
    state = _state()
    state.site.worker_threads = MAX_THREADS + 10
    save_settings(path, state)
    assert load_settings(path).site.worker_threads == MAX_THREADS


@pytest.mark.parametrize("requested,expected", [(-3, 0), (0, 0), (10, 10), (1000, 64)])
def test_clamp_threads(requested, expected):
    site = default_site()
    site.worker_threads = requested
    site.clamp_threads()
    assert site.worker_threads == expected


def test_log_field_labels_of_default_site():
    site = default_site()
    selected = sorted(
        (field for field in LogField if int(field) & site.log_options),
        key=int,
        reverse=True,
    )
    assert [field.label for field in selected] == [
        "time",
        "c-ip",
        "cs-method",
        "cs-uri-stem",
        "sc-status",
    ]
    assert LogField.TIME_TAKEN.label == "time"
    assert LogField.REFERER.label == "referer"


def test_default_log_options_fields():
    expected = (
        LogField.TIME
        | LogField.CLIENT_IP
        | LogField.METHOD
        | LogField.URI_STEM
        | LogField.STATUS
    )
    assert default_site().log_options == int(expected)
    assert DEFAULT_LOG_OPTIONS == int(expected)