from driver_finance.services.preferences import (
    DEFAULT_PREFERENCES,
    default_preferences,
    effective_preferences,
    merge_preferences,
)


def test_defaults_are_opt_out_for_privacy():
    prefs = default_preferences()
    assert prefs["privacy"]["participate_benchmarking"] is False
    assert prefs["display"]["currency"] == "BRL"
    assert all(prefs["notifications"].values())


def test_defaults_are_copies():
    prefs = default_preferences()
    prefs["display"]["theme"] = "dark"
    assert DEFAULT_PREFERENCES["display"]["theme"] == "auto"


def test_merge_keeps_untouched_keys_and_sections():
    current = default_preferences()
    merged = merge_preferences(current, {"display": {"theme": "dark"}, "privacy": None})
    assert merged["display"]["theme"] == "dark"
    assert merged["display"]["currency"] == "BRL"
    assert merged["privacy"] == current["privacy"]
    assert merged["notifications"] == current["notifications"]
    # input document untouched
    assert current["display"]["theme"] == "auto"


def test_merge_into_empty_document():
    merged = merge_preferences(None, {"privacy": {"participate_benchmarking": True}})
    assert merged == {"privacy": {"participate_benchmarking": True}}


def test_effective_preferences_falls_back_to_defaults():
    assert effective_preferences(None) == default_preferences()
    assert effective_preferences({}) == default_preferences()
    stored = {"display": {"theme": "light"}}
    assert effective_preferences(stored) == stored
