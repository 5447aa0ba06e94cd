"""Tests for the event bus, stores, timers and toasts."""

import pytest

from utils.event_bus import Empty, EventBus, HandlerFailure, Notice, PostRef, Reaction, Topic
from utils.local_store import LocalStore
from utils.log_utils import _format_message, warn_once
from utils.secure_store import KeyStore, decode, encode
from utils.settings_store import MODEL_KEY, Preferences
from utils.timers import TimerGroup


class TestEventBus:
    def test_publish_reaches_subscribers(self):
        bus = EventBus()
        seen = []
        bus.subscribe(Topic.POST_REACT, seen.append)

        bus.publish(Topic.POST_REACT, Reaction("p1", "🔥"))

        assert seen == [Reaction("p1", "🔥")]

    def test_wrong_payload_type_is_rejected(self):
        bus = EventBus()
        with pytest.raises(TypeError):
            bus.publish(Topic.POST_REACT, PostRef("p1"))

    def test_empty_payload_defaults(self):
        bus = EventBus()
        seen = []
        bus.subscribe(Topic.SIDEBAR_OPEN, seen.append)

        bus.publish(Topic.SIDEBAR_OPEN)

        assert seen == [Empty()]

    def test_unsubscribe_handle(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe(Topic.NOTIFY, seen.append)
        unsubscribe()

        bus.publish(Topic.NOTIFY, Notice("hi"))

        assert seen == []
        assert bus.subscriber_count(Topic.NOTIFY) == 0

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        seen = []
        failures = []

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe(Topic.POST_FOCUS, broken)
        bus.subscribe(Topic.POST_FOCUS, seen.append)
        bus.subscribe(Topic.ERROR, failures.append)

        bus.publish(Topic.POST_FOCUS, PostRef("p2"))

        assert seen == [PostRef("p2")]
        assert isinstance(failures[0], HandlerFailure)
        assert failures[0].topic is Topic.POST_FOCUS


class TestLocalStore:
    def test_values_persist_across_instances(self, tmp_path):
        path = tmp_path / "s.json"
        LocalStore(path).save("k", {"a": 1})

        assert LocalStore(path).load("k") == {"a": 1}

    def test_remove_and_fallback(self, store):
        store.save("k", 1)
        store.remove("k")

        assert store.load("k", "fallback") == "fallback"


class TestKeyStore:
    def test_encoding_is_reversible(self):
        assert decode(encode("sk-abc123")) == "sk-abc123"

    def test_stored_key_is_not_plain_text(self, store):
        keys = KeyStore(store)
        keys.set_key("openai", "sk-secret")

        assert keys.get_key("openai") == "sk-secret"
        assert "sk-secret" not in str(store.load("sn.secure.openai"))

    def test_garbage_decodes_to_empty(self, store):
        store.save("sn.secure.openai", "!!not base64!!")
        assert KeyStore(store).get_key("openai") == ""

    def test_clear_all_only_touches_secure_keys(self, store):
        keys = KeyStore(store)
        keys.set_key("openai", "a")
        keys.set_key("other", "b")
        store.save("sn.theme", "light")

        keys.clear_all()

        assert store.keys() == ["sn.theme"]


class TestPreferences:
    def test_model_blank_clears(self, store):
        prefs = Preferences(store)
        changes = []
        prefs.subscribe(lambda key, value: changes.append((key, value)))

        prefs.set_model(" gpt-4o ")
        assert prefs.model == "gpt-4o"
        prefs.set_model("  ")

        assert prefs.model is None
        assert changes == [(MODEL_KEY, "gpt-4o"), (MODEL_KEY, None)]

    def test_theme_validation(self, store):
        prefs = Preferences(store)
        assert prefs.theme == "dark"
        with pytest.raises(ValueError):
            prefs.set_theme("sepia")


class TestTimers:
    def test_rescheduling_replaces_pending_timer(self, scheduler):
        timers = TimerGroup(scheduler)
        fired = []
        timers.schedule("t", 100, lambda: fired.append("old"))
        timers.schedule("t", 100, lambda: fired.append("new"))

        scheduler.advance(100)

        assert fired == ["new"]
        assert len(timers) == 0

    def test_frame_requests_coalesce(self, scheduler):
        timers = TimerGroup(scheduler)
        assert timers.frame("f", lambda: None) is True
        assert timers.frame("f", lambda: None) is False

    def test_cancel_all(self, scheduler):
        timers = TimerGroup(scheduler)
        timers.schedule("a", 10, lambda: None)
        timers.frame("b", lambda: None)

        timers.cancel_all()

        assert scheduler.pending == 0


class TestToast:
    def test_timed_toast_clears(self, toast, scheduler):
        toast.show("hello", 500)
        scheduler.advance(499)
        assert toast.text == "hello"
        scheduler.advance(1)
        assert toast.text == ""

    def test_newer_toast_keeps_its_own_timer(self, toast, scheduler):
        toast.show("first", 100)
        toast.show("second")
        scheduler.advance(200)

        assert toast.text == "second"


class TestLogging:
    def test_level_tag_is_reordered(self):
        assert _format_message("[WARN][ORB] hi") == "[ORB][WARN] hi"

    def test_warn_once(self, capsys):
        assert warn_once("k", "VOICE", "unsupported") is True
        assert warn_once("k", "VOICE", "unsupported") is False
        assert capsys.readouterr().out.count("unsupported") == 1
