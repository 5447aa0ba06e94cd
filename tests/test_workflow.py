"""Tests for the assembled orb: menus, petals, context binding and commands."""

import asyncio

import httpx
import pytest

from command_controller.assistant import AssistantBridge
from feed_module.models import Post
from feed_module.store import FeedStore
from gesture_module.constants import STORAGE_KEY
from gesture_module.geometry import Point, Viewport
from gesture_module.workflow import LINK_COPIED_TOAST, NO_POST_TOAST, OrbWorkflow
from utils.event_bus import Empty, PostRef, ProfileRef, Reaction, Topic
from voice_module.audio import AudioClips

VIEWPORT = Viewport(1280, 800)
POSTS = [
    Post("p1", author="Alice", title="Neon", text="City lights", images=("https://x/1.png",)),
    Post("p2", author="Bob", title="Forest", text="Trees"),
]


@pytest.fixture
def copied():
    return []


@pytest.fixture
def workflow(scheduler, store, bus, speech, copied, tmp_path):
    def upstream(request):
        return httpx.Response(200, json={"ok": True, "text": "an answer"})

    bridge = AssistantBridge(
        "http://orb.test",
        clips=AudioClips(tmp_path / "clips"),
        transport=httpx.MockTransport(upstream),
    )
    wf = OrbWorkflow(
        scheduler=scheduler,
        viewport=VIEWPORT,
        store=store,
        bus=bus,
        feed=FeedStore(POSTS, bus=bus),
        speech=speech,
        bridge=bridge,
        clipboard=copied.append,
    )
    yield wf
    wf.teardown()


def _tap(wf):
    pos = wf.controller.position
    wf.controller.pointer_down(1, pos.x + 10, pos.y + 10)
    wf.controller.pointer_up(1, pos.x + 10, pos.y + 10)
    wf.controller.click()


class TestMenuToggle:
    def test_tap_opens_menu(self, workflow):
        _tap(workflow)

        assert workflow.menu_open is True
        assert workflow.menu.ring == "root"

    def test_tap_on_open_menu_closes_without_reopening(self, workflow):
        _tap(workflow)
        _tap(workflow)

        assert workflow.menu_open is False

    def test_third_tap_reopens(self, workflow):
        _tap(workflow)
        _tap(workflow)
        _tap(workflow)

        assert workflow.menu_open is True

    def test_escape_closes_menu_and_focuses_orb(self, workflow):
        _tap(workflow)

        workflow.key_down("Escape")

        assert workflow.menu_open is False
        assert workflow.controller.focused is True

    def test_escape_from_root_ring_stops_voice_and_closes_all(self, workflow, speech):
        workflow.voice.start()
        workflow.toggle_panel()
        workflow.open_menu()
        workflow.petal = "share"

        assert workflow.key_down("Escape") is True

        assert workflow.menu_open is False
        assert workflow.voice.listening is False
        assert speech.stops == 1
        assert workflow.panel_open is False
        assert workflow.petal is None
        assert workflow.controller.focused is True

    def test_escape_from_submenu_steps_back_and_stops_voice(self, workflow):
        workflow.voice.start()
        workflow.toggle_panel()
        menu = workflow.open_menu()
        menu.select("react")

        workflow.key_down("Escape")

        assert workflow.menu_open is True
        assert workflow.menu.ring == "root"
        assert workflow.voice.listening is False
        assert workflow.panel_open is True

    def test_escape_closes_portal_menu_and_stops_voice(self, workflow):
        workflow.voice.start()
        workflow.open_portal_menu()

        workflow.key_down("Escape")

        assert workflow.portal_menu is None
        assert workflow.voice.listening is False

    def test_enter_key_toggles_menu(self, workflow):
        workflow.key_down("Enter")
        assert workflow.menu_open is True

    def test_outside_pointer_closes_menu_and_petal(self, workflow):
        workflow.open_menu()
        workflow.petal = "share"

        workflow.pointer_down_outside()

        assert workflow.menu_open is False
        assert workflow.petal is None


class TestShortcuts:
    def test_r_opens_menu(self, workflow):
        assert workflow.key_down("r") is True
        assert workflow.menu_open is True

    @pytest.mark.parametrize("key,petal", [("c", "comment"), ("M", "remix"), ("s", "share")])
    def test_petal_keys(self, workflow, key, petal):
        workflow.key_down(key)
        assert workflow.petal == petal

    def test_unknown_petal(self, workflow):
        with pytest.raises(ValueError):
            workflow.open_petal("poll")

    def test_menu_consumes_keys_first(self, workflow):
        workflow.open_menu()
        workflow.key_down("ArrowRight")
        workflow.key_down("Enter")

        assert workflow.menu.ring == "react"
        assert workflow.petal is None


class TestContext:
    def test_select_id_binds_post(self, workflow, bus):
        bus.publish(Topic.FEED_SELECT_ID, PostRef("p2"))

        assert workflow.context_post.id == "p2"
        assert workflow.context_bundle().title == "Forest"

    def test_drag_release_binds_post(self, workflow, scheduler):
        workflow.controller.hit_test = lambda point: "p1"
        pos = workflow.controller.position
        workflow.controller.pointer_down(1, pos.x, pos.y)
        workflow.controller.pointer_move(1, pos.x - 200, pos.y - 200)
        scheduler.advance(16)
        workflow.controller.pointer_up(1, pos.x - 200, pos.y - 200)

        assert workflow.context_post.id == "p1"
        assert workflow.context_bundle().images == ("https://x/1.png",)


class TestActions:
    def _capture(self, bus, topic):
        seen = []
        bus.subscribe(topic, seen.append)
        return seen

    def test_react_without_post(self, workflow, bus):
        reactions = self._capture(bus, Topic.POST_REACT)

        assert workflow.react("🔥") is False
        assert workflow.toast.text == NO_POST_TOAST
        assert reactions == []

    def test_react_from_menu(self, workflow, bus, scheduler):
        reactions = self._capture(bus, Topic.POST_REACT)
        workflow.bind_post("p1")
        menu = workflow.open_menu()

        menu.select("react")
        menu.select("emoji-2")

        assert reactions == [Reaction("p1", "🤣")]
        assert workflow.toast.text == "Reacted 🤣"
        assert workflow.menu_open is False
        scheduler.advance(900)
        assert workflow.toast.text == ""

    def test_share_copies_link(self, workflow, copied):
        workflow.bind_post("p2")

        url = workflow.share("https://nova.test/")

        assert url == "https://nova.test/#post-p2"
        assert copied == [url]
        assert workflow.toast.text == LINK_COPIED_TOAST

    def test_comment_and_remix(self, workflow, bus):
        comments = self._capture(bus, Topic.POST_COMMENT)
        remixes = self._capture(bus, Topic.POST_REMIX)
        workflow.bind_post("p1")
        workflow.open_petal("comment")

        assert workflow.comment("  ") is False
        assert workflow.comment(" wow ") is True
        assert workflow.remix() is True

        assert comments[0].body == "wow"
        assert remixes == [PostRef("p1")]
        assert workflow.petal is None

    def test_profile(self, workflow, bus):
        profiles = self._capture(bus, Topic.PROFILE_OPEN)
        workflow.bind_post("p2")

        workflow.open_profile()

        assert profiles == [ProfileRef("Bob")]


class TestPortalMenu:
    def test_settings_opens_sidebar_and_closes(self, workflow, bus):
        opened = []
        bus.subscribe(Topic.SIDEBAR_OPEN, opened.append)
        menu = workflow.open_portal_menu()

        menu.key_down("Tab")
        menu.key_down("Enter")

        assert opened == [Empty()]
        assert workflow.portal_menu is None

    def test_recenter_moves_and_persists(self, workflow, store):
        menu = workflow.open_portal_menu()
        menu.index = 2

        menu.key_down(" ")

        assert workflow.controller.position == Point(12, 12)
        assert store.load(STORAGE_KEY) == {"x": 12, "y": 12}


class TestCommands:
    def test_submitted_slash_command(self, workflow, bus):
        reactions = []
        bus.subscribe(Topic.POST_REACT, reactions.append)
        workflow.bind_post("p1")

        async def scenario():
            await workflow.submit("/react 🔥")

        asyncio.run(scenario())

        assert reactions == [Reaction("p1", "🔥")]
        assert workflow.messages.last.text == "✨ Reacted 🔥 on p1"

    def test_submitted_question_gets_reply(self, workflow):
        async def scenario():
            await workflow.submit("what is this?")

        asyncio.run(scenario())

        assert [m.text for m in workflow.messages] == ["what is this?", "an answer"]

    def test_spoken_utterance_is_submitted(self, workflow, speech):
        async def scenario():
            workflow.voice.start()
            speech.say("/remix")
            await asyncio.gather(*workflow._tasks)

        asyncio.run(scenario())

        assert workflow.messages.last.text == "⚠️ Drag onto a post to remix."

    def test_blank_submission(self, workflow):
        assert workflow.submit("  ") is None
