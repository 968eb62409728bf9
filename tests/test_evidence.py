import base64
import threading
from unittest import mock

import pytest
import requests
from PIL import Image

from bingo_core.dedup import Deduplicator
from bingo_core.evidence import EvidencePipeline, screenshot_filename
from bingo_core.handler import ActivityHandler
from bingo_core.models import ActivityRecord, ActivityType, EventKind, GameEvent, LootItem

from conftest import FakeResponse

IMGUR_PATH = "/3/image"
DROP = ActivityRecord(ActivityType.DROP, "Vorkath", 1_700_000_000, drop_name="Draconic visage")


def _image():
    return Image.new("RGB", (4, 4), (200, 10, 10))


@pytest.fixture
def pipeline(logged_in, session, tmp_path):
    return EvidencePipeline(logged_in, capture=_image, screenshot_dir=tmp_path,
                            session=session, clock=lambda: 1_700_000_000.5)


def test_filename_is_sanitized():
    assert screenshot_filename("Tanzanite fang", "Lynx Titan", 1700000000500) == \
        "Tanzanite_fang_Lynx_Titan_1700000000500.png"


def test_upload_sets_screenshot_url(pipeline, session, tmp_path):
    session.route("GET", "/api/secrets/imgur_client_id", FakeResponse(200, {"success": True, "value": "cid"}))
    session.route("POST", IMGUR_PATH,
                  FakeResponse(200, {"success": True, "data": {"link": "https://i.imgur.com/v.png"}}))
    pipeline.start_session()

    record = pipeline.attach_evidence(DROP, "b1", "Zezima")

    assert record.screenshot_url == "https://i.imgur.com/v.png"
    upload = session.calls_to("POST", IMGUR_PATH)[0]
    assert upload["headers"]["Authorization"] == "Client-ID cid"
    assert upload["data"]["type"] == "base64"
    assert base64.b64decode(upload["data"]["image"]).startswith(b"\x89PNG")
    saved = list((tmp_path / "b1").iterdir())
    assert [p.name for p in saved] == ["Draconic_visage_Zezima_1700000000500.png"]


def test_token_is_fetched_once_per_session(pipeline, session):
    session.route("GET", "/api/secrets/imgur_client_id", FakeResponse(404))
    pipeline.start_session()
    pipeline.start_session()
    assert len(session.calls_to("GET", "/api/secrets/imgur_client_id")) == 1
    assert not pipeline.uploads_enabled

    pipeline.end_session()
    pipeline.start_session()
    assert len(session.calls_to("GET", "/api/secrets/imgur_client_id")) == 2


def test_session_ended_during_token_fetch_keeps_uploads_off(tmp_path):
    fetching = threading.Event()
    release = threading.Event()

    def slow_token():
        fetching.set()
        assert release.wait(5)
        return "cid"

    sync = mock.Mock()
    sync.get_image_host_token.side_effect = slow_token
    pipeline = EvidencePipeline(sync, capture=_image, screenshot_dir=tmp_path)

    loader = threading.Thread(target=pipeline.start_session)
    loader.start()
    assert fetching.wait(5)
    pipeline.end_session()
    release.set()
    loader.join(5)

    assert not pipeline.uploads_enabled
    sync.get_image_host_token.side_effect = None
    sync.get_image_host_token.return_value = "cid-2"
    assert pipeline.start_session() == "cid-2"
    assert pipeline.uploads_enabled


def test_no_token_keeps_local_copy(pipeline, session, tmp_path):
    pipeline.start_session()
    record = pipeline.attach_evidence(DROP, "b1", "Zezima")
    assert record.screenshot_url is None
    assert session.calls_to("POST", IMGUR_PATH) == []
    assert len(list((tmp_path / "b1").iterdir())) == 1


@pytest.mark.parametrize("reply", [
    FakeResponse(500, text="busy"),
    FakeResponse(200, {"success": False}),
    FakeResponse(200, text="not json"),
    requests.Timeout("slow"),
])
def test_upload_failures_leave_url_empty(pipeline, session, reply):
    session.route("GET", "/api/secrets/imgur_client_id", FakeResponse(200, text="cid"))
    session.route("POST", IMGUR_PATH, reply)
    pipeline.start_session()
    assert pipeline.attach_evidence(DROP, "b1", "Zezima").screenshot_url is None


def test_capture_failure_is_not_fatal(logged_in, session, tmp_path):
    def broken():
        raise OSError("no display")

    pipeline = EvidencePipeline(logged_in, capture=broken, screenshot_dir=tmp_path, session=session)
    assert pipeline.attach_evidence(DROP, "b1", "Zezima") == DROP


def test_local_save_failure_still_uploads(logged_in, session, tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("a file where a directory should be")
    session.route("GET", "/api/secrets/imgur_client_id", FakeResponse(200, text="cid"))
    session.route("POST", IMGUR_PATH,
                  FakeResponse(200, {"success": True, "data": {"link": "https://i.imgur.com/z.png"}}))
    pipeline = EvidencePipeline(logged_in, capture=_image, screenshot_dir=blocker, session=session)
    pipeline.start_session()
    assert pipeline.attach_evidence(DROP, "b1", "Zezima").screenshot_url == "https://i.imgur.com/z.png"


def test_drop_submitted_without_screenshot_when_uploads_disabled(logged_in, session, tmp_path):
    session.route("POST", "/api/bingo/activity/b1", FakeResponse(201))
    pipeline = EvidencePipeline(logged_in, capture=_image, screenshot_dir=tmp_path, session=session)
    handler = ActivityHandler(logged_in, Deduplicator(), pipeline, max_workers=2)
    try:
        handler.set_participating(True, "b1")
        event = GameEvent("Vorkath", EventKind.LOOT_DROP,
                          (LootItem("Draconic visage", 1, 3_000_000),), occurred_at=1_700_000_000)
        futures = handler.on_game_event(event)
        assert [f.result(timeout=5) for f in futures] == [True, True]
    finally:
        handler.shutdown(wait=True)

    bodies = [kw["json"] for kw in session.calls_to("POST", "/api/bingo/activity/b1")]
    drop = next(b for b in bodies if b["activityType"] == "DROP")
    assert drop["dropName"] == "Draconic visage"
    assert "screenshotUrl" not in drop
