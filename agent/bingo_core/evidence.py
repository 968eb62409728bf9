"""
Evidence pipeline — screenshot capture, local copy, image-host upload.

Every step may fail on its own without failing the submission:
  capture fails   → record goes out without a screenshot
  local save fails → logged, upload still attempted
  upload fails    → screenshot_url stays None
Captures are never retried.
"""

import base64
import io
import re
import threading
import time
from pathlib import Path

import requests

from .config import log, SCREENSHOT_DIR
from .constants import IMGUR_UPLOAD_URL, API_TIMEOUT_UPLOAD
from . import http_client

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def grab_screen():
    """Capture the primary display as a PIL image."""
    from PIL import ImageGrab
    return ImageGrab.grab()


def sanitize(segment):
    return _UNSAFE.sub("_", segment or "")


def screenshot_filename(item_name, rsn, epoch_millis):
    return f"{sanitize(item_name)}_{sanitize(rsn)}_{int(epoch_millis)}.png"


def encode_png(image):
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


class EvidencePipeline:
    """
    One per process. The image-host token is fetched once per participation
    session; None disables uploads (not local saves) until the session ends.
    """

    def __init__(self, sync_client, capture=grab_screen, screenshot_dir=SCREENSHOT_DIR,
                 session=None, clock=time.time):
        self._sync = sync_client
        self._capture = capture
        self._screenshot_dir = Path(screenshot_dir)
        self._session = session
        self._clock = clock
        self._lock = threading.Lock()
        self._token = None
        self._token_loaded = False
        self._generation = 0

    @property
    def session(self):
        return self._session if self._session is not None else http_client.http

    @property
    def uploads_enabled(self):
        with self._lock:
            return self._token is not None

    # ─── Session lifecycle ───────────────────────────────────

    def start_session(self):
        """Fetch and cache the image-host token. Later calls are no-ops."""
        with self._lock:
            if self._token_loaded:
                return self._token
            self._token_loaded = True
            generation = self._generation

        token = self._sync.get_image_host_token()
        with self._lock:
            if generation != self._generation:
                log.info("Session ended while loading the image host token — discarding it")
                return None
            self._token = token
        if token:
            log.info("Image host token loaded — screenshot uploads enabled")
        else:
            log.warning("No image host token — screenshot uploads disabled this session")
        return token

    def end_session(self, *_):
        with self._lock:
            self._generation += 1
            self._token = None
            self._token_loaded = False

    # ─── Pipeline ────────────────────────────────────────────

    def attach_evidence(self, record, event_id, rsn):
        """
        Blocking; run from a worker. Returns the record with screenshot_url
        set when an upload succeeded, otherwise the record unchanged.
        """
        label = record.drop_name or record.subject_name
        try:
            image = self._capture()
        except Exception as e:
            log.warning("Screenshot capture failed for %s: %s", label, e)
            return record
        if image is None:
            log.warning("Screenshot capture returned nothing for %s", label)
            return record

        try:
            png = encode_png(image)
        except Exception as e:
            log.warning("Could not encode screenshot for %s: %s", label, e)
            return record

        self.save_locally(png, label, event_id, rsn)

        url = self.upload(png)
        if url:
            return record.with_screenshot(url)
        return record

    def save_locally(self, png, item_name, event_id, rsn):
        """<dir>/<eventId>/<item>_<rsn>_<epochMillis>.png. Returns the path or None."""
        try:
            target_dir = self._screenshot_dir / sanitize(event_id or "no_event")
            target_dir.mkdir(parents=True, exist_ok=True)
            path = target_dir / screenshot_filename(item_name, rsn, self._clock() * 1000)
            path.write_bytes(png)
            log.info("Screenshot saved locally: %s", path)
            return path
        except OSError as e:
            log.error("Failed to save screenshot locally: %s", e)
            return None

    def upload(self, png):
        """POST the PNG to the image host. Returns the public link or None."""
        with self._lock:
            token = self._token
        if not token:
            log.debug("No image host token — skipping upload")
            return None

        try:
            resp = self.session.post(
                IMGUR_UPLOAD_URL,
                data={"image": base64.b64encode(png).decode("ascii"), "type": "base64"},
                headers={"Authorization": f"Client-ID {token}"},
                timeout=API_TIMEOUT_UPLOAD,
            )
        except requests.RequestException as e:
            log.warning("Screenshot upload network error: %s", e)
            return None

        if not 200 <= resp.status_code < 300:
            log.warning("Screenshot upload failed: HTTP %d — %s",
                        resp.status_code, (resp.text or "")[:200])
            return None
        try:
            data = resp.json()
        except ValueError:
            log.warning("Screenshot upload: unparseable response")
            return None

        link = None
        if isinstance(data, dict) and data.get("success") and isinstance(data.get("data"), dict):
            link = data["data"].get("link")
        if not isinstance(link, str) or not link:
            log.warning("Screenshot upload: no link in response")
            return None
        log.info("Screenshot uploaded: %s", link)
        return link
