"""
SyncClient — authenticated calls to the competition service.

All methods are blocking (called from worker threads and scheduler loops,
never from the thread that receives game events) and none of them raise:

  2xx + JSON          → parsed result
  2xx empty / HTML    → soft failure (misconfigured proxy or error page)
  401                 → credential invalidated once, then failure
  404                 → deployment/config problem, failure
  other non-2xx       → failure, body excerpt logged
  network error       → failure, no retry here

Retries belong to the next scheduler tick; submissions are single-attempt.
"""

import time
import requests

from .config import log
from .constants import (
    API_TIMEOUT_READ, API_TIMEOUT_SUBMIT, ACTIVITY_LOG_LIMIT, BODY_EXCERPT_LEN,
)
from .models import SignupStatus
from .state import Credential
from . import http_client
from . import payloads


def _excerpt(text):
    text = (text or "").strip().replace("\n", " ")
    if len(text) > BODY_EXCERPT_LEN:
        return text[:BODY_EXCERPT_LEN] + "..."
    return text


def _looks_like_html(body):
    # Error pages from proxies/CDNs: <!DOCTYPE html>, <html>, <head>...
    return body.startswith("<")


class SyncClient:

    def __init__(self, config, credentials, session=None):
        self._config = config
        self._credentials = credentials
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else http_client.http

    @property
    def base_url(self):
        return self._config.get_str("authApiUrl").rstrip("/")

    @property
    def credentials(self):
        return self._credentials

    # ─── Transport ───────────────────────────────────────────

    def _headers(self, credential):
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if credential is not None:
            headers["Authorization"] = f"Bearer {credential.jwt}"
        return headers

    def _request(self, op, method, path, payload=None, params=None,
                 timeout=API_TIMEOUT_READ, expect_body=True, allow_text=False,
                 authenticated=True):
        """
        One HTTP round trip under the uniform response policy.
        Returns (ok, data). data is the decoded JSON, the raw text when
        allow_text is set and the body isn't JSON, or None.
        """
        url = f"{self.base_url}{path}"
        credential = self._credentials.credential if authenticated else None

        try:
            resp = self.session.request(
                method, url,
                json=payload,
                params=params,
                headers=self._headers(credential),
                timeout=timeout,
            )
        except requests.RequestException as e:
            log.warning("%s network error: %s", op, e)
            return False, None

        status = resp.status_code
        if status == 401:
            log.error("%s REJECTED (401) — token expired or revoked", op)
            if credential is not None:
                self._credentials.invalidate("expired", expected=credential)
            return False, None
        if status == 404:
            log.warning("%s: 404 from %s — check authApiUrl / server deployment", op, url)
            return False, None
        if not 200 <= status < 300:
            log.warning("%s failed: HTTP %d — %s", op, status, _excerpt(resp.text))
            return False, None

        body = (resp.text or "").strip()
        if not body:
            if expect_body:
                log.warning("%s: HTTP %d with empty body", op, status)
                return False, None
            return True, None
        if _looks_like_html(body):
            log.warning("%s: HTTP %d returned HTML, not JSON — %s", op, status, _excerpt(body))
            return False, None

        try:
            return True, resp.json()
        except ValueError:
            if allow_text:
                return True, body
            if not expect_body:
                return True, None
            log.warning("%s: unparseable JSON — %s", op, _excerpt(body))
            return False, None

    def _require_credential(self, op):
        credential = self._credentials.credential
        if credential is None:
            log.warning("%s skipped: not authenticated", op)
        return credential

    # ─── Auth ────────────────────────────────────────────────

    def authenticate(self, rsn, secret):
        """POST /api/auth/login. Returns the new Credential or None."""
        rsn = (rsn or "").strip()
        secret = (secret or "").strip()
        if not rsn or not secret:
            log.warning("Login skipped: RSN and token are required")
            return None

        # Discord ids are numeric snowflakes; anything else is a personal token.
        payload = {"rsn": rsn}
        if secret.isdigit():
            payload["discordId"] = secret
        else:
            payload["token"] = secret

        log.info("Logging in as %s ...", rsn)
        ok, data = self._request("Login", "POST", "/api/auth/login",
                                 payload=payload, authenticated=False)
        if not ok:
            return None

        token, team_id = payloads.parse_login(data)
        if not token:
            log.warning("Login response had no token — %s", _excerpt(str(data)))
            return None

        credential = Credential(rsn=rsn, jwt=token, team_id=team_id)
        self._credentials.set_authenticated(credential)
        return credential

    def restore(self, rsn, jwt, team_id=""):
        """Adopt a previously saved token. The first 401 will clear it."""
        if not rsn or not jwt:
            return None
        credential = Credential(rsn=rsn, jwt=jwt, team_id=team_id)
        self._credentials.set_authenticated(credential)
        return credential

    def logout(self):
        return self._credentials.invalidate("logout")

    # ─── Reads ───────────────────────────────────────────────

    def fetch_board(self, rsn=None):
        """GET /api/bingo/board/:rsn → opaque board JSON or None."""
        rsn = rsn or self._credentials.rsn
        if not rsn:
            log.warning("Board fetch skipped: no RSN")
            return None
        ok, data = self._request("Board fetch", "GET", f"/api/bingo/board/{rsn}")
        return data if ok else None

    def fetch_team(self, team_id=None):
        """GET /api/bingo/team/:teamId → opaque team JSON or None."""
        team_id = team_id or self._credentials.team_id
        if not team_id:
            log.warning("Team fetch skipped: no team id")
            return None
        ok, data = self._request("Team fetch", "GET", f"/api/bingo/team/{team_id}")
        return data if ok else None

    def fetch_active_events(self):
        """
        GET /api/bingo/events/active → list of BingoEvent.
        None means the service could not be reached or answered garbage;
        [] means it answered and there are no events.
        """
        ok, data = self._request("Active events", "GET", "/api/bingo/events/active")
        if not ok:
            return None
        events = payloads.normalize_events(data)
        log.info("Active events: %d", len(events))
        return events

    def fetch_activity_log(self, event_id, limit=ACTIVITY_LOG_LIMIT):
        """GET /api/bingo/activity/:eventId → list of ActivityLogEntry or None."""
        if not event_id:
            return None
        ok, data = self._request("Activity log", "GET", f"/api/bingo/activity/{event_id}",
                                 params={"limit": limit})
        if not ok:
            return None
        return payloads.normalize_activity_log(data)

    def get_signup_status(self, event_id):
        """GET /api/bingo/signup/status/:eventId?rsn=... → SignupStatus (never cached)."""
        rsn = self._credentials.rsn
        if not event_id or not rsn:
            return SignupStatus(False, False, "Not logged in")
        ok, data = self._request("Signup status", "GET", f"/api/bingo/signup/status/{event_id}",
                                 params={"rsn": rsn}, allow_text=True)
        if not ok:
            return SignupStatus(False, False, "Could not check signup status")
        return payloads.normalize_signup_status(data)

    def get_image_host_token(self):
        """GET /api/secrets/imgur_client_id → client id string or None."""
        ok, data = self._request("Image host token", "GET", "/api/secrets/imgur_client_id",
                                 allow_text=True)
        if not ok:
            return None
        return payloads.normalize_secret(data)

    # ─── Writes ──────────────────────────────────────────────

    def submit_activity(self, record, event_id):
        """POST /api/bingo/activity/:eventId. Single attempt. Returns True on 2xx."""
        op = f"Submit {record.activity_type.value}"
        credential = self._require_credential(op)
        if credential is None:
            return False
        if not event_id:
            log.warning("%s skipped: no event selected", op)
            return False
        team_id = record.team_id or credential.team_id
        if not team_id:
            log.warning("%s skipped: no team id", op)
            return False

        payload = record.with_team(team_id).to_payload(credential.rsn)
        ok, _ = self._request(op, "POST", f"/api/bingo/activity/{event_id}",
                              payload=payload, timeout=API_TIMEOUT_SUBMIT,
                              expect_body=False)
        if ok:
            log.info("Submitted %s | %s%s%s", record.activity_type.value, record.subject_name,
                     f" | drop={record.drop_name}" if record.drop_name else "",
                     " | screenshot" if record.screenshot_url else "")
        return ok

    def send_heartbeat(self):
        """POST /api/bingo/heartbeat. Returns True on success."""
        credential = self._require_credential("Heartbeat")
        if credential is None:
            return False
        payload = {"rsn": credential.rsn, "timestamp": int(time.time() * 1000)}
        ok, _ = self._request("Heartbeat", "POST", "/api/bingo/heartbeat",
                              payload=payload, expect_body=False)
        if ok:
            log.info("Heartbeat OK | rsn=%s", credential.rsn)
        return ok
