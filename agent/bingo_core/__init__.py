"""
bingo_core — Bingo competition companion v1.2
=============================================
Architecture: game events in on one thread, everything slow on a bounded
worker pool, two liveness loops on their own threads.

  constants.py    → Version, intervals, thresholds, boss/raid/item tables
  config.py       → Paths, logging, ConfigStore (JSON), safe_print
  http_client.py  → HTTP session with pooling + connect-only retry
  models.py       → GameEvent, ActivityRecord, BingoEvent, SignupStatus, ...
  state.py        → CredentialState (single writer + subscribers), HeartbeatState
  classifier.py   → classify(): raid > boss > kill, plus valuable drops
  dedup.py        → Deduplicator (bounded recency map, atomic claim)
  payloads.py     → Tolerant response-shape normalisation
  api.py          → SyncClient (auth, reads, submit, heartbeat, 401 handling)
  evidence.py     → EvidencePipeline (capture, local save, image-host upload)
  handler.py      → ActivityHandler (classify → dedup → worker pool → submit)
  tracker.py      → EventTracker (active events, selection, activity log)
  scheduler.py    → PeriodicLoop, LivenessScheduler (heartbeat + refresh)
  listeners.py    → InputListeners (pynput → activity-triggered heartbeat)
  app.py          → CompanionApp wiring
  runner.py       → main() + auto-restart wrapper
"""
