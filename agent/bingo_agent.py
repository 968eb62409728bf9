"""
Bingo Companion — desktop entry point
======================================
Reads game events (JSON lines on stdin), reports kills, boss/raid
completions and valuable drops to the competition service, and keeps a
heartbeat going while the player is logged in.

Usage:
    python bingo_agent.py [EVENT_ID] < events.jsonl
"""

from bingo_core.runner import run_with_auto_restart

if __name__ == "__main__":
    run_with_auto_restart()
