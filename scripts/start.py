#!/usr/bin/env python3
"""
Production startup: run the release phase, then exec gunicorn.

Usage:
    python scripts/start.py

Gunicorn replaces this process (os.execvp) so it receives signals directly.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _port() -> str:
    port = (os.environ.get("PORT") or "").strip() or "8080"
    if not port.isdigit() or not 1 <= int(port) <= 65535:
        print(f"ERROR: Invalid PORT value '{port}'. Must be integer 1-65535.", flush=True)
        sys.exit(1)
    return port


def main() -> None:
    port = _port()

    print("=== Running release phase ===", flush=True)
    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    # The realtime broker lives in this process, so every stream and every
    # committing request must share one worker. SSE streams each hold a thread;
    # REALTIME_MAX_SUBSCRIBERS keeps some threads free for ordinary requests.
    requested = (os.environ.get("WEB_CONCURRENCY") or "1").strip()
    if requested != "1":
        print(f"WARNING: WEB_CONCURRENCY={requested} ignored; realtime requires a single worker.", flush=True)
    threads = (os.environ.get("GUNICORN_THREADS") or "32").strip()
    print(f"=== Starting gunicorn on 0.0.0.0:{port} ===", flush=True)
    os.execvp(
        "gunicorn",
        [
            "gunicorn",
            "app.wsgi:app",
            "--bind", f"0.0.0.0:{port}",
            "--workers", "1",
            "--worker-class", "gthread",
            "--threads", threads,
            "--timeout", "60",
            "--access-logfile", "-",
            "--error-logfile", "-",
        ],
    )


if __name__ == "__main__":
    main()
