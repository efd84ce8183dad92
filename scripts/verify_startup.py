#!/usr/bin/env python3
"""
Utility script to validate service readiness without a database.

- Verifies 'pattern_service.api.main:app' can be imported
- Starts a temporary uvicorn server on 0.0.0.0:<PORT> (default 3000) in-process
- Probes GET /api/health and exits 0 when it answers {"status": "ok"}

The database initializer keeps retrying in the background; the health check must
answer regardless. Intended for local/CI diagnostics.
"""
import contextlib
import http.client
import json
import socket
import sys
import threading
import time


def _wait_port(host: str, port: int, timeout: float = 10.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.settimeout(1.0)
            if s.connect_ex((host, port)) == 0:
                return True
        time.sleep(0.25)
    return False


def main():
    try:
        import uvicorn
        from pattern_service.api.main import app
        from pattern_service.core.config import get_settings
    except Exception as exc:
        print(f"[verify] Failed to import pattern_service.api.main:app -> {exc}", file=sys.stderr)
        sys.exit(3)

    port = get_settings().PORT
    server = uvicorn.Server(config=uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info"))
    threading.Thread(target=server.run, daemon=True).start()

    if not _wait_port("127.0.0.1", port, timeout=15.0):
        print(f"[verify] Server did not open port {port}", file=sys.stderr)
        sys.exit(4)

    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request("GET", "/api/health")
        resp = conn.getresponse()
        body = resp.read().decode("utf-8", errors="ignore")
        if resp.status == 200 and json.loads(body).get("status") == "ok":
            print(f"[verify] Health check passed: {body}")
            sys.exit(0)
        print(f"[verify] Health check failed: {resp.status} {body}", file=sys.stderr)
        sys.exit(5)
    except Exception as exc:
        print(f"[verify] Exception during health check: {exc}", file=sys.stderr)
        sys.exit(6)
    finally:
        with contextlib.suppress(Exception):
            conn.close()


if __name__ == "__main__":
    main()
