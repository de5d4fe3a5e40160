#!/usr/bin/env python3
# cme_server.py  (Samsung/Termux side): line-framed CME1 protocol, G1 codec

from __future__ import annotations

import os
import secrets
import socket
import sys
import threading
import time

from cme_demo import configured_layers, log
from cme_demo import decode as cme_decode
from cme_demo import encode as cme_encode
from cme_errors import CMEError

HOST = os.environ.get("CME_HOST", "0.0.0.0")
PORT = int(os.environ.get("CME_PORT", "5555"))
PROTO = "CME1"
MAX_LINE = 64 * 1024  # bytes buffered without a newline before dropping the peer


# ---- helpers ----
def make_session_id() -> str:
    return secrets.token_hex(4)  # 8 hex chars


def make_frame(msg_type: str, payload: str = "") -> str:
    # CME1|TYPE|payload   (payload may be empty)
    return f"{PROTO}|{msg_type}" if payload == "" else f"{PROTO}|{msg_type}|{payload}"


def send_line(conn: socket.socket, line: str, lock: threading.Lock | None = None):
    # Always newline terminate; one whole line per sendall under the lock
    if not line.endswith("\n"):
        line += "\n"
    data = line.encode("utf-8")
    if lock is None:
        conn.sendall(data)
        return
    with lock:
        conn.sendall(data)


def send_text(conn: socket.socket, text: str, lock: threading.Lock | None = None):
    """
    Encode outbound TEXT with the G1 codec, frame it as CME1|TEXT|<encoded>
    and send it.
    """
    framed = make_frame("TEXT", cme_encode(text))
    log("TX", framed)
    send_line(conn, framed, lock)


def parse_line(line: str) -> tuple[str, str, str]:
    """
    Returns (t, payload, raw)
      - t: "ACK", "RAW", "" for a blank line, or the CME type ("HELLO", "TEXT", ...)
      - payload: payload string (may be "")
      - raw: trimmed original line
    """
    raw = line.rstrip("\r\n")
    if raw == "":
        return ("", "", raw)

    # transport ACK (plain)
    if raw == "ACK":
        return ("ACK", "", raw)

    if raw.startswith(PROTO + "|"):
        parts = raw.split("|", 2)  # at most 3 parts
        t = parts[1]
        if t == "":
            return ("RAW", raw, raw)
        payload = parts[2] if len(parts) >= 3 else ""
        return (t, payload, raw)

    return ("RAW", raw, raw)


def new_state() -> dict:
    return {
        "alive": True,
        "handshake_ok": False,
        "session_id": "",
        "tx_lock": threading.Lock(),
    }


def handle_line(conn: socket.socket, state: dict, line: str):
    t, payload, raw = parse_line(line)
    if raw == "":
        return
    log("RX", raw)

    if t == "HELLO":
        # payload: "<device>|<ver>"
        device, _, ver = payload.partition("|")
        sid = make_session_id()
        state["session_id"] = sid
        state["handshake_ok"] = True
        log("Samsung", f"HELLO from {device or '?'} ver={ver or '?'} -> session={sid}")
        send_line(conn, make_frame("WELCOME", sid), state["tx_lock"])

    elif t == "HELLO_ACK":
        state["handshake_ok"] = True
        log("Samsung", f"HELLO_ACK {payload}")

    elif t == "WELCOME":
        state["session_id"] = payload
        state["handshake_ok"] = True
        log("Samsung", f"WELCOME {payload}")

    elif t == "TEXT":
        try:
            decoded = cme_decode(payload)
        except CMEError as e:
            log("CODEC", f"decode fail: {type(e).__name__}: {e}")
            send_line(conn, make_frame("ERR", type(e).__name__), state["tx_lock"])
            return
        log("RX", f"decoded: {decoded}")
        send_line(conn, "ACK", state["tx_lock"])

    elif t == "ACK":
        log("Samsung", "ACK")

    else:
        log("Samsung", f"{t}: {payload}")


# ---- loops ----
def recv_loop(conn: socket.socket, state: dict):
    buf = b""
    try:
        while state["alive"]:
            chunk = conn.recv(4096)
            if not chunk:
                log("Samsung", "Peer closed.")
                break

            buf += chunk
            while b"\n" in buf:
                line, buf = buf.split(b"\n", 1)
                handle_line(conn, state, line.decode("utf-8", errors="replace"))
            if len(buf) > MAX_LINE:
                log("Samsung", f"line over {MAX_LINE} bytes without newline, dropping peer")
                break
    except OSError as e:
        log("Samsung", f"recv_loop error: {e}")
    finally:
        state["alive"] = False


def stdin_loop(conn: socket.socket, state: dict):
    """
    Type on Samsung -> sends to iPhone after handshake.
    """
    try:
        while state["alive"]:
            if not state["handshake_ok"]:
                time.sleep(0.05)
                continue

            line = sys.stdin.readline()
            if line == "":
                break

            line = line.rstrip("\r\n")
            if line == "":
                continue
            if line.lower() in ("/q", "/quit", "/exit"):
                break

            try:
                send_text(conn, line, state["tx_lock"])
            except CMEError as e:
                log("CODEC", f"encode fail: {type(e).__name__}: {e}")
                continue
    except (KeyboardInterrupt, OSError) as e:
        log("Samsung", f"stdin_loop stopped: {e!r}")
    finally:
        state["alive"] = False


# ---- main ----
def main() -> int:
    log("Samsung", "CME server (G1 codec)")
    try:
        layers = configured_layers()
    except CMEError as e:
        log("FAIL", f"{type(e).__name__}: {e}")
        return 1
    log("Samsung", f"{len(layers)} layer(s) configured")

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as srv:
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind((HOST, PORT))
        srv.listen(1)
        log("Samsung", f"Listening on {HOST}:{PORT}")

        conn, addr = srv.accept()
        with conn:
            log("Samsung", f"Connected from {addr}")
            state = new_state()

            t1 = threading.Thread(target=recv_loop, args=(conn, state), daemon=True)
            t2 = threading.Thread(target=stdin_loop, args=(conn, state), daemon=True)
            t1.start()
            t2.start()

            try:
                while state["alive"]:
                    time.sleep(0.1)
            except KeyboardInterrupt:
                state["alive"] = False

    log("Samsung", "Server stopped.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
