import sys

from config import Config
from services.responder import ResponderClient, build_messages


def check_responder(probe=False):
    """Report whether the responder credential is configured; optionally send one live request."""
    print("--- RESPONDER DIAGNOSTIC START ---")
    api_key = Config.RESPONDER_API_KEY
    if not api_key:
        print("STATUS: MISSING (set RESPONDER_API_KEY or META_API_KEY)")
        print("--- RESPONDER DIAGNOSTIC END ---")
        return False

    print("STATUS: FOUND")
    print(f"PREFIX: {api_key[:8]}")
    print(f"LENGTH: {len(api_key)}")
    print(f"BACKEND: {Config.RESPONDER_BASE_URL} ({Config.RESPONDER_MODEL})")

    ok = True
    if probe:
        client = ResponderClient(
            api_key=api_key,
            base_url=Config.RESPONDER_BASE_URL,
            model=Config.RESPONDER_MODEL,
            timeout=Config.RESPONDER_TIMEOUT,
            max_tokens=20,
        )
        result = client.complete(build_messages("Reply with the single word: pong", [], []))
        if result.ok:
            print(f"[OK] Probe reply: {result.text!r}")
        else:
            print(f"[FAIL] Probe failed: {result.failure}")
            ok = False

    print("--- RESPONDER DIAGNOSTIC END ---")
    return ok


if __name__ == "__main__":
    sys.exit(0 if check_responder(probe="--probe" in sys.argv) else 1)
