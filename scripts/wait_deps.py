import json
import os
import socket
import time
import urllib.request

TIMEOUT = int(os.getenv("TIMEOUT_S", "120"))
MINIO_URL = os.getenv("MINIO_URL", "http://minio:9000")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "postgres")
POSTGRES_PORT = int(os.getenv("POSTGRES_PORT", "5432"))
REDIS_HOST = os.getenv("REDIS_HOST", "redis")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))


def http_ok(url: str) -> bool:
    try:
        with urllib.request.urlopen(url, timeout=2) as r:
            return 200 <= r.status < 500
    except Exception:
        return False


def tcp_ok(host: str, port: int) -> bool:
    try:
        s = socket.create_connection((host, port), timeout=2)
        s.close()
        return True
    except Exception:
        return False


def check() -> dict:
    return {
        "postgres": tcp_ok(POSTGRES_HOST, POSTGRES_PORT),
        "redis": tcp_ok(REDIS_HOST, REDIS_PORT),
        "minio": http_ok(MINIO_URL.rstrip("/") + "/minio/health/live"),
    }


def main() -> int:
    """Block until the API's backing services accept connections (compose entrypoint)."""

    deadline = time.time() + TIMEOUT
    status = check()
    while not all(status.values()) and time.time() < deadline:
        time.sleep(2)
        status = check()
    print(json.dumps({"ready": all(status.values()), **status}))
    return 0 if all(status.values()) else 1


if __name__ == "__main__":
    raise SystemExit(main())
