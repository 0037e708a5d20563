#!/usr/bin/env python3
"""
Load benchmark for the imagefeed raw-image endpoint.

  1. Cold burst: N simultaneous requests for one image nobody has fetched
     yet. Exactly one should report X-Cache-Layer=live, the rest coalesced.
  2. Warm: sequential requests for the same image (memory layer).
  3. Spread: one request per feed image, all at once (distinct keys).

Percentile stats (P50, P95, min, max), not just averages.
"""

import os
import time
import statistics
import threading
from collections import Counter
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor

import requests

# ── Config ──────────────────────────────────────────────────

API_BASE = os.environ.get("IMAGEFEED_URL", "http://localhost:8000")
TIMEOUT = (5, 30)
BURST = int(os.environ.get("BENCH_BURST", "50"))
WARM_ROUNDS = 10

# ── Helpers ─────────────────────────────────────────────────

_log_lines = []


def log(msg=""):
    line = f"[{time.strftime('%H:%M:%S')}] {msg}" if msg else ""
    print(line)
    _log_lines.append(line)


def save_results():
    os.makedirs("bench_results", exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = f"bench_results/bench_{ts}.txt"
    with open(path, "w") as f:
        f.write(f"imagefeed benchmark, {datetime.now().isoformat()}\n")
        f.write("=" * 70 + "\n\n")
        f.write("\n".join(_log_lines) + "\n")
    print(f"\nResults saved to {path}")


def timed_get(session, url):
    """Single timed GET. Returns status, timings, size and cache layer."""
    start = time.perf_counter()

    resp = session.get(url, timeout=TIMEOUT, stream=True)
    first_byte = resp.raw.read(1)
    ttfb = time.perf_counter()

    rest = resp.raw.read()
    done = time.perf_counter()

    return {
        "status": resp.status_code,
        "ttfb_ms": round((ttfb - start) * 1000, 2),
        "total_ms": round((done - start) * 1000, 2),
        "size": len(first_byte + rest),
        "cache_layer": resp.headers.get("x-cache-layer", ""),
    }


def fmt_stats(label, values):
    """One line of latency percentiles for `values` (ms)."""
    if not values:
        return f"  {label}: no data"
    if len(values) > 1:
        cuts = statistics.quantiles(values, n=20, method="inclusive")
        p50, p95 = cuts[9], cuts[18]
    else:
        p50 = p95 = values[0]
    return (
        f"  {label}: min={min(values):.1f}ms  P50={p50:.1f}ms  "
        f"P95={p95:.1f}ms  max={max(values):.1f}ms  (n={len(values)})"
    )


def raw_url(image_id):
    return f"{API_BASE}/v1/images/{image_id}/raw"


def fire_together(urls):
    """GET every url at the same instant, one warm session per request."""
    sessions = [requests.Session() for _ in urls]
    for s in sessions:
        s.get(f"{API_BASE}/health", timeout=TIMEOUT)

    barrier = threading.Barrier(len(urls), timeout=15)

    def fire(session, url):
        barrier.wait()
        return timed_get(session, url)

    with ThreadPoolExecutor(max_workers=len(urls)) as pool:
        futures = [pool.submit(fire, s, u) for s, u in zip(sessions, urls)]
        results = [f.result() for f in futures]

    for s in sessions:
        s.close()
    return results


# ── Tests ───────────────────────────────────────────────────

def test_cold_burst(image_id, n=BURST):
    log("=" * 70)
    log(f"TEST 1: COLD BURST ({n} simultaneous requests, image {image_id})")
    log("=" * 70)

    results = fire_together([raw_url(image_id)] * n)
    layers = Counter(r["cache_layer"] for r in results)
    statuses = Counter(r["status"] for r in results)

    log(f"  layers:   {dict(layers)}")
    log(f"  statuses: {dict(statuses)}")
    log(fmt_stats("TTFB ", [r["ttfb_ms"] for r in results]))
    log(fmt_stats("Total", [r["total_ms"] for r in results]))
    if layers.get("live", 0) == 1:
        log("\n  >> single-flight held: one live download")
    else:
        log(f"\n  >> expected exactly one live download, saw {layers.get('live', 0)}")
    return results


def test_warm(image_id, rounds=WARM_ROUNDS):
    log()
    log("=" * 70)
    log(f"TEST 2: WARM ({rounds} sequential requests)")
    log("=" * 70)

    session = requests.Session()
    results = [timed_get(session, raw_url(image_id)) for _ in range(rounds)]
    session.close()

    log(f"  layers: {dict(Counter(r['cache_layer'] for r in results))}")
    log(fmt_stats("TTFB ", [r["ttfb_ms"] for r in results]))
    return results


def test_spread(image_ids):
    log()
    log("=" * 70)
    log(f"TEST 3: SPREAD ({len(image_ids)} distinct images at once)")
    log("=" * 70)

    results = fire_together([raw_url(i) for i in image_ids])
    log(f"  layers: {dict(Counter(r['cache_layer'] for r in results))}")
    log(fmt_stats("Total", [r["total_ms"] for r in results]))
    log(f"  bytes:  {sum(r['size'] for r in results):,}")
    return results


# ── Main ────────────────────────────────────────────────────

def main():
    log("imagefeed single-flight benchmark")
    log(f"Date:   {datetime.now().isoformat()}")
    log(f"API:    {API_BASE}")
    log()

    feed = requests.get(f"{API_BASE}/v1/feed", timeout=TIMEOUT).json()
    image_ids = [img["id"] for img in feed.get("data") or []]
    if len(image_ids) < 2:
        log("Feed is empty, start the API with PIXABAY_API_KEY set")
        return

    test_cold_burst(image_ids[0])
    test_warm(image_ids[0])
    test_spread(image_ids[1:])

    log()
    log(f"Cache stats: {requests.get(f'{API_BASE}/health', timeout=TIMEOUT).json().get('image_cache')}")
    save_results()


if __name__ == "__main__":
    main()
