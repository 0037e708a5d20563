"""
imagefeed fetch traces

A RequestDebug is passed to PixabayClient.search_images() / download() as
`debug_obj` and records one TimingPhase per step of the call. SpeedDebugger
groups traces by kind (feed search vs image download) and prints a report
with latency per kind and download throughput.
"""

import statistics
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_RED = "\033[91m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"

# (fast, slow) latency thresholds in ms; an image body takes longer than a JSON page
_THRESHOLDS = {
    "search": (150.0, 400.0),
    "download": (250.0, 800.0),
}


def _paint(ms: float, kind: str = "search") -> str:
    fast, slow = _THRESHOLDS.get(kind, _THRESHOLDS["search"])
    if ms < fast:
        color = _GREEN
    elif ms < slow:
        color = _YELLOW
    else:
        color = _RED
    return f"{color}{ms:8.1f}ms{_RESET}"


def _share(ms: float, total: float, width: int = 24) -> str:
    filled = int(width * ms / total) if total > 0 else 0
    return f"{_DIM}{'#' * filled}{'.' * (width - filled)}{_RESET}"


@dataclass
class TimingPhase:
    name: str
    started: float = 0.0
    finished: float = 0.0

    @property
    def ms(self) -> float:
        if not self.finished:
            return 0.0
        return (self.finished - self.started) * 1000


@dataclass
class RequestDebug:
    """Timing trace for one client call."""
    label: str = ""
    kind: str = "search"
    phases: List[TimingPhase] = field(default_factory=list)
    status_code: int = 0
    response_size: int = 0
    _open: Optional[TimingPhase] = field(default=None, repr=False)

    def phase(self, name: str) -> "RequestDebug":
        """Close the running phase (if any) and start `name`."""
        now = time.perf_counter()
        if self._open:
            self._open.finished = now
        self._open = TimingPhase(name=name, started=now)
        self.phases.append(self._open)
        return self

    def end(self) -> None:
        if self._open:
            self._open.finished = time.perf_counter()
            self._open = None

    @property
    def total_ms(self) -> float:
        return sum(p.ms for p in self.phases)

    @property
    def kb_per_s(self) -> float:
        total = self.total_ms
        return self.response_size / total if total > 0 else 0.0

    def report_lines(self) -> List[str]:
        self.end()
        total = self.total_ms
        status = ""
        if self.status_code:
            color = _GREEN if 200 <= self.status_code < 300 else _RED
            status = f" {color}{self.status_code}{_RESET}"

        lines = [f"  {_BOLD}{self.label or self.kind}{_RESET}{status} {_paint(total, self.kind)}"]
        for p in self.phases:
            lines.append(f"    {p.name:<18}{_paint(p.ms, self.kind)}  {_share(p.ms, total)}")
        if self.response_size:
            size = f"{self.response_size:,} bytes"
            if self.kind == "download":
                size += f" at {self.kb_per_s:,.0f} KB/s"
            lines.append(f"    {_DIM}{size}{_RESET}")
        return lines


class SpeedDebugger:
    """Collects traces and prints them grouped by kind."""

    def __init__(self):
        self.requests: List[RequestDebug] = []

    def new_request(self, label: str, kind: str = "search") -> RequestDebug:
        rd = RequestDebug(label=label, kind=kind)
        self.requests.append(rd)
        return rd

    def by_kind(self) -> Dict[str, List[RequestDebug]]:
        groups: Dict[str, List[RequestDebug]] = {}
        for rd in self.requests:
            groups.setdefault(rd.kind, []).append(rd)
        return groups

    def print_summary(self) -> None:
        print(f"\n{_BOLD}{_CYAN}imagefeed fetch report{_RESET}")

        for kind, traces in self.by_kind().items():
            print(f"\n{_BOLD}[{kind}]{_RESET} {len(traces)} call(s)")
            for rd in traces:
                print("\n".join(rd.report_lines()))

            times = [rd.total_ms for rd in traces if rd.total_ms > 0]
            if len(times) >= 2:
                print(
                    f"  first {_paint(times[0], kind)}"
                    f"  median {_paint(statistics.median(times), kind)}"
                    f"  max {_paint(max(times), kind)}"
                )
            if kind == "download":
                total_bytes = sum(rd.response_size for rd in traces)
                print(f"  {_DIM}{total_bytes:,} bytes downloaded{_RESET}")
