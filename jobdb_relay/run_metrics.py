import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _render_template(template: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return (template or "").replace("{timestamp}", timestamp)


def _make_batch_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


@dataclass
class BatchMetrics:
    """
    Per-batch counters: listings extracted, details opened, matches and skips per source.

    Collected for every batch; written to disk only when metrics.enabled is set.
    """

    sources: List[str] = field(default_factory=list)
    batch_id: str = field(default_factory=_make_batch_id)
    started_at_iso: str = field(default_factory=_utc_now_iso)
    started_at_monotonic: float = field(default_factory=time.monotonic)
    ended_at_iso: Optional[str] = None
    duration_seconds: Optional[float] = None
    counters: Dict[str, int] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    output_path: Optional[Path] = None

    def inc(self, key: str, amount: int = 1, source: Optional[str] = None) -> None:
        if not key:
            return
        if source:
            key = f"{source}.{key}"
        self.counters[key] = int(self.counters.get(key, 0)) + int(amount)

    def record_event(self, kind: str, **data: Any) -> None:
        if not kind:
            return
        payload: Dict[str, Any] = {"t": _utc_now_iso(), "kind": kind}
        payload.update({k: v for k, v in data.items() if v is not None})
        self.events.append(payload)

    def finish(self) -> None:
        if self.ended_at_iso is None:
            self.ended_at_iso = _utc_now_iso()
            self.duration_seconds = max(time.monotonic() - self.started_at_monotonic, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        duration = self.duration_seconds
        if duration is None:
            duration = max(time.monotonic() - self.started_at_monotonic, 0.0)
        payload: Dict[str, Any] = {
            "batch_id": self.batch_id,
            "sources": list(self.sources),
            "started_at": self.started_at_iso,
            "ended_at": self.ended_at_iso or _utc_now_iso(),
            "duration_seconds": round(duration, 6),
            "counters": dict(self.counters),
        }
        if self.events:
            payload["events"] = list(self.events)
        return payload

    def write_json(self, *, template: str) -> Path:
        rendered = _render_template(template) or "output/batch_metrics_{timestamp}.json"
        path = Path(rendered)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False), encoding="utf-8")
        self.output_path = path
        return path
