"""Timer data model for PrepTick.

States
------
RUNNING   Counting down towards ``end_at``.
PAUSED    Frozen; remembers ``paused_remaining_seconds``.
DONE      Finished.  ``end_at`` keeps the moment it hit zero.

Transitions
-----------
(new) → RUNNING                      (start)
RUNNING → PAUSED                     (pause)
PAUSED → RUNNING | DONE              (resume; DONE when nothing was left)
RUNNING → DONE                       (reconcile sees remaining == 0)
Any → RUNNING | DONE                 (restart, adjust)

Remaining time is always derived from wall-clock timestamps, never from
counting ticks, so a process that was suspended for hours still computes
the right value on the next look.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum


# ── constants ─────────────────────────────────────────────────────────────

GROUPING_WINDOW_SECONDS = 90


# ── enums ─────────────────────────────────────────────────────────────────


class Category(Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    BEVERAGE = "beverage"
    DESSERT = "dessert"
    PREP = "prep"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class TimerState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    DONE = "done"


# ── helpers ───────────────────────────────────────────────────────────────


def new_id() -> str:
    return str(uuid.uuid4()).upper()


def encode_date(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def decode_date(value) -> datetime | None:
    """Parse an ISO-8601 string or epoch seconds.  ``None`` stays ``None``."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is not None:
            # stored with an offset; timers run on naive local time
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    raise ValueError(f"not a timestamp: {value!r}")


def _decode_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"not an integer: {value!r}")
    try:
        return int(value)
    except OverflowError as exc:
        raise ValueError(f"not a finite number: {value!r}") from exc


def format_clock(seconds: int) -> str:
    """``mm:ss`` below an hour, ``h:mm:ss`` above."""
    seconds = max(0, seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


# ══════════════════════════════════════════════════════════════════════════
#  PRESET
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class Preset:
    """Named, categorized duration template."""

    name: str
    duration_seconds: int
    category: Category
    is_favorite: bool = False
    id: str = field(default_factory=new_id)

    @property
    def can_start(self) -> bool:
        return self.duration_seconds > 0

    @property
    def formatted_duration(self) -> str:
        """Abbreviated duration, e.g. ``6m 00s`` or ``4h 00m``."""
        seconds = max(0, self.duration_seconds)
        if seconds >= 3600:
            hours, rest = divmod(seconds, 3600)
            return f"{hours}h {rest // 60:02d}m"
        minutes, secs = divmod(seconds, 60)
        return f"{minutes}m {secs:02d}s"

    def snapshot(self) -> Preset:
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "durationSeconds": self.duration_seconds,
            "category": self.category.value,
            "isFavorite": self.is_favorite,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Preset:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            duration_seconds=_decode_int(data["durationSeconds"]),
            category=Category(data["category"]),
            is_favorite=bool(data.get("isFavorite", False)),
        )


# ══════════════════════════════════════════════════════════════════════════
#  RUNNING TIMER
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class RunningTimer:
    """A live instance of a preset.

    ``preset`` is a private snapshot: renaming or adjusting the timer
    never touches the preset it was started from.
    """

    preset: Preset
    started_at: datetime
    end_at: datetime | None = None
    paused_remaining_seconds: int | None = None
    state: TimerState = TimerState.RUNNING
    id: str = field(default_factory=new_id)

    # ── construction ──────────────────────────────────────────────────

    @classmethod
    def start(cls, preset: Preset, now: datetime) -> RunningTimer | None:
        """New running timer, or ``None`` when the preset can't start."""
        if not preset.can_start:
            return None
        return cls(
            preset=preset.snapshot(),
            started_at=now,
            end_at=now + timedelta(seconds=preset.duration_seconds),
        )

    # ── queries ───────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.preset.name

    @property
    def duration_seconds(self) -> int:
        return self.preset.duration_seconds

    @property
    def is_running(self) -> bool:
        return self.state is TimerState.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.state is TimerState.PAUSED

    @property
    def is_done(self) -> bool:
        return self.state is TimerState.DONE

    def remaining_seconds(self, now: datetime) -> int:
        if self.state is TimerState.PAUSED and self.paused_remaining_seconds is not None:
            return max(0, self.paused_remaining_seconds)
        if self.end_at is None:
            return 0
        return max(0, int((self.end_at - now).total_seconds()))

    def progress(self, now: datetime) -> float:
        """0.0 → 1.0 progress through the timer."""
        total = self.duration_seconds
        if total <= 0:
            return 0.0
        return 1.0 - min(1.0, self.remaining_seconds(now) / total)

    def is_expired(self, now: datetime) -> bool:
        """True when reconciliation would force this timer to DONE."""
        if self.state is TimerState.DONE:
            return False
        if self.duration_seconds <= 0:
            return True
        return self.state is TimerState.RUNNING and self.remaining_seconds(now) <= 0

    # ── transitions ───────────────────────────────────────────────────

    def pause(self, now: datetime) -> bool:
        if self.state is not TimerState.RUNNING:
            return False
        self.paused_remaining_seconds = self.remaining_seconds(now)
        self.end_at = None
        self.state = TimerState.PAUSED
        return True

    def resume(self, now: datetime) -> bool:
        if self.state is not TimerState.PAUSED:
            return False
        remaining = self.paused_remaining_seconds or 0
        if remaining <= 0:
            self.mark_done(now)
            return True
        self._run_for(remaining, now)
        return True

    def restart(self, now: datetime) -> None:
        if self.duration_seconds <= 0:
            self.mark_done(now)
            return
        self.paused_remaining_seconds = None
        self.started_at = now
        self.end_at = now + timedelta(seconds=self.duration_seconds)
        self.state = TimerState.RUNNING

    def adjust(self, delta_seconds: int, now: datetime) -> None:
        """Add (or remove) time, keeping the elapsed part of the duration."""
        old_remaining = self.remaining_seconds(now)
        remaining = max(0, old_remaining + delta_seconds)
        elapsed = max(0, self.duration_seconds - old_remaining)
        self.preset.duration_seconds = max(0, remaining + elapsed)

        if remaining == 0:
            self.mark_done(now)
            return

        if self.state is TimerState.PAUSED:
            self.paused_remaining_seconds = remaining
            self.end_at = None
        else:
            self._run_for(remaining, now)

    def rename(self, name: str) -> None:
        self.preset.name = name

    def snapshot(self) -> RunningTimer:
        return replace(self, preset=self.preset.snapshot())

    def mark_done(self, now: datetime, *, keep_end_at: bool = False) -> None:
        """Force DONE.

        An ``end_at`` already in the past stays put, so an expired timer
        keeps the moment it actually hit zero.  A future one is pulled
        back to ``now`` unless ``keep_end_at`` is set, which the
        reconciliation pass does once the remaining whole seconds reach 0.
        """
        if self.end_at is None or (self.end_at > now and not keep_end_at):
            self.end_at = now
        self.paused_remaining_seconds = None
        self.state = TimerState.DONE

    def reconcile(self, now: datetime) -> bool:
        """Repair this timer against ``now``.  Returns True on change."""
        if self.is_expired(now):
            self.mark_done(now, keep_end_at=self.remaining_seconds(now) <= 0)
            return True

        changed = False
        if self.state is TimerState.RUNNING:
            if self.paused_remaining_seconds is not None:
                self.paused_remaining_seconds = None
                changed = True
        elif self.state is TimerState.PAUSED:
            if self.paused_remaining_seconds is None or self.paused_remaining_seconds < 0:
                self.paused_remaining_seconds = max(0, self.paused_remaining_seconds or 0)
                changed = True
            if self.end_at is not None:
                self.end_at = None
                changed = True
        elif self.paused_remaining_seconds is not None:
            self.paused_remaining_seconds = None
            changed = True
        return changed

    def _run_for(self, remaining: int, now: datetime) -> None:
        self.end_at = now + timedelta(seconds=remaining)
        self.started_at = self.end_at - timedelta(seconds=self.duration_seconds)
        self.paused_remaining_seconds = None
        self.state = TimerState.RUNNING

    # ── serialization ─────────────────────────────────────────────────

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "preset": self.preset.to_dict(),
            "startedAt": encode_date(self.started_at),
            "state": self.state.value,
        }
        if self.end_at is not None:
            data["endAt"] = encode_date(self.end_at)
        if self.paused_remaining_seconds is not None:
            data["pausedRemainingSeconds"] = self.paused_remaining_seconds
        return data

    @classmethod
    def from_dict(cls, data: dict) -> RunningTimer:
        """Decode, accepting records written before ``state`` existed."""
        started_at = decode_date(data["startedAt"])
        if started_at is None:
            raise ValueError("startedAt is required")
        end_at = decode_date(data.get("endAt"))
        paused = data.get("pausedRemainingSeconds")
        paused = None if paused is None else _decode_int(paused)

        raw_state = data.get("state")
        if raw_state is not None:
            state = TimerState(raw_state)
        elif paused is not None:
            state = TimerState.PAUSED
        else:
            state = TimerState.RUNNING

        if state is TimerState.PAUSED:
            end_at = None
            if paused is None:
                paused = 0
        else:
            paused = None
            if state is TimerState.RUNNING and end_at is None:
                legacy_remaining = data.get("remainingSeconds")
                if legacy_remaining is not None:
                    try:
                        end_at = started_at + timedelta(seconds=_decode_int(legacy_remaining))
                    except OverflowError as exc:
                        raise ValueError(
                            f"remainingSeconds out of range: {legacy_remaining!r}"
                        ) from exc
                else:
                    end_at = started_at

        return cls(
            id=str(data["id"]),
            preset=Preset.from_dict(data["preset"]),
            started_at=started_at,
            end_at=end_at,
            paused_remaining_seconds=paused,
            state=state,
        )


# ══════════════════════════════════════════════════════════════════════════
#  LAST SET
# ══════════════════════════════════════════════════════════════════════════


@dataclass
class LastSetEntry:
    preset: Preset
    set_at: datetime
    id: str = field(default_factory=new_id)

    def snapshot(self) -> LastSetEntry:
        return replace(self, preset=self.preset.snapshot())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "preset": self.preset.to_dict(),
            "setAt": encode_date(self.set_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> LastSetEntry:
        set_at = decode_date(data["setAt"])
        if set_at is None:
            raise ValueError("setAt is required")
        return cls(
            id=str(data["id"]),
            preset=Preset.from_dict(data["preset"]),
            set_at=set_at,
        )


@dataclass
class LastSet:
    """Presets started together, grouped by a proximity window."""

    entries: list[LastSetEntry] = field(default_factory=list)
    window_seconds: int = GROUPING_WINDOW_SECONDS

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)

    @property
    def latest(self) -> LastSetEntry | None:
        return self.entries[-1] if self.entries else None

    def belongs_to_group(self, now: datetime) -> bool:
        latest = self.latest
        if latest is None:
            return False
        return (now - latest.set_at).total_seconds() <= self.window_seconds

    def record(self, preset: Preset, now: datetime) -> LastSetEntry:
        """Append to the current group, or start a new one."""
        entry = LastSetEntry(preset=preset.snapshot(), set_at=now)
        if self.belongs_to_group(now):
            self.entries.append(entry)
        else:
            self.entries = [entry]
        return entry

    def to_list(self) -> list[dict]:
        return [entry.to_dict() for entry in self.entries]

    @classmethod
    def from_list(cls, data, window_seconds: int = GROUPING_WINDOW_SECONDS) -> LastSet:
        # A single object is the old one-preset record.
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise ValueError(f"not a last-set record: {data!r}")
        return cls(
            entries=[LastSetEntry.from_dict(item) for item in data],
            window_seconds=window_seconds,
        )
