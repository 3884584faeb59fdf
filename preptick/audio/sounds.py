"""Alert sound synthesis and playback using numpy + QSoundEffect.

The kitchen-bell chime is generated as a WAV file with sine-wave
synthesis and an ADSR envelope, then cached to disk so later launches
skip the synthesis.

Sound names
-----------
- ``timer_done``  — two kitchen-bell strikes
"""

from __future__ import annotations

import io
import logging
import wave
from pathlib import Path

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect

from ..settings import APP_SUPPORT_DIR

logger = logging.getLogger(__name__)

# ── paths ────────────────────────────────────────────────────────────────

SOUNDS_DIR = APP_SUPPORT_DIR / "sounds"

SOUND_NAMES = ("timer_done",)

SAMPLE_RATE = 44100


# ═══════════════════════════════════════════════════════════════════════════
#  WAV SYNTHESIS HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _make_envelope(
    length: int,
    attack: int = 200,
    decay: int = 400,
    sustain_level: float = 0.7,
    release: int = 800,
) -> np.ndarray:
    """ADSR envelope (all durations in samples)."""
    env = np.ones(length, dtype=np.float64)
    a = min(attack, length)
    if a > 0:
        env[:a] = np.linspace(0.0, 1.0, a)
    d_end = min(a + decay, length)
    if decay > 0 and d_end > a:
        env[a:d_end] = np.linspace(1.0, sustain_level, d_end - a)
    s_end = max(length - release, d_end)
    if s_end > d_end:
        env[d_end:s_end] = sustain_level
    if release > 0 and s_end < length:
        env[s_end:] = np.linspace(sustain_level, 0.0, length - s_end)
    return env


def _sine(freq: float, duration_s: float) -> np.ndarray:
    """Pure sine wave at *freq* Hz for *duration_s* seconds."""
    t = np.linspace(0, duration_s, int(SAMPLE_RATE * duration_s), endpoint=False)
    return np.sin(2 * np.pi * freq * t)


def _to_wav_bytes(samples: np.ndarray) -> bytes:
    """Convert a float64 numpy array (-1..1) to 16-bit PCM WAV bytes."""
    samples = np.clip(samples, -1.0, 1.0)
    int_samples = (samples * 32767).astype(np.int16)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes(int_samples.tobytes())
    return buf.getvalue()


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND GENERATORS
# ═══════════════════════════════════════════════════════════════════════════


def _bell_strike(freq: float, duration_s: float) -> np.ndarray:
    """One struck bell: fundamental plus two inharmonic partials."""
    tone = (
        _sine(freq, duration_s) * 0.45
        + _sine(freq * 2.76, duration_s) * 0.12
        + _sine(freq * 5.40, duration_s) * 0.05
    )
    env = _make_envelope(
        len(tone),
        attack=int(SAMPLE_RATE * 0.004),
        decay=int(SAMPLE_RATE * 0.15),
        sustain_level=0.35,
        release=int(SAMPLE_RATE * duration_s * 0.6),
    )
    return tone * env


def _generate_kitchen_bell() -> bytes:
    """Timer done: two bell strikes (E6) with a short gap between them."""
    strike = _bell_strike(1318.5, 0.45)
    gap = np.zeros(int(SAMPLE_RATE * 0.08))
    tail = np.zeros(int(SAMPLE_RATE * 0.05))
    return _to_wav_bytes(np.concatenate([strike, gap, strike, tail]))


_GENERATORS: dict[str, callable] = {
    "timer_done": _generate_kitchen_bell,
}


# ═══════════════════════════════════════════════════════════════════════════
#  SOUND MANAGER
# ═══════════════════════════════════════════════════════════════════════════


class SoundManager(QObject):
    """Synthesizes, caches and plays the alert sounds.

    Usage::

        mgr = SoundManager(parent=self)
        mgr.play("timer_done")
    """

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._volume = 0.8  # 0.0–1.0
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._effects: dict[str, QSoundEffect] = {}

        self._ensure_wav_files()
        self._load_effects()

    def set_volume(self, level: int) -> None:
        """Set volume (0-100).  Updates all loaded effects."""
        self._volume = max(0, min(level, 100)) / 100.0
        for effect in self._effects.values():
            effect.setVolume(self._volume)

    @property
    def volume(self) -> int:
        return round(self._volume * 100)

    def play(self, name: str) -> None:
        """Play a sound by name.  No-op if the name is unknown."""
        effect = self._effects.get(name)
        if effect is None:
            logger.debug("No sound named %r", name)
            return
        effect.play()

    def _ensure_wav_files(self) -> None:
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        for name, gen_fn in _GENERATORS.items():
            path = self._sounds_dir / f"{name}.wav"
            if not path.exists():
                path.write_bytes(gen_fn())

    def _load_effects(self) -> None:
        for name in SOUND_NAMES:
            path = self._sounds_dir / f"{name}.wav"
            if path.exists():
                effect = QSoundEffect(self)
                effect.setSource(QUrl.fromLocalFile(str(path)))
                effect.setVolume(self._volume)
                self._effects[name] = effect
