"""
Voice discovery and selection.

Piper voices are ``.onnx`` model files named ``<ll>_<CC>-<speaker>-<quality>``,
e.g. ``hi_IN-pratham-medium.onnx``. The language tag is taken from that name.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

import structlog

logger = structlog.get_logger(__name__)

HIGH_QUALITY_MARKERS = ("high", "medium")


@dataclass(frozen=True)
class Voice:
    """An installed voice model."""

    name: str
    lang: str
    model_path: Path | None = None

    @classmethod
    def from_model_path(cls, path: Path) -> "Voice":
        stem = path.stem
        locale = stem.split("-", 1)[0]
        return cls(name=stem, lang=locale.replace("_", "-"), model_path=path)

    @property
    def quality(self) -> str:
        return self.name.rsplit("-", 1)[-1] if "-" in self.name else ""


def default_search_dirs(models_dir: str | Path | None = None) -> list[Path]:
    """Directories that may contain Piper voice models, most specific first."""
    search_dirs: list[Path] = []

    if models_dir:
        search_dirs.append(Path(models_dir).expanduser())

    search_dirs.extend([
        Path.cwd() / "models" / "piper",
        Path.home() / ".nudge" / "voices",
        Path.home() / ".local" / "share" / "piper-voices",
        Path("/usr/share/piper-voices"),
    ])
    return search_dirs


def scan_voices(search_dirs: Sequence[Path]) -> list[Voice]:
    """Find every voice model in the given directories."""
    voices: list[Voice] = []
    seen: set[str] = set()

    for dir_path in search_dirs:
        if not dir_path.is_dir():
            continue
        for model_file in sorted(dir_path.glob("*.onnx")):
            if model_file.stem in seen:
                continue
            seen.add(model_file.stem)
            voices.append(Voice.from_model_path(model_file))

    return voices


def _lang_matches(voice: Voice, lang: str) -> bool:
    return lang.lower() in voice.lang.lower()


def select_voice(voices: Sequence[Voice], preferred_langs: Sequence[str]) -> Voice | None:
    """
    Pick the best voice for the preferred languages.

    A good-quality voice in a preferred language wins, then any voice in a
    preferred language. Returns None when no preferred language is installed.
    """
    for lang in preferred_langs:
        for voice in voices:
            if _lang_matches(voice, lang) and voice.quality in HIGH_QUALITY_MARKERS:
                return voice

    for lang in preferred_langs:
        for voice in voices:
            if _lang_matches(voice, lang):
                return voice

    return None


class VoiceCatalog:
    """
    Lazily-loaded list of installed voices.

    Callers that need voices before the first scan completes can register a
    one-shot callback with ``on_loaded``.
    """

    def __init__(self, search_dirs: Sequence[Path] | None = None):
        self.search_dirs = list(search_dirs) if search_dirs is not None else default_search_dirs()
        self._voices: list[Voice] = []
        self._loaded = False
        self._callbacks: list[Callable[[], None]] = []

    async def load(self) -> list[Voice]:
        """
        Scan for voices off the event loop, then fire pending callbacks.

        A failed scan counts as loaded with no voices.
        """
        loop = asyncio.get_running_loop()
        try:
            voices = await loop.run_in_executor(None, scan_voices, self.search_dirs)
        except OSError as e:
            logger.error("voice_scan_failed", error=str(e))
            voices = []
        self.set_voices(voices)
        return voices

    def set_voices(self, voices: Sequence[Voice]) -> None:
        self._voices = list(voices)
        self._loaded = True
        logger.info("voices_loaded", count=len(self._voices))

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error("voice_callback_error", error=str(e), exc_info=True)

    def on_loaded(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once, after the next load."""
        self._callbacks.append(callback)

    @property
    def voices(self) -> list[Voice]:
        return list(self._voices)

    @property
    def is_loaded(self) -> bool:
        return self._loaded
