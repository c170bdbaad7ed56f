"""
Text-to-Speech Module

Speaks announcements with Piper TTS (local). Speaking is fire-and-forget:
each new utterance cancels the one in flight.
"""

from __future__ import annotations

import asyncio
import shutil
import subprocess
import time
from pathlib import Path
from typing import Protocol, Sequence

import numpy as np
import structlog

from nudge.speech.voices import Voice, VoiceCatalog, select_voice

logger = structlog.get_logger(__name__)


class SpeechOutput(Protocol):
    """Anything that can say a line of text."""

    def speak(self, text: str) -> bool: ...


class SilentSpeaker:
    """Speech output used when speech is disabled in the configuration."""

    def speak(self, text: str) -> bool:
        logger.debug("speech_disabled", text=text[:60])
        return False


def find_piper(piper_path: str | Path | None = None) -> str | None:
    """Find the piper executable."""
    if piper_path:
        path = Path(piper_path).expanduser()
        if path.exists():
            return str(path)

    piper = shutil.which("piper")
    if piper:
        return piper

    candidates = [
        Path.cwd() / "bin" / "piper" / "piper",
        Path.home() / ".local" / "bin" / "piper",
        Path("/usr/local/bin/piper"),
        Path("/usr/bin/piper"),
    ]
    for path in candidates:
        if path.exists():
            return str(path)

    return None


class Speaker:
    """
    Speech output backed by Piper.

    If no voices have been discovered yet, ``speak`` defers until the catalog
    reports its voices and then retries. Only the latest deferred text is
    kept; later calls replace it.
    """

    def __init__(
        self,
        catalog: VoiceCatalog,
        piper_path: str | Path | None = None,
        preferred_langs: Sequence[str] = ("ur-PK", "hi-IN"),
        fallback_lang: str = "hi-IN",
        rate: float = 0.9,
        sample_rate: int = 22050,
    ):
        """
        Initialize the speaker.

        Args:
            catalog: Installed voice catalog
            piper_path: Path to piper executable (auto-detected if None)
            preferred_langs: Language tags to prefer, in order
            fallback_lang: Language used when no preferred voice is installed
            rate: Speaking rate (1.0 = normal, lower is slower)
            sample_rate: Output sample rate (Piper default is 22050)
        """
        self.catalog = catalog
        self.piper_path = find_piper(piper_path)
        self.preferred_langs = list(preferred_langs)
        self.fallback_lang = fallback_lang
        self.rate = rate
        self.sample_rate = sample_rate

        self._running = False
        self._current: asyncio.Task | None = None
        self._load_task: asyncio.Task | None = None
        self._deferred: str | None = None

    async def start(self) -> None:
        """Start the speaker and begin discovering voices."""
        if self._running:
            return

        self._running = True
        if self.piper_path is None:
            logger.warning("speech_unsupported", reason="piper executable not found")
            return

        logger.info("tts_started", engine="piper", piper_path=self.piper_path)
        if not self.catalog.is_loaded:
            self._load_task = asyncio.create_task(self.catalog.load())

    async def stop(self) -> None:
        """Stop the speaker and cancel any ongoing utterance."""
        if not self._running:
            return

        self._running = False
        if self._load_task and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        await self.cancel_playback()
        logger.info("tts_stopped")

    async def wait_ready(self) -> None:
        """Wait for voice discovery started by ``start``."""
        if self._load_task:
            await self._load_task

    async def wait_done(self) -> None:
        """Wait for the current utterance, if any, to finish."""
        if self._current and not self._current.done():
            try:
                await self._current
            except asyncio.CancelledError:
                pass

    @property
    def is_supported(self) -> bool:
        return self.piper_path is not None

    def speak(self, text: str) -> bool:
        """
        Say ``text`` without waiting for it to finish.

        Returns True if an utterance was started.
        """
        if not text.strip():
            return False

        if not self._running or not self.is_supported:
            logger.warning("speech_unsupported", text=text[:60])
            return False

        if not self.catalog.is_loaded:
            logger.debug("speech_deferred", reason="voices not loaded")
            if self._deferred is None:
                self.catalog.on_loaded(self._speak_deferred)
            self._deferred = text
            return False

        voice = self.choose_voice()
        if voice is None:
            logger.warning("speech_unsupported", reason="no voices installed", text=text[:60])
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("speech_unsupported", reason="no running event loop")
            return False

        self._cancel_current()
        self._current = loop.create_task(self._say(text, voice))
        return True

    def _speak_deferred(self) -> None:
        text, self._deferred = self._deferred, None
        if text:
            self.speak(text)

    def choose_voice(self) -> Voice | None:
        """Preferred-language voice if installed, otherwise the first voice."""
        voices = self.catalog.voices
        voice = select_voice(voices, self.preferred_langs)
        if voice is None and voices:
            voice = voices[0]
            logger.debug("voice_fallback", lang=self.fallback_lang, voice=voice.name)
        return voice

    def _cancel_current(self) -> None:
        if self._current and not self._current.done():
            self._current.cancel()
            logger.debug("tts_playback_cancelled")

    async def cancel_playback(self) -> None:
        """Cancel the current utterance and wait for it to wind down."""
        if self._current and not self._current.done():
            self._current.cancel()
            try:
                await self._current
            except asyncio.CancelledError:
                pass
            logger.debug("tts_playback_cancelled")
        self._current = None

    async def _say(self, text: str, voice: Voice) -> None:
        try:
            audio = await self._synthesize(text, voice)
            if audio is not None:
                await self._play_audio(audio)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("tts_error", error=str(e), exc_info=True)

    async def _synthesize(self, text: str, voice: Voice) -> bytes | None:
        """Synthesize text to raw 16-bit PCM using Piper."""
        if self.piper_path is None or voice.model_path is None:
            return None

        start_time = time.perf_counter()
        length_scale = 1.0 / self.rate if self.rate > 0 else 1.0

        try:
            proc = await asyncio.create_subprocess_exec(
                self.piper_path,
                "--model", str(voice.model_path),
                "--length_scale", f"{length_scale:.3f}",
                "--output-raw",
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError:
            logger.warning("piper_not_found", path=self.piper_path)
            self.piper_path = None
            return None

        stdout, stderr = await proc.communicate(input=text.encode())

        if proc.returncode != 0:
            logger.warning(
                "piper_error",
                returncode=proc.returncode,
                stderr=stderr.decode(errors="replace")[:200],
            )
            return None

        logger.debug(
            "tts_synthesized",
            voice=voice.name,
            text_length=len(text),
            audio_duration=round(len(stdout) / 2 / self.sample_rate, 2),
            latency=round(time.perf_counter() - start_time, 3),
        )
        return stdout

    async def _play_audio(self, audio_data: bytes) -> None:
        """Play raw PCM through the default output device."""
        import sounddevice as sd

        audio = np.frombuffer(audio_data, dtype=np.int16).astype(np.float32) / 32768.0

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: sd.play(audio, samplerate=self.sample_rate, blocking=True),
            )
        except asyncio.CancelledError:
            sd.stop()
            raise

    @property
    def is_playing(self) -> bool:
        return self._current is not None and not self._current.done()

    @property
    def is_running(self) -> bool:
        return self._running
