"""
Speech output: voice discovery and Piper text-to-speech.
"""

from nudge.speech.tts import SilentSpeaker, Speaker, SpeechOutput, find_piper
from nudge.speech.voices import Voice, VoiceCatalog, scan_voices, select_voice

__all__ = [
    "SilentSpeaker",
    "Speaker",
    "SpeechOutput",
    "find_piper",
    "Voice",
    "VoiceCatalog",
    "scan_voices",
    "select_voice",
]
