"""
Talkpaste - Push-to-Talk Dictation

Hold a key, speak, release: the audio goes to a speech recognition
service and the transcript is pasted into the focused application.
"""

__version__ = "1.0.0"

from talkpaste.config import Config
from talkpaste.session import DictationSession

__all__ = ["Config", "DictationSession", "__version__"]
