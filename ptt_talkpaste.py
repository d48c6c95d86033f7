#!/usr/bin/env python3
"""
Talkpaste - Push-to-Talk Dictation

Usage:
    python ptt_talkpaste.py

Environment Variables:
    TALKPASTE_AUDIO_DEVICE      Audio input device index
    TALKPASTE_OUTPUT_MODE       Output mode: 'paste', 'type' or 'clipboard'
    TALKPASTE_ASR_URL           Transcription endpoint URL
    TALKPASTE_LANGUAGE          Language hint sent with each request (e.g. 'zh', 'en')
    TALKPASTE_ASR_TIMEOUT       HTTP request timeout in seconds
    TALKPASTE_FALLBACK_TIMEOUT  Seconds to wait for a result before giving up
    TALKPASTE_LINGER_MS         Extra capture time after the key is released
    TALKPASTE_TONES             Play start/stop tones: '1' or 'true'
    TALKPASTE_VERBOSE           Enable verbose logging: '1' or 'true'
"""

from talkpaste.__main__ import main

if __name__ == "__main__":
    raise SystemExit(main())
