"""
Cadence - Speech performance analytics engine.

Turns a recorded speech signal plus its time-aligned transcript into a
structured quality report through a staged pipeline: signal preprocessing
and voice activity detection → pause, speech rate, filler word and audio
quality analysis → composite performance scoring.
"""

__version__ = "0.1.0"
