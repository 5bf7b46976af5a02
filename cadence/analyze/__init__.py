"""
cadence.analyze - Speech performance analysis stages.

Stage 1 preprocesses the signal and runs voice activity detection; the
pause, speech rate, filler word and audio quality analyzers then run
independently over its read-only output, and the scorer joins them into
one AudioMetrics report.
"""

from __future__ import annotations
